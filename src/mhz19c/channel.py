"""Serial channel to the sensor.

Wraps pyserial with the four primitives the transceiver needs:
``write``, ``read`` (bounded wait, empty on timeout), ``flush_input``
and ``drain_output``.  The port is configured the way the MH-Z19C
expects: 9600 baud, 8 data bits, no parity, 1 stop bit, raw, no flow
control.

Example:
    >>> from mhz19c.channel import SerialChannel
    >>> with SerialChannel("/dev/serial0", 500) as ch:
    ...     ch.write(frame)
    9
"""

import serial

from mhz19c.config import BAUDRATE, TIMEOUT_MS
from mhz19c.errors import ChannelOpenError, TransceiveError, WriteError


class SerialChannel:
    """Duplex byte channel over a UART.

    Duck-typed -- tests can substitute any object with matching
    ``write``, ``read``, ``flush_input``, ``drain_output`` and
    ``close`` methods.

    Args:
        port: Serial port device path (e.g. ``"/dev/serial0"``).
        timeout_ms: Upper bound for a single ``read`` call.

    Raises:
        ChannelOpenError: If the port cannot be opened or configured.
    """

    def __init__(self, port: str, timeout_ms: int = TIMEOUT_MS):
        self.port = port
        try:
            self._ser = serial.Serial(
                port,
                BAUDRATE,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=timeout_ms / 1000.0,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
        except (serial.SerialException, ValueError) as exc:
            raise ChannelOpenError(
                "cannot open {}: {}".format(port, exc)
            ) from exc

    def write(self, data: bytes) -> int:
        """Write *data* and return how many bytes the port accepted.

        Raises:
            WriteError: If the port reports a write failure.
        """
        try:
            count = self._ser.write(data)
        except serial.SerialException as exc:
            raise WriteError("write to {} failed: {}".format(self.port, exc)) from exc
        return len(data) if count is None else count

    def read(self, size: int) -> bytes:
        """Read up to *size* bytes, waiting at most the port timeout.

        Returns whatever arrived, which may be fewer than *size* bytes
        or ``b""`` on timeout.

        Raises:
            TransceiveError: If the port reports a read failure.
        """
        try:
            return self._ser.read(size)
        except serial.SerialException as exc:
            raise TransceiveError(
                "read from {} failed: {}".format(self.port, exc)
            ) from exc

    def flush_input(self) -> None:
        """Discard anything sitting in the receive buffer."""
        try:
            self._ser.reset_input_buffer()
        except serial.SerialException as exc:
            raise TransceiveError(
                "flush of {} failed: {}".format(self.port, exc)
            ) from exc

    def drain_output(self) -> None:
        """Block until all written bytes have left the port."""
        try:
            self._ser.flush()
        except serial.SerialException as exc:
            raise TransceiveError(
                "drain of {} failed: {}".format(self.port, exc)
            ) from exc

    def close(self) -> None:
        """Close the serial port.

        Raises:
            TransceiveError: If the port reports an error while closing.
        """
        try:
            self._ser.close()
        except serial.SerialException as exc:
            raise TransceiveError(
                "close of {} failed: {}".format(self.port, exc)
            ) from exc

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
