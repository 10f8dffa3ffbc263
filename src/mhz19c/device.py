"""Device handle for one MH-Z19C sensor.

Owns the channel for its whole open lifetime and exposes the command
catalogue as methods.  A handle goes new -> open -> closed exactly
once; a closed handle cannot be reopened.

Example:
    >>> from mhz19c.device import MHZ19C
    >>> with MHZ19C("/dev/serial0") as sensor:
    ...     sensor.read_co2()
    SensorReading(co2_ppm=612, temperature=24)
"""

import logging

from mhz19c import commands
from mhz19c.channel import SerialChannel
from mhz19c.config import DEFAULT_PORT, DEFAULT_VARIANT, RETRY_LIMIT, TIMEOUT_MS
from mhz19c.errors import (
    AlreadyClosed,
    AlreadyOpen,
    MHZ19Error,
    NotOpen,
    UnsupportedCommand,
)
from mhz19c.protocol import (
    GET_AUTO_CALIB,
    GET_VERSION,
    READ_CO2,
    READ_TEMPERATURE,
    SET_AUTO_CALIB,
    ZERO_CALIBRATION,
    get_variant,
)
from mhz19c.reading import SensorReading
from mhz19c.transceiver import Transceiver

log = logging.getLogger(__name__)

_NEW = "new"
_OPEN = "open"
_CLOSED = "closed"


class MHZ19C:
    """Handle for an MH-Z19C sensor on a serial port.

    Args:
        port: Serial port device path.
        verbose: Log every frame at INFO level.
        variant: Protocol revision name (``"full"`` or ``"basic"``).
        timeout_ms: Per-read timeout handed to the channel.
        retries: Read attempts per exchange.
        channel_factory: Callable ``(port, timeout_ms) -> channel``;
            defaults to ``SerialChannel``.

    Attributes:
        version: Firmware version read during ``open()``, or None if
            the sensor never answered.
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        *,
        verbose: bool = False,
        variant: str = DEFAULT_VARIANT,
        timeout_ms: int = TIMEOUT_MS,
        retries: int = RETRY_LIMIT,
        channel_factory=SerialChannel,
    ):
        if retries < 1:
            raise ValueError("retries must be >= 1, got {}".format(retries))
        self.port = port
        self.variant = get_variant(variant)
        self.timeout_ms = timeout_ms
        self.retries = retries
        self.version: str | None = None
        self._verbose = verbose
        self._channel_factory = channel_factory
        self._channel = None
        self._tx: Transceiver | None = None
        self._state = _NEW

    # -- Lifecycle -----------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._state == _OPEN

    @property
    def verbose(self) -> bool:
        return self._verbose

    def set_verbose(self, verbose: bool) -> None:
        """Turn per-frame logging at INFO level on or off."""
        self._verbose = verbose
        if self._tx is not None:
            self._tx.verbose = verbose

    def open(self) -> None:
        """Open the channel and try to read the firmware version.

        The version query is best effort: it is one exchange, bounded by
        the same read ceiling as any command, and its failure is only
        logged.  If anything else goes wrong after the channel was
        created, the channel is closed again and the handle stays new.

        Raises:
            ChannelOpenError: If the serial port cannot be opened.
            AlreadyOpen: If the handle is already open.
            AlreadyClosed: If the handle was closed before.
        """
        if self._state == _OPEN:
            raise AlreadyOpen("sensor on {} is already open".format(self.port))
        if self._state == _CLOSED:
            raise AlreadyClosed("sensor on {} was closed".format(self.port))

        channel = self._channel_factory(self.port, self.timeout_ms)
        try:
            self._channel = channel
            self._tx = Transceiver(channel, self.retries, self._verbose)
            self._state = _OPEN
            log.debug("opened %s (variant=%s)", self.port, self.variant.name)

            if self.variant.supports(GET_VERSION):
                self._query_version()
        except BaseException:
            self._channel = None
            self._tx = None
            self._state = _NEW
            channel.close()
            raise

    def _query_version(self) -> None:
        try:
            self.version = commands.get_version(self._tx)
        except MHZ19Error as exc:
            log.warning("no firmware version from %s: %s", self.port, exc)
            return
        log.info("firmware version %s", self.version)

    def close(self) -> None:
        """Release the channel.

        Raises:
            NotOpen: If the handle was never opened.
            AlreadyClosed: If the handle is already closed.
        """
        if self._state == _NEW:
            raise NotOpen("sensor on {} was never opened".format(self.port))
        if self._state == _CLOSED:
            raise AlreadyClosed("sensor on {} is already closed".format(self.port))

        self._state = _CLOSED
        channel, self._channel, self._tx = self._channel, None, None
        channel.close()
        log.debug("closed %s", self.port)

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._state == _OPEN:
            self.close()
        return False

    def _transceiver(self, command) -> Transceiver:
        """Return the transceiver after checking state and variant."""
        if self._state != _OPEN:
            raise NotOpen(
                "{}: sensor on {} is not open".format(command.name, self.port)
            )
        if not self.variant.supports(command):
            raise UnsupportedCommand(
                "{} is not supported by the '{}' variant".format(
                    command.name, self.variant.name
                )
            )
        return self._tx

    # -- Commands ------------------------------------------------------------

    def read_co2(self) -> SensorReading:
        """Read CO2 ppm and, where the variant reports it, temperature."""
        tx = self._transceiver(READ_CO2)
        return commands.read_co2(tx, self.variant.co2_temperature)

    def read_temperature(self) -> float:
        """Read temperature in degrees C via the undocumented 0x85."""
        return commands.read_temperature(self._transceiver(READ_TEMPERATURE))

    def set_auto_calib(self, on: bool) -> None:
        commands.set_auto_calib(self._transceiver(SET_AUTO_CALIB), on)

    def get_auto_calib(self) -> bool:
        return commands.get_auto_calib(self._transceiver(GET_AUTO_CALIB))

    def zero_calibration(self) -> None:
        commands.zero_calibration(self._transceiver(ZERO_CALIBRATION))

    def get_version(self) -> str:
        """Query the firmware version and refresh the cached copy."""
        self.version = commands.get_version(self._transceiver(GET_VERSION))
        return self.version
