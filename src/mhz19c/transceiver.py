"""Request/response exchange over a byte channel.

One exchange is: drop stale input, write the 9-byte request, then
collect the 9-byte reply across as many reads as it takes, up to a
fixed number of attempts.  Serial drivers hand back whatever has
arrived so far, so a reply routinely shows up in fragments.

Example:
    >>> from mhz19c.transceiver import Transceiver
    >>> from mhz19c.protocol import READ_CO2
    >>> tx = Transceiver(channel)
    >>> tx.exchange(READ_CO2).hex(' ')
    '02 58 2d'
"""

import logging

from mhz19c.config import RETRY_LIMIT
from mhz19c.errors import ReadTimeout, UnexpectedResponse, WriteError
from mhz19c.protocol import PROTO_FRAME_LEN, decode_response, encode_request

log = logging.getLogger(__name__)


class Transceiver:
    """Drives single request/response exchanges on a channel.

    Args:
        channel: Object with ``write``, ``read``, ``flush_input`` and
            ``drain_output`` (see ``mhz19c.channel.SerialChannel``).
        retries: Maximum number of read calls per reply.
        verbose: Log frames at INFO instead of DEBUG.
    """

    def __init__(self, channel, retries: int = RETRY_LIMIT, verbose: bool = False):
        if retries < 1:
            raise ValueError("retries must be positive, got {}".format(retries))
        self._channel = channel
        self._retries = retries
        self.verbose = verbose

    def exchange(self, command, payload: bytes = b"") -> bytes:
        """Send *command* and return the reply data it uses.

        Args:
            command: A ``mhz19c.protocol.Command``.
            payload: Request payload (at most 5 bytes).

        Returns:
            bytes: The first ``command.response_width`` reply data bytes;
                ``b""`` for commands with no reply.

        Raises:
            WriteError: If the channel accepts fewer than 9 bytes.
            ReadTimeout: If 9 reply bytes do not arrive in time.
            ChecksumMismatch: If the reply is corrupted.
            UnexpectedResponse: If the reply is malformed or answers a
                different command.
        """
        request = encode_request(command.opcode, payload)

        self._channel.flush_input()
        self._log_frame("tx", command, request)
        count = self._channel.write(request)
        if count != PROTO_FRAME_LEN:
            raise WriteError(
                "{}: short write, {} of {} bytes".format(
                    command.name, count, PROTO_FRAME_LEN
                )
            )
        self._channel.drain_output()

        if not command.expects_reply:
            return b""

        raw = self._receive(command)
        self._log_frame("rx", command, raw)

        reply = decode_response(raw)
        if reply.command != command.opcode:
            raise UnexpectedResponse(
                "{}: reply is for command 0x{:02X}, expected 0x{:02X}".format(
                    command.name, reply.command, command.opcode
                )
            )
        return reply.payload[: command.response_width]

    def _receive(self, command) -> bytes:
        """Accumulate one reply frame, at most ``retries`` reads."""
        buf = bytearray()
        for attempt in range(1, self._retries + 1):
            chunk = self._channel.read(PROTO_FRAME_LEN - len(buf))
            if chunk:
                buf += chunk
            if len(buf) >= PROTO_FRAME_LEN:
                return bytes(buf[:PROTO_FRAME_LEN])
            log.debug(
                "%s: %d/%d bytes after attempt %d",
                command.name, len(buf), PROTO_FRAME_LEN, attempt,
            )
        raise ReadTimeout(
            "{}: got {} of {} bytes after {} reads".format(
                command.name, len(buf), PROTO_FRAME_LEN, self._retries
            )
        )

    def _log_frame(self, direction: str, command, frame: bytes) -> None:
        level = logging.INFO if self.verbose else logging.DEBUG
        log.log(level, "%s %s: %s", direction, command.name, frame.hex(" "))
