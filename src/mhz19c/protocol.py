"""Frame encoding and decoding for the MH-Z19C UART protocol.

Every exchange is a fixed 9-byte request followed by a fixed 9-byte
reply.  The two directions lay out the bytes slightly differently:

    request:  START(0xFF) RESERVED(0x01) CMD PAYLOAD(5) CHECKSUM
    reply:    START(0xFF) CMD DATA(6) CHECKSUM

Both use the same additive checksum over bytes 1..7, so one routine
serves both directions.

Example:
    >>> from mhz19c.protocol import encode_request, READ_CO2
    >>> encode_request(READ_CO2.opcode).hex(' ')
    'ff 01 86 00 00 00 00 00 79'
"""

from dataclasses import dataclass

from mhz19c.errors import ChecksumMismatch, UnexpectedResponse

# -- Protocol constants ------------------------------------------------------

PROTO_START = 0xFF
PROTO_RESERVED = 0x01
PROTO_FRAME_LEN = 9
PROTO_REQUEST_PAYLOAD_LEN = 5
PROTO_RESPONSE_PAYLOAD_LEN = 6

# SET_AUTO_CALIB request payload byte.
PROTO_CALIB_ON = 0xA0
PROTO_CALIB_OFF = 0x00

# READ_CO2 reports temperature with this offset added.
PROTO_TEMP_OFFSET = 40


@dataclass(frozen=True)
class Command:
    """One entry of the sensor command catalogue.

    ``response_width`` is how many reply data bytes the command uses;
    ``expects_reply`` is False for commands the sensor never answers.
    """

    name: str
    opcode: int
    response_width: int
    expects_reply: bool = True


READ_CO2 = Command("read_co2", 0x86, 3)
READ_TEMPERATURE = Command("read_temperature", 0x85, 4)
SET_AUTO_CALIB = Command("set_auto_calib", 0x79, 0)
GET_AUTO_CALIB = Command("get_auto_calib", 0x7D, 6)
ZERO_CALIBRATION = Command("zero_calibration", 0x87, 0, expects_reply=False)
GET_VERSION = Command("get_version", 0xA0, 4)

COMMANDS = {
    cmd.opcode: cmd
    for cmd in (
        READ_CO2,
        READ_TEMPERATURE,
        SET_AUTO_CALIB,
        GET_AUTO_CALIB,
        ZERO_CALIBRATION,
        GET_VERSION,
    )
}


@dataclass(frozen=True)
class Variant:
    """A protocol revision: the commands it knows and its CO2 reply shape."""

    name: str
    commands: frozenset
    co2_temperature: bool = True

    def supports(self, command: Command) -> bool:
        """Return True if *command* is part of this revision."""
        return command.opcode in self.commands


VARIANTS = {
    "full": Variant("full", frozenset(COMMANDS)),
    "basic": Variant(
        "basic",
        frozenset([READ_CO2.opcode, SET_AUTO_CALIB.opcode]),
        co2_temperature=False,
    ),
}


def get_variant(name: str) -> Variant:
    """Look up a protocol variant by name.

    Raises:
        ValueError: If *name* is not a known variant.
    """
    try:
        return VARIANTS[name]
    except KeyError:
        raise ValueError(
            "unknown variant '{}', expected one of {}".format(
                name, ", ".join(sorted(VARIANTS))
            )
        ) from None


@dataclass(frozen=True)
class Frame:
    """Decoded protocol frame."""

    command: int
    payload: bytes

    def __repr__(self) -> str:
        return "Frame(command=0x{:02X}, payload={})".format(
            self.command, self.payload.hex(" ") or "(empty)"
        )


# -- Checksum ----------------------------------------------------------------


def checksum(frame: bytes) -> int:
    """Compute the MH-Z19 checksum of a frame.

    Sums bytes 1..7 modulo 256 and returns the two's complement of the
    sum.  Byte 0 (START) and byte 8 (the checksum slot) are ignored, so
    the same call works on a fully built frame or on the first 8 bytes
    of one still under construction.

    Args:
        frame: At least 8 bytes.

    Returns:
        int: Checksum byte (0-255).

    Example:
        >>> checksum(bytes.fromhex('ff 01 86 00 00 00 00 00'))
        121
    """
    total = sum(frame[1:8]) & 0xFF
    return (0xFF - total + 1) & 0xFF


def _seal(body: bytes) -> bytes:
    """Append the checksum to an 8-byte frame body."""
    return body + bytes([checksum(body)])


# -- Encoding ----------------------------------------------------------------


def encode_request(opcode: int, payload: bytes = b"") -> bytes:
    """Build a 9-byte request frame.

    The payload is right-padded with zeros to fill the 5-byte slot.

    Raises:
        ValueError: If *payload* is longer than 5 bytes.

    Example:
        >>> encode_request(0x79, bytes([PROTO_CALIB_ON])).hex(' ')
        'ff 01 79 a0 00 00 00 00 e6'
    """
    if len(payload) > PROTO_REQUEST_PAYLOAD_LEN:
        raise ValueError(
            "request payload must be at most {} bytes, got {}".format(
                PROTO_REQUEST_PAYLOAD_LEN, len(payload)
            )
        )
    body = bytes([PROTO_START, PROTO_RESERVED, opcode]) + payload.ljust(
        PROTO_REQUEST_PAYLOAD_LEN, b"\x00"
    )
    return _seal(body)


def encode_response(opcode: int, data: bytes = b"") -> bytes:
    """Build a 9-byte reply frame as the sensor would send it.

    Used by the simulator and by tests.

    Raises:
        ValueError: If *data* is longer than 6 bytes.

    Example:
        >>> encode_response(0x86, bytes([0x02, 0x58, 0x2D])).hex(' ')
        'ff 86 02 58 2d 00 00 00 f3'
    """
    if len(data) > PROTO_RESPONSE_PAYLOAD_LEN:
        raise ValueError(
            "response data must be at most {} bytes, got {}".format(
                PROTO_RESPONSE_PAYLOAD_LEN, len(data)
            )
        )
    body = bytes([PROTO_START, opcode]) + data.ljust(
        PROTO_RESPONSE_PAYLOAD_LEN, b"\x00"
    )
    return _seal(body)


# -- Decoding ----------------------------------------------------------------


def _verify(data: bytes) -> None:
    """Check length, START byte and checksum of a received frame."""
    if len(data) != PROTO_FRAME_LEN:
        raise UnexpectedResponse(
            "frame must be {} bytes, got {}".format(PROTO_FRAME_LEN, len(data))
        )
    if data[0] != PROTO_START:
        raise UnexpectedResponse(
            "bad START byte: expected 0x{:02X}, got 0x{:02X}".format(
                PROTO_START, data[0]
            )
        )
    expected = checksum(data)
    if data[8] != expected:
        raise ChecksumMismatch(expected, data[8])


def decode_response(data: bytes) -> Frame:
    """Parse a 9-byte reply from the sensor.

    Returns the command byte (offset 1) and the 6 data bytes that
    follow it; the caller reinterprets them per command.

    Raises:
        ChecksumMismatch: If the checksum byte does not match.
        UnexpectedResponse: If the frame has the wrong length or START.

    Example:
        >>> frame = decode_response(bytes.fromhex('ff 86 02 58 2d 00 00 00 f3'))
        >>> hex(frame.command), frame.payload[:2].hex()
        ('0x86', '0258')
    """
    _verify(data)
    return Frame(data[1], bytes(data[2:8]))


def decode_request(data: bytes) -> Frame:
    """Parse a 9-byte request frame (the sensor's view of the exchange).

    Returns the command byte (offset 2) and the 5-byte payload.

    Raises:
        ChecksumMismatch: If the checksum byte does not match.
        UnexpectedResponse: If the frame has the wrong length, START or
            reserved byte.
    """
    _verify(data)
    if data[1] != PROTO_RESERVED:
        raise UnexpectedResponse(
            "bad reserved byte: expected 0x{:02X}, got 0x{:02X}".format(
                PROTO_RESERVED, data[1]
            )
        )
    return Frame(data[2], bytes(data[3:8]))


# -- Payload interpretation --------------------------------------------------


def _require_width(payload: bytes, command: Command) -> None:
    if len(payload) < command.response_width:
        raise UnexpectedResponse(
            "{} payload must be at least {} bytes, got {}".format(
                command.name, command.response_width, len(payload)
            )
        )


def parse_co2(payload: bytes, with_temperature: bool = True):
    """Parse a READ_CO2 payload into ``(ppm, temperature)``.

    ppm is big-endian in bytes 0..1.  Byte 2 holds the temperature plus
    40; revisions that do not report it get ``None``.

    Example:
        >>> parse_co2(bytes([0x02, 0x58, 0x2D]))
        (600, 5)
    """
    if not with_temperature:
        if len(payload) < 2:
            raise UnexpectedResponse(
                "read_co2 payload must be at least 2 bytes, got {}".format(
                    len(payload)
                )
            )
        return int.from_bytes(payload[0:2], "big"), None
    _require_width(payload, READ_CO2)
    ppm = int.from_bytes(payload[0:2], "big")
    return ppm, payload[2] - PROTO_TEMP_OFFSET


def parse_temperature(payload: bytes) -> float:
    """Parse a READ_TEMPERATURE payload into degrees C.

    Bytes 2..3 are a big-endian count of hundredths of a degree.

    Example:
        >>> parse_temperature(bytes([0x00, 0x00, 0x09, 0x60]))
        24.0
    """
    _require_width(payload, READ_TEMPERATURE)
    return int.from_bytes(payload[2:4], "big") / 100.0


def parse_auto_calib(payload: bytes) -> bool:
    """Parse a GET_AUTO_CALIB payload; byte 5 is nonzero when ABC is on."""
    _require_width(payload, GET_AUTO_CALIB)
    return payload[5] != 0


def parse_version(payload: bytes) -> str:
    """Parse a GET_VERSION payload into a 4-character string.

    Example:
        >>> parse_version(b"0513")
        '0513'
    """
    _require_width(payload, GET_VERSION)
    return payload[:4].decode("ascii", errors="replace")
