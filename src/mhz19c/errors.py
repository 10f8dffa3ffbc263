"""Exception hierarchy for the MH-Z19C driver.

Every error raised by the driver derives from ``MHZ19Error`` so the
CLI can catch one type.  Frame-level failures are also ``ValueError``
subclasses, so code that treats a bad frame like any other malformed
input keeps working.

Example:
    >>> from mhz19c.errors import ChecksumMismatch
    >>> err = ChecksumMismatch(0x79, 0x78)
    >>> str(err)
    'checksum mismatch: expected 0x79, got 0x78'
"""


class MHZ19Error(Exception):
    """Base class for all driver errors."""


# -- Lifecycle ---------------------------------------------------------------


class ChannelOpenError(MHZ19Error):
    """The serial device could not be opened or configured."""


class NotOpen(MHZ19Error):
    """A command or close() was issued on a handle that is not open."""


class AlreadyOpen(MHZ19Error):
    """open() was called on a handle that is already open."""


class AlreadyClosed(MHZ19Error):
    """The handle has been closed and cannot be used again."""


class UnsupportedCommand(MHZ19Error):
    """The selected protocol variant does not implement the command."""


# -- Transfer ----------------------------------------------------------------


class TransceiveError(MHZ19Error):
    """Base class for failures moving bytes over the channel."""


class WriteError(TransceiveError):
    """The channel accepted fewer bytes than the frame holds."""


class ReadTimeout(TransceiveError):
    """A complete reply did not arrive within the retry ceiling."""


# -- Frames ------------------------------------------------------------------


class FrameError(MHZ19Error, ValueError):
    """Base class for frames that arrived but cannot be trusted."""


class ChecksumMismatch(FrameError):
    """The checksum byte does not match the frame contents.

    Args:
        expected: Checksum computed over bytes 1..7 (int).
        actual: Checksum byte found at offset 8 (int).
    """

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            "checksum mismatch: expected 0x{:02X}, got 0x{:02X}".format(
                expected, actual
            )
        )


class UnexpectedResponse(FrameError):
    """The reply is well formed but not what the request asked for."""
