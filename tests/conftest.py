"""Shared pytest fixtures for mhz19c tests."""

from mhz19c.protocol import encode_response


def make_reply(opcode: int, data: bytes = b"") -> bytes:
    """Build a valid sensor reply frame for testing."""
    return encode_response(opcode, data)


def co2_reply(ppm: int, temp: int) -> bytes:
    """Build a READ_CO2 reply carrying *ppm* and *temp* (degrees C)."""
    return make_reply(0x86, ppm.to_bytes(2, "big") + bytes([temp + 40]))


class FakeChannel:
    """Test double for SerialChannel: scripted reads, records writes.

    Args:
        chunks: Byte strings handed out by successive ``read`` calls;
            ``b""`` entries simulate a timed-out read.  Once exhausted,
            every read times out.
        stale: Bytes already waiting in the receive buffer; discarded
            by ``flush_input``.
        accept: If set, ``write`` reports this many bytes accepted.
    """

    def __init__(self, chunks=(), stale=b"", accept=None):
        self._chunks = list(chunks)
        self._stale = stale
        self._accept = accept
        self.written = []
        self.calls = []
        self.reads = 0
        self.closed = False

    def queue(self, *chunks: bytes) -> None:
        """Append more scripted read results."""
        self._chunks.extend(chunks)

    def write(self, data: bytes) -> int:
        """Record *data*; report the configured accepted count."""
        self.calls.append("write")
        self.written.append(bytes(data))
        return len(data) if self._accept is None else self._accept

    def read(self, size: int) -> bytes:
        """Return up to *size* bytes of the next scripted chunk."""
        self.calls.append("read")
        self.reads += 1
        if self._stale:
            out, self._stale = self._stale[:size], self._stale[size:]
            return out
        if not self._chunks:
            return b""
        chunk = self._chunks.pop(0)
        if len(chunk) > size:
            self._chunks.insert(0, chunk[size:])
            chunk = chunk[:size]
        return chunk

    def flush_input(self) -> None:
        """Drop stale input."""
        self.calls.append("flush_input")
        self._stale = b""

    def drain_output(self) -> None:
        """No-op drain, recorded."""
        self.calls.append("drain_output")

    def close(self) -> None:
        """Mark the channel closed."""
        self.calls.append("close")
        self.closed = True


class FakeChannelFactory:
    """Callable standing in for SerialChannel in device tests.

    Every call returns the same *channel* and records its arguments.
    """

    def __init__(self, channel: FakeChannel):
        self.channel = channel
        self.opened = []

    def __call__(self, port: str, timeout_ms: int) -> FakeChannel:
        self.opened.append((port, timeout_ms))
        return self.channel
