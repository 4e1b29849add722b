"""
Shared fixtures for pest tests.
"""

import pytest


class FakeChannel:
    """In-memory channel: reads from a scripted peer, records writes."""

    def __init__(self, incoming: bytes = b"", fail_writes: bool = False):
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.fail_writes = fail_writes
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.fail_writes:
            raise BrokenPipeError("peer went away")
        self.written += data

    def read(self, size: int) -> bytes:
        chunk = bytes(self.incoming[:size])
        del self.incoming[:size]
        return chunk

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def channel_factory():
    """Build a FakeChannel preloaded with the peer's lines."""
    def make(*lines, **kwargs):
        data = b"".join(line.encode("utf-8") if isinstance(line, str) else line
                        for line in lines)
        return FakeChannel(data, **kwargs)
    return make


@pytest.fixture
def fixed_clock():
    """A clock that always reads 7."""
    return lambda: 7
