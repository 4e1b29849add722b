"""
Connections for running scripts against live peers.

The interpreter only needs a ``Channel``: an ordered, reliable byte
stream it can write to and read from. ``SocketChannel`` provides one
over TCP; tests substitute in-memory channels.
"""

import socket
from typing import Optional, Protocol, Tuple


class Channel(Protocol):
    """Byte-oriented duplex connection used by send and receive."""

    def write(self, data: bytes) -> None:
        """Write all of ``data``, blocking until done."""
        ...

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; ``b''`` means end of stream."""
        ...

    def close(self) -> None:
        ...


class SocketChannel:
    """A ``Channel`` over a connected stream socket."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._reader = sock.makefile("rb")

    @classmethod
    def connect(cls, address: Tuple[str, int], timeout: Optional[float] = None) -> "SocketChannel":
        """Open a TCP connection; ``timeout`` also bounds every later read and write."""
        sock = socket.create_connection(address, timeout=timeout)
        return cls(sock)

    def write(self, data: bytes) -> None:
        self.sock.sendall(data)

    def read(self, size: int) -> bytes:
        return self._reader.read(size)

    def close(self) -> None:
        self._reader.close()
        self.sock.close()

    def __enter__(self) -> "SocketChannel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split ``host:port`` (or ``[v6addr]:port``) into a socket address.

    Raises:
        ValueError: If the port is missing or not a number
    """
    host, sep, port = address.rpartition(':')
    if not sep or not host:
        raise ValueError(f"Invalid address: {address} (expected host:port)")
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"Invalid port in address: {address}")
    if not 0 < port_number < 65536:
        raise ValueError(f"Port out of range in address: {address}")
    return host, port_number


def connect(address: str, timeout: Optional[float] = None) -> SocketChannel:
    """Connect to ``host:port`` and return a ``SocketChannel``."""
    return SocketChannel.connect(parse_address(address), timeout=timeout)
