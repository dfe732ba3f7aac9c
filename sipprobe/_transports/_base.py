"""
Base connection abstractions for the probe transports.

A connection is a byte stream with a separate buffered read side and write
side over one socket. The engine writes whole rendered messages and reads
the response back one line at a time.
"""

from __future__ import annotations

import abc
import socket
from typing import BinaryIO, Optional

from .._types import ReadError, TransportError, WriteError


class BaseConnection(abc.ABC):
    """
    Abstract base class for a duplex, line-oriented SIP connection.

    All connections must implement write/flush/readline/close and can be
    used as context managers.
    """

    def __init__(self, peer: str = "") -> None:
        self.peer = peer
        self._closed = False

    @abc.abstractmethod
    def write(self, data: bytes) -> None:
        """
        Append bytes to the write side.

        Raises:
            WriteError: On send failure
        """
        ...

    @abc.abstractmethod
    def flush(self) -> None:
        """
        Push buffered bytes to the peer.

        Raises:
            WriteError: On send failure
        """
        ...

    @abc.abstractmethod
    def readline(self, limit: int = -1) -> bytes:
        """
        Read one newline-terminated chunk.

        Blocks until a full line, ``limit`` bytes or end-of-stream.

        Args:
            limit: Maximum number of bytes to return (-1 for no cap)

        Returns:
            Raw bytes including the line terminator, b"" at end-of-stream

        Raises:
            ReadError: On receive failure
        """
        ...

    @abc.abstractmethod
    def close(self) -> None:
        """Close write side, read side and socket, in that order."""
        ...

    def send(self, data: bytes) -> None:
        """Write and flush."""
        self.write(data)
        self.flush()

    def __enter__(self) -> BaseConnection:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager and close connection."""
        self.close()

    @property
    def is_closed(self) -> bool:
        """Check if connection is closed."""
        return self._closed


class StreamConnection(BaseConnection):
    """Connection over a connected stream socket (plain or TLS)."""

    def __init__(self, sock: socket.socket, peer: str = "", protocol: str = "TCP") -> None:
        super().__init__(peer)
        self.protocol = protocol
        self._socket: Optional[socket.socket] = sock
        self._writer: Optional[BinaryIO] = sock.makefile("wb")
        self._reader: Optional[BinaryIO] = sock.makefile("rb")

    def write(self, data: bytes) -> None:
        if self._writer is None or self._closed:
            raise TransportError("Connection is closed")
        try:
            self._writer.write(data)
        except OSError as e:
            raise WriteError(f"Failed to send {self.protocol} data to {self.peer}: {e}") from e

    def flush(self) -> None:
        if self._writer is None or self._closed:
            raise TransportError("Connection is closed")
        try:
            self._writer.flush()
        except OSError as e:
            raise WriteError(f"Failed to send {self.protocol} data to {self.peer}: {e}") from e

    def readline(self, limit: int = -1) -> bytes:
        if self._reader is None or self._closed:
            raise TransportError("Connection is closed")
        try:
            return self._reader.readline(limit)
        except socket.timeout as e:
            raise ReadError(f"{self.protocol} read from {self.peer} timed out") from e
        except OSError as e:
            raise ReadError(f"Failed to receive {self.protocol} data from {self.peer}: {e}") from e

    def close(self) -> None:
        for stream in (self._writer, self._reader):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass  # Peer already gone
        self._writer = None
        self._reader = None
        if self._socket is not None:
            try:
                self._socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # Already closed
            self._socket.close()
            self._socket = None
        self._closed = True

    def __repr__(self) -> str:
        status = "closed" if self._closed else "open"
        return f"<StreamConnection({self.protocol}:{self.peer}, {status})>"


__all__ = ["BaseConnection", "StreamConnection"]
