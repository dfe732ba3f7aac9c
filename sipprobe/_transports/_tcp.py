"""
TCP transport implementation for the probe.

Opens a plain, connection-oriented stream to the target's SIP port.
"""

from __future__ import annotations

import socket
from typing import Optional

from .._types import (
    ConnectionError,
    HostUnresolvedError,
    TransportConfig,
)
from .._utils import logger
from ._base import StreamConnection


class TCPTransport:
    """
    Synchronous TCP transport.

    Each call to :meth:`connect` returns a fresh connection; nothing is
    pooled or reused between transactions.
    """

    protocol = "TCP"

    def __init__(self, config: Optional[TransportConfig] = None) -> None:
        """
        Initialize TCP transport.

        Args:
            config: Transport configuration
        """
        self.config = config or TransportConfig()

    def _open_socket(self, host: str, port: int) -> socket.socket:
        """
        Resolve ``host`` and open a connected stream socket.

        Raises:
            HostUnresolvedError: If name lookup fails
            ConnectionError: If connection fails
        """
        try:
            sock = socket.create_connection((host, port), timeout=self.config.connect_timeout)
        except socket.gaierror as e:
            raise HostUnresolvedError(f"Don't know about host {host}: {e}") from e
        except OSError as e:
            raise ConnectionError(f"Failed to connect to {host}:{port}: {e}") from e

        # Blocking reads unless a read timeout is configured
        sock.settimeout(self.config.read_timeout)
        return sock

    def connect(self, host: str, port: Optional[int] = None) -> StreamConnection:
        """
        Connect to ``host:port`` (default: the configured plain SIP port).

        Returns:
            Connected stream connection
        """
        port = self.config.plain_port if port is None else port
        logger.debug(f"Opening TCP connection to {host}:{port}")
        sock = self._open_socket(host, port)
        return StreamConnection(sock, peer=f"{host}:{port}", protocol=self.protocol)

    def __repr__(self) -> str:
        return f"<TCPTransport(port={self.config.plain_port})>"


__all__ = ["TCPTransport"]
