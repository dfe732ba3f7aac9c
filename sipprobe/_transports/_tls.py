"""
TLS transport implementation for the probe.

Built on top of the TCP transport, wrapping the connected socket with the
platform's default TLS client configuration and the supplied trust store.
"""

from __future__ import annotations

import ssl
from typing import Optional

from .._types import ConnectionError, TransportConfig
from .._utils import logger
from ._base import StreamConnection
from ._tcp import TCPTransport


class TLSTransport(TCPTransport):
    """
    Synchronous TLS transport (SIP over TLS on port 5061).

    The trust store is a PEM bundle of CA certificates used to verify the
    target's certificate chain.
    """

    protocol = "TLS"

    def __init__(
        self,
        ca_certs: Optional[str] = None,
        config: Optional[TransportConfig] = None,
    ) -> None:
        """
        Initialize TLS transport.

        Args:
            ca_certs: Trust store path
            config: Transport configuration

        Raises:
            ConnectionError: If the trust store cannot be loaded
        """
        super().__init__(config)
        self.ca_certs = ca_certs
        self._ssl_context = self._create_ssl_context()

    def _create_ssl_context(self) -> ssl.SSLContext:
        """
        Create SSL context with configuration.

        Returns:
            Configured SSL context
        """
        # Create context with platform defaults
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)

        # Configure verification
        if not self.config.verify_mode:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        # Apply the supplied trust store
        if self.ca_certs:
            try:
                context.load_verify_locations(cafile=self.ca_certs)
            except (OSError, ssl.SSLError) as e:
                raise ConnectionError(
                    f"Failed to load trust store {self.ca_certs}: {e}"
                ) from e

        return context

    def connect(self, host: str, port: Optional[int] = None) -> StreamConnection:
        """
        Connect and complete the TLS handshake with ``host:port``.

        Raises:
            HostUnresolvedError: If name lookup fails
            ConnectionError: If connection or handshake fails
        """
        port = self.config.tls_port if port is None else port
        logger.debug(f"Opening TLS connection to {host}:{port}")
        raw_socket = self._open_socket(host, port)
        try:
            tls_socket = self._ssl_context.wrap_socket(raw_socket, server_hostname=host)
        except ssl.SSLError as e:
            raw_socket.close()
            raise ConnectionError(
                f"TLS handshake failed with {host}:{port}: {e}"
            ) from e
        except OSError as e:
            raw_socket.close()
            raise ConnectionError(f"Failed to connect to {host}:{port}: {e}") from e

        logger.debug(f"TLS established: {tls_socket.version()} {tls_socket.cipher()}")
        return StreamConnection(tls_socket, peer=f"{host}:{port}", protocol=self.protocol)

    def __repr__(self) -> str:
        return f"<TLSTransport(port={self.config.tls_port}, ca_certs={self.ca_certs!r})>"


__all__ = ["TLSTransport"]
