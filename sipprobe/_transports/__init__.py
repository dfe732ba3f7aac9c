"""
Probe transport layer.

This package provides the stream transports the probe can use:
- TCP: plain SIP on port 5060
- TLS: SIP over TLS on port 5061

``open_connection`` selects between them from the target's transport mode.
"""

from __future__ import annotations

from typing import Optional

from .._types import (
    ConnectionError,
    HostUnresolvedError,
    ReadError,
    Target,
    TransportConfig,
    TransportError,
    TransportMode,
    WriteError,
)
from ._base import BaseConnection, StreamConnection
from ._tcp import TCPTransport
from ._tls import TLSTransport


def open_connection(
    target: Target, config: Optional[TransportConfig] = None
) -> BaseConnection:
    """
    Open a connection to the target using its transport mode.

    Args:
        target: Far end description
        config: Transport configuration (ports, timeouts)

    Returns:
        Connected duplex connection

    Raises:
        HostUnresolvedError: If the host name cannot be resolved
        ConnectionError: If the connect or TLS handshake fails
    """
    config = config or TransportConfig()
    if target.transport is TransportMode.TLS:
        return TLSTransport(target.ca_certs, config).connect(target.host)
    return TCPTransport(config).connect(target.host)


__all__ = [
    # Selector
    "open_connection",
    # Connections
    "BaseConnection",
    "StreamConnection",
    # Transports
    "TCPTransport",
    "TLSTransport",
    "TransportConfig",
    # Exceptions
    "TransportError",
    "HostUnresolvedError",
    "ConnectionError",
    "ReadError",
    "WriteError",
]
