"""
Type definitions for the SIP probe.

This module centralizes the value types shared by the transport selector,
the message builder and the transaction engine, together with the probe
exception hierarchy and the transaction state enum.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from ._utils import PLAIN_PORT, TLS_PORT


# =============================================================================
# Modes
# =============================================================================


class ProbeMode(Enum):
    """Kind of request the probe sends."""

    EARLY = "early"  # INVITE carrying an SDP offer
    DELAYED = "delayed"  # INVITE without SDP
    OPTIONS = "options"  # direct reachability probe

    @classmethod
    def parse(cls, value: str | ProbeMode) -> ProbeMode:
        if isinstance(value, ProbeMode):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(
                f'Invalid mode {value!r}. Enter "early", "delayed" or "options"'
            ) from None

    @property
    def is_invite(self) -> bool:
        return self is not ProbeMode.OPTIONS


class TransportMode(Enum):
    """Stream transport used to reach the target."""

    PLAIN = "plain"
    TLS = "tls"

    @property
    def via_protocol(self) -> str:
        return "TLS" if self is TransportMode.TLS else "TCP"

    @property
    def uri_param(self) -> str:
        return self.value if self is TransportMode.TLS else "tcp"


# =============================================================================
# Transport Configuration
# =============================================================================


@dataclass
class TransportConfig:
    """Configuration for the probe transports."""

    # Well-known ports
    plain_port: int = PLAIN_PORT
    tls_port: int = TLS_PORT

    # Timeouts (in seconds). None blocks until the peer answers or closes.
    connect_timeout: Optional[float] = None
    read_timeout: Optional[float] = None

    # TLS settings (used only for TLS transport)
    verify_mode: bool = True

    def port_for(self, mode: TransportMode) -> int:
        return self.tls_port if mode is TransportMode.TLS else self.plain_port


# =============================================================================
# Call parameters
# =============================================================================


@dataclass(frozen=True)
class Target:
    """Immutable description of the far end."""

    host: str
    user: Optional[str] = None
    domain: Optional[str] = None
    transport: TransportMode = TransportMode.PLAIN
    ca_certs: Optional[str] = None

    @property
    def is_tls(self) -> bool:
        return self.transport is TransportMode.TLS

    @property
    def options_domain(self) -> str:
        """Domain an OPTIONS request is addressed to."""
        return self.domain or self.host

    def validate(
        self, mode: ProbeMode, config: Optional[TransportConfig] = None
    ) -> None:
        """
        Check the target carries what the given mode needs.

        A trust store is required for TLS unless ``config`` turns
        certificate verification off.

        Raises:
            ValueError: If a required URI part or trust store is missing
        """
        if not self.host:
            raise ValueError("Target host is required")
        if mode.is_invite and not (self.user and self.domain):
            raise ValueError(
                f"{mode.value} INVITE requires both URI user part and domain part"
            )
        verify = config.verify_mode if config is not None else True
        if self.is_tls and verify and not self.ca_certs:
            raise ValueError("TLS transport requires a trust store path")


def generate_call_id() -> str:
    """Return a random 5 digit decimal call identifier."""
    return str(random.randint(10000, 99999))


@dataclass
class CallContext:
    """Per-call identifiers, reused across every request of one logical call."""

    source_ip: str
    call_id: str = field(default_factory=generate_call_id)
    cseq: int = 1


# =============================================================================
# Transaction states
# =============================================================================


class ProbeState(Enum):
    """States a single probe transaction moves through."""

    IDLE = auto()
    CONNECTED = auto()
    REQUEST_SENT = auto()
    AWAITING_FINAL = auto()
    DIALOG_ESTABLISHED = auto()
    ACK_SENT = auto()
    OPTIONS_AWAITING_RESPONSE = auto()
    CLOSED = auto()


# =============================================================================
# Exceptions
# =============================================================================


class ProbeError(Exception):
    """Base exception for every probe failure."""

    pass


class TransportError(ProbeError):
    """Base exception for transport errors."""

    pass


class HostUnresolvedError(TransportError):
    """Raised when the target host name cannot be resolved."""

    pass


class ConnectionError(TransportError):
    """Raised when the TCP connect or the TLS handshake fails."""

    pass


class WriteError(TransportError):
    """Raised when writing to the connection fails."""

    pass


class ReadError(TransportError):
    """Raised when reading from the connection fails."""

    pass


class MalformedResponseError(ProbeError):
    """Raised when a response header the engine depends on cannot be parsed."""

    pass


class InvalidTransitionError(ProbeError):
    """Raised when the transaction is asked to make an undefined transition."""

    pass


__all__ = [
    # Modes
    "ProbeMode",
    "TransportMode",
    # Configuration
    "TransportConfig",
    # Call parameters
    "Target",
    "CallContext",
    "generate_call_id",
    # States
    "ProbeState",
    # Exceptions
    "ProbeError",
    "TransportError",
    "HostUnresolvedError",
    "ConnectionError",
    "WriteError",
    "ReadError",
    "MalformedResponseError",
    "InvalidTransitionError",
]
