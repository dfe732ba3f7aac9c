"""sipprobe - single-shot SIP signaling probe over TCP and TLS."""

from __future__ import annotations

# Transaction engine
from ._engine import Echo, TransactionOutcome, build_request, run_transaction

# FSM components
from ._fsm import DialogState, Transaction

# Message builder
from ._messages import (
    RenderedMessage,
    build_ack,
    build_delayed_offer_invite,
    build_early_offer_invite,
    build_options,
)

# SDP
from ._sdp import audio_port, build_audio_sdp, random_media_port

# Echo listener
from ._server import EchoListener

# Header tokenizer
from ._sip import HeaderField, StatusLine, parse_header_line, parse_status_line

# Transport layer
from ._transports import (
    BaseConnection,
    StreamConnection,
    TCPTransport,
    TLSTransport,
    open_connection,
)

# Types
from ._types import (
    CallContext,
    ConnectionError,
    HostUnresolvedError,
    InvalidTransitionError,
    MalformedResponseError,
    ProbeError,
    ProbeMode,
    ProbeState,
    ReadError,
    Target,
    TransportConfig,
    TransportError,
    TransportMode,
    WriteError,
    generate_call_id,
)

# Utilities
from ._utils import ConsoleEcho, console, logger

__version__ = "0.1.0"

__all__ = [
    # Engine - Main API
    "run_transaction",
    "build_request",
    "TransactionOutcome",
    "Echo",
    "ConsoleEcho",
    # FSM
    "Transaction",
    "DialogState",
    "ProbeState",
    # Messages
    "RenderedMessage",
    "build_early_offer_invite",
    "build_delayed_offer_invite",
    "build_options",
    "build_ack",
    # SDP
    "build_audio_sdp",
    "audio_port",
    "random_media_port",
    # Parsing
    "StatusLine",
    "HeaderField",
    "parse_status_line",
    "parse_header_line",
    # Transport
    "open_connection",
    "BaseConnection",
    "StreamConnection",
    "TCPTransport",
    "TLSTransport",
    "TransportConfig",
    # Listener
    "EchoListener",
    # Call parameters
    "Target",
    "CallContext",
    "ProbeMode",
    "TransportMode",
    "generate_call_id",
    # Exceptions
    "ProbeError",
    "TransportError",
    "HostUnresolvedError",
    "ConnectionError",
    "ReadError",
    "WriteError",
    "MalformedResponseError",
    "InvalidTransitionError",
    # Utilities
    "console",
    "logger",
    # Metadata
    "__version__",
]
