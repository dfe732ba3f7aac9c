"""
Rendering of the probe's outbound SIP messages.

Every function here is pure: given the target, the call context and (for
the ACK) the captured dialog tag, it returns a :class:`RenderedMessage`
whose ``Content-Length`` is computed from the body actually rendered.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ._sdp import build_audio_sdp, random_media_port
from ._types import CallContext, Target, TransportConfig
from ._utils import (
    ALLOW_METHODS,
    EOL,
    INVITE_FROM_TAG,
    LOCAL_USER,
    OPTIONS_FROM_TAG,
    SCHEME,
    USER_AGENT,
    VERSION,
    VIA_BRANCH,
)

INVITE_MAX_FORWARDS = 10
OPTIONS_MAX_FORWARDS = 0  # probe the UA itself, never forwarded

Header = Tuple[str, str]


@dataclass(frozen=True, slots=True)
class RenderedMessage:
    """One SIP request exactly as written to the wire."""

    method: str
    uri: str
    headers: Tuple[Header, ...]
    body: str = ""

    def header(self, name: str) -> Optional[str]:
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None

    @property
    def content_length(self) -> int:
        return int(self.header("Content-Length") or 0)

    def to_string(self) -> str:
        header_lines = EOL.join(f"{key}: {value}" for key, value in self.headers)
        return (
            f"{self.method} {self.uri} {SCHEME}/{VERSION}{EOL}"
            f"{header_lines}{EOL}{EOL}{self.body}"
        )

    def to_bytes(self) -> bytes:
        return self.to_string().encode("utf-8")

    def __str__(self) -> str:
        return self.to_string()


def _render(method: str, uri: str, headers: List[Header], body: str = "") -> RenderedMessage:
    content_length = len(body.encode("utf-8"))
    headers.append(("Content-Length", str(content_length)))
    return RenderedMessage(method=method, uri=uri, headers=tuple(headers), body=body)


def _port(target: Target, config: Optional[TransportConfig]) -> int:
    return (config or TransportConfig()).port_for(target.transport)


def _via(target: Target, context: CallContext, port: int) -> str:
    protocol = target.transport.via_protocol
    return f"{SCHEME}/{VERSION}/{protocol} {context.source_ip}:{port};branch={VIA_BRANCH}"


def _local_uri(context: CallContext) -> str:
    return f"sip:{LOCAL_USER}@{context.source_ip}"


def _invite_headers(
    target: Target, context: CallContext, port: int, body_type: str
) -> List[Header]:
    transport = target.transport.uri_param
    return [
        ("Via", _via(target, context, port)),
        ("From", f"<{_local_uri(context)}>;tag={INVITE_FROM_TAG}"),
        ("To", f"<sip:{target.user}@{target.domain}:{port}>"),
        ("Call-ID", f"{context.call_id}@{context.source_ip}"),
        ("CSeq", f"{context.cseq} INVITE"),
        ("Contact", f"<{_local_uri(context)}:{port};transport={transport}>"),
        ("User-Agent", USER_AGENT),
        ("Max-Forwards", str(INVITE_MAX_FORWARDS)),
        ("Supported", "replaces,timer"),
        ("P-Asserted-Identity", f"<{_local_uri(context)}>"),
        ("Allow", ",".join(ALLOW_METHODS)),
        ("Content-Type", body_type),
    ]


def _invite_uri(target: Target, port: int) -> str:
    return f"sip:{target.user}@{target.domain}:{port};transport={target.transport.uri_param}"


def build_early_offer_invite(
    target: Target,
    context: CallContext,
    *,
    media_port: Optional[int] = None,
    config: Optional[TransportConfig] = None,
) -> RenderedMessage:
    """
    Render an INVITE carrying an SDP offer for one PCMA audio stream.

    Args:
        target: Far end; user and domain parts are required
        context: Call identifiers and CSeq
        media_port: RTP port to offer; random in [1024, 65535) when omitted
        config: Transport configuration supplying the signaling port

    Returns:
        The rendered INVITE
    """
    port = _port(target, config)
    if media_port is None:
        media_port = random_media_port()
    sdp = build_audio_sdp(context.source_ip, media_port)
    headers = _invite_headers(target, context, port, "application/sdp")
    return _render("INVITE", _invite_uri(target, port), headers, sdp)


def build_delayed_offer_invite(
    target: Target,
    context: CallContext,
    *,
    config: Optional[TransportConfig] = None,
) -> RenderedMessage:
    """Render an INVITE without SDP, leaving the offer to the far end."""
    port = _port(target, config)
    headers = _invite_headers(target, context, port, "application/sdp")
    return _render("INVITE", _invite_uri(target, port), headers)


def build_options(
    target: Target,
    context: CallContext,
    *,
    config: Optional[TransportConfig] = None,
) -> RenderedMessage:
    """Render an OPTIONS request addressed to the UA itself."""
    port = _port(target, config)
    domain = target.options_domain
    uri = f"sip:{domain}:{port};transport={target.transport.uri_param}"
    headers: List[Header] = [
        ("Via", _via(target, context, port)),
        ("From", f'"{USER_AGENT}"<{_local_uri(context)}:{port}>;tag={OPTIONS_FROM_TAG}'),
        ("To", f"<sip:{domain}:{port}>"),
        ("Call-ID", context.call_id),
        ("CSeq", f"{context.cseq} OPTIONS"),
        ("Max-Forwards", str(OPTIONS_MAX_FORWARDS)),
        ("User-Agent", USER_AGENT),
        ("Allow", ",".join(ALLOW_METHODS)),
    ]
    return _render("OPTIONS", uri, headers)


def build_ack(
    target: Target,
    context: CallContext,
    response_tag: str,
    *,
    config: Optional[TransportConfig] = None,
) -> RenderedMessage:
    """
    Render the ACK confirming a 2xx response to our INVITE.

    The CSeq number is the INVITE's; the To tag is the one the far end put
    on its 200 OK.
    """
    port = _port(target, config)
    transport = target.transport.uri_param
    headers: List[Header] = [
        ("Via", _via(target, context, port)),
        ("From", f"<{_local_uri(context)}>;tag={INVITE_FROM_TAG}"),
        ("To", f"<sip:{target.user}@{target.domain}:{port}>;tag={response_tag}"),
        ("CSeq", f"{context.cseq} ACK"),
        ("Call-ID", f"{context.call_id}@{context.source_ip}"),
        ("Contact", f"<{_local_uri(context)}:{port};transport={transport}>"),
        ("User-Agent", USER_AGENT),
        ("Allow", ",".join(ALLOW_METHODS)),
        ("Max-Forwards", str(INVITE_MAX_FORWARDS)),
    ]
    return _render("ACK", f"sip:{target.domain}:{port};transport={transport}", headers)


__all__ = [
    "INVITE_MAX_FORWARDS",
    "OPTIONS_MAX_FORWARDS",
    "RenderedMessage",
    "build_ack",
    "build_delayed_offer_invite",
    "build_early_offer_invite",
    "build_options",
]
