"""Tests for rendering outgoing requests."""

from __future__ import annotations

import pytest

from sipprobe import (
    CallContext,
    Target,
    TransportConfig,
    TransportMode,
    build_ack,
    build_delayed_offer_invite,
    build_early_offer_invite,
    build_options,
)
from sipprobe._sdp import MEDIA_PORT_MAX, MEDIA_PORT_MIN, random_media_port


def _split(wire: bytes) -> tuple[list[str], bytes]:
    head, _, body = wire.partition(b"\r\n\r\n")
    return head.decode().split("\r\n"), body


def _header(lines: list[str], name: str) -> str:
    for line in lines[1:]:
        key, _, value = line.partition(":")
        if key.strip().lower() == name.lower():
            return value.strip()
    raise AssertionError(f"{name} not found")


@pytest.mark.parametrize("media_port", [1024, 5004, 65534])
def test_early_offer_content_length_matches_body(target, context, media_port):
    message = build_early_offer_invite(target, context, media_port=media_port)
    lines, body = _split(message.to_bytes())

    assert int(_header(lines, "Content-Length")) == len(body)
    assert message.content_length == len(message.body.encode("utf-8"))
    assert f"m=audio {media_port} RTP/AVP 8 101" in message.body


def test_early_offer_sdp_describes_pcma_audio(target, context):
    message = build_early_offer_invite(target, context, media_port=20000)

    assert message.header("Content-Type") == "application/sdp"
    assert "a=rtpmap:8 PCMA/8000" in message.body
    assert "a=rtpmap:101 telephone-event/8000" in message.body
    assert "c=IN IP4 192.0.2.55" in message.body
    assert message.body.endswith("\r\n")


def test_early_offer_random_port_in_range(target, context):
    message = build_early_offer_invite(target, context)
    port = int(message.body.split("m=audio ")[1].split()[0])

    assert MEDIA_PORT_MIN <= port < MEDIA_PORT_MAX


def test_random_media_port_range():
    ports = {random_media_port() for _ in range(2000)}

    assert min(ports) >= 1024
    assert max(ports) < 65535


def test_invite_request_line_and_headers(target, context):
    message = build_early_offer_invite(target, context, media_port=30000)
    lines, _ = _split(message.to_bytes())

    assert lines[0] == "INVITE sip:1@192.0.2.10:5060;transport=tcp SIP/2.0"
    assert _header(lines, "Via") == "SIP/2.0/TCP 192.0.2.55:5060;branch=z9hG4bK1234"
    assert _header(lines, "From") == "<sip:99999@192.0.2.55>;tag=456"
    assert _header(lines, "To") == "<sip:1@192.0.2.10:5060>"
    assert _header(lines, "Call-ID") == "12345@192.0.2.55"
    assert _header(lines, "CSeq") == "1 INVITE"
    assert _header(lines, "Max-Forwards") == "10"
    assert _header(lines, "User-Agent") == "SIP Probe"
    assert "INVITE" in _header(lines, "Allow")


def test_rebuild_differs_only_in_randomized_fields(target):
    first = build_early_offer_invite(
        target, CallContext(source_ip="192.0.2.55", call_id="11111"), media_port=2000
    )
    again = build_early_offer_invite(
        target, CallContext(source_ip="192.0.2.55", call_id="11111"), media_port=2000
    )
    other = build_early_offer_invite(
        target, CallContext(source_ip="192.0.2.55", call_id="22222"), media_port=3000
    )

    assert first.to_bytes() == again.to_bytes()
    normalized = other.to_string().replace("22222", "11111").replace("m=audio 3000", "m=audio 2000")
    assert normalized == first.to_string()


def test_delayed_offer_has_same_headers_and_no_body(target, context):
    early = build_early_offer_invite(target, context, media_port=4000)
    delayed = build_delayed_offer_invite(target, context)

    assert delayed.body == ""
    assert delayed.header("Content-Length") == "0"
    assert [name for name, _ in delayed.headers] == [name for name, _ in early.headers]
    assert delayed.to_bytes().endswith(b"Content-Length: 0\r\n\r\n")


def test_options_is_not_forwarded(options_target, context):
    message = build_options(options_target, context)
    lines, body = _split(message.to_bytes())

    assert lines[0] == "OPTIONS sip:192.0.2.10:5060;transport=tcp SIP/2.0"
    assert _header(lines, "Max-Forwards") == "0"
    assert _header(lines, "Call-ID") == "12345"
    assert _header(lines, "CSeq") == "1 OPTIONS"
    assert _header(lines, "Content-Length") == "0"
    assert _header(lines, "From").startswith('"SIP Probe"<sip:99999@192.0.2.55:5060>')
    assert body == b""


def test_options_prefers_domain_part(context):
    message = build_options(Target(host="192.0.2.10", domain="example.net"), context)

    assert message.uri == "sip:example.net:5060;transport=tcp"


def test_ack_carries_response_tag_and_invite_cseq(target):
    context = CallContext(source_ip="192.0.2.55", call_id="54321", cseq=7)
    message = build_ack(target, context, "9988")
    lines, body = _split(message.to_bytes())

    assert lines[0] == "ACK sip:192.0.2.10:5060;transport=tcp SIP/2.0"
    assert _header(lines, "To") == "<sip:1@192.0.2.10:5060>;tag=9988"
    assert _header(lines, "CSeq") == "7 ACK"
    assert _header(lines, "Call-ID") == "54321@192.0.2.55"
    assert _header(lines, "Content-Length") == "0"
    assert body == b""


def test_tls_target_uses_tls_port_and_via(context):
    target = Target(
        host="192.0.2.10",
        user="1",
        domain="192.0.2.10",
        transport=TransportMode.TLS,
        ca_certs="/etc/ssl/ca.pem",
    )
    message = build_delayed_offer_invite(target, context)

    assert message.uri == "sip:1@192.0.2.10:5061;transport=tls"
    assert message.header("Via").startswith("SIP/2.0/TLS 192.0.2.55:5061;")


def test_configured_port_is_used(target, context):
    message = build_options(target, context, config=TransportConfig(plain_port=5080))

    assert message.uri == "sip:192.0.2.10:5080;transport=tcp"
