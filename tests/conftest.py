"""Shared test fixtures."""

from __future__ import annotations

import io
from typing import List, Optional

import pytest

from sipprobe import BaseConnection, CallContext, Target, WriteError, run_transaction
from sipprobe._sdp import build_audio_sdp


class FakeConnection(BaseConnection):
    """In-memory connection fed from a canned response stream."""

    def __init__(self, response: bytes = b"", fail_write: bool = False) -> None:
        super().__init__(peer="fake")
        self._reader = io.BytesIO(response)
        self.written = bytearray()
        self.sends: List[bytes] = []
        self.events: List[str] = []
        self.fail_write = fail_write
        self._pending = bytearray()

    def write(self, data: bytes) -> None:
        if self.fail_write:
            raise WriteError("Failed to send TCP data to fake: broken pipe")
        self._pending.extend(data)

    def flush(self) -> None:
        self.written.extend(self._pending)
        self.sends.append(bytes(self._pending))
        self._pending.clear()

    def readline(self, limit: int = -1) -> bytes:
        return self._reader.readline(limit)

    def unread(self) -> bytes:
        return self._reader.read()

    def close(self) -> None:
        self.events.extend(["write-closed", "read-closed", "socket-closed"])
        self._closed = True


class RecordingEcho:
    def __init__(self) -> None:
        self.sent_messages: List[str] = []
        self.received_lines: List[str] = []

    def sent(self, text: str) -> None:
        self.sent_messages.append(text)

    def received(self, line: str) -> None:
        self.received_lines.append(line)


class FakeOpener:
    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.calls = []

    def __call__(self, target, config=None):
        self.calls.append((target, config))
        return self.connection


def build_ok_response(
    tag: Optional[str] = "9988",
    body: str = "",
    content_length: Optional[str] = None,
    to_user: str = "1",
    domain: str = "192.0.2.10",
) -> bytes:
    """Build a 200 OK to the outgoing INVITE."""
    length = str(len(body.encode("utf-8"))) if content_length is None else content_length
    to_value = f"<sip:{to_user}@{domain}:5060>" + (f";tag={tag}" if tag else "")
    lines = [
        "SIP/2.0 200 OK",
        "Via: SIP/2.0/TCP 192.0.2.55:5060;branch=z9hG4bK1234",
        "From: <sip:99999@192.0.2.55>;tag=456",
        f"To: {to_value}",
        "Call-ID: 12345@192.0.2.55",
        "CSeq: 1 INVITE",
        f"Contact: <sip:{to_user}@{domain}:5060;transport=tcp>",
        "Content-Type: application/sdp",
        f"Content-Length: {length}",
    ]
    return ("\r\n".join(lines) + "\r\n\r\n" + body).encode("utf-8")


TRYING = (
    b"SIP/2.0 100 Trying\r\n"
    b"Via: SIP/2.0/TCP 192.0.2.55:5060;branch=z9hG4bK1234\r\n"
    b"To: <sip:1@192.0.2.10:5060>\r\n"
    b"Content-Length: 0\r\n"
    b"\r\n"
)


@pytest.fixture
def target() -> Target:
    return Target(host="192.0.2.10", user="1", domain="192.0.2.10")


@pytest.fixture
def options_target() -> Target:
    return Target(host="192.0.2.10")


@pytest.fixture
def context() -> CallContext:
    return CallContext(source_ip="192.0.2.55", call_id="12345")


@pytest.fixture
def echo() -> RecordingEcho:
    return RecordingEcho()


@pytest.fixture
def answer_sdp() -> str:
    return build_audio_sdp("192.0.2.10", 40000)


@pytest.fixture
def ok_response():
    """Builder for a 200 OK to the INVITE; see :func:`build_ok_response`."""
    return build_ok_response


@pytest.fixture
def trying() -> bytes:
    return TRYING


@pytest.fixture
def make_opener():
    """Factory for an opener handing out one canned :class:`FakeConnection`."""

    def factory(response: bytes = b"", fail_write: bool = False) -> FakeOpener:
        return FakeOpener(FakeConnection(response, fail_write=fail_write))

    return factory


@pytest.fixture
def run(make_opener, echo):
    """Run one transaction against a canned response stream.

    Returns the outcome, the fake connection and its opener.
    """

    def runner(mode, target, context, response=b"", config=None, **kwargs):
        opener = make_opener(response, **kwargs)
        outcome = run_transaction(
            mode, target, context, config=config, echo=echo, opener=opener
        )
        return outcome, opener.connection, opener

    return runner
