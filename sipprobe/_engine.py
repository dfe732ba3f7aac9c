"""
Transaction engine for the SIP probe.

Runs exactly one exchange: connect, send the request built for the mode,
consume the response stream one line at a time and, once a 200 OK to an
INVITE has been read in full, answer it with an ACK. The connection is
closed on every exit path.

Response framing works without a length-delimited transport primitive:
after each status line the header block is tokenized line by line, and
once the blank line ends it the body is counted down byte by byte against
that response's ``Content-Length``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from ._fsm import DialogState, Transaction
from ._messages import (
    RenderedMessage,
    build_ack,
    build_delayed_offer_invite,
    build_early_offer_invite,
    build_options,
)
from ._sdp import audio_port
from ._sip import StatusLine, parse_header_line, parse_status_line
from ._transports import BaseConnection, open_connection
from ._types import (
    CallContext,
    MalformedResponseError,
    ProbeError,
    ProbeMode,
    ProbeState,
    Target,
    TransportConfig,
)
from ._utils import ConsoleEcho, logger

Opener = Callable[[Target, Optional[TransportConfig]], BaseConnection]


class Echo(Protocol):
    """Receives every message sent and every line received."""

    def sent(self, text: str) -> None: ...

    def received(self, line: str) -> None: ...


@dataclass
class TransactionOutcome:
    """What one transaction did, as seen by the operator."""

    mode: ProbeMode
    state: ProbeState = ProbeState.IDLE
    history: List[ProbeState] = field(default_factory=list)
    request: Optional[RenderedMessage] = None
    ack: Optional[RenderedMessage] = None
    statuses: List[StatusLine] = field(default_factory=list)
    response_tag: Optional[str] = None
    response_body: str = ""
    lines: List[str] = field(default_factory=list)

    @property
    def ack_sent(self) -> bool:
        return self.ack is not None

    @property
    def status(self) -> Optional[StatusLine]:
        """Last status line received."""
        return self.statuses[-1] if self.statuses else None

    @property
    def remote_media_port(self) -> Optional[int]:
        """Audio port of the SDP carried by the 200 OK, if any."""
        return audio_port(self.response_body)


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


def _send(connection: BaseConnection, message: RenderedMessage, echo: Echo) -> None:
    connection.send(message.to_bytes())
    echo.sent(message.to_string())


def build_request(
    mode: ProbeMode,
    target: Target,
    context: CallContext,
    config: Optional[TransportConfig] = None,
) -> RenderedMessage:
    """Render the initial request for ``mode``."""
    if mode is ProbeMode.EARLY:
        return build_early_offer_invite(target, context, config=config)
    if mode is ProbeMode.DELAYED:
        return build_delayed_offer_invite(target, context, config=config)
    return build_options(target, context, config=config)


def track_line(
    dialog: DialogState, raw: bytes, line: str, outcome: TransactionOutcome
) -> None:
    """
    Update the dialog state with one chunk read from an INVITE response.

    Every response is framed by its own Content-Length, so a provisional
    body is skipped byte for byte and never mistaken for the next status
    line. Only the first 200 OK keeps its To tag and body.

    Args:
        dialog: State for the current transaction
        raw: Bytes as read, line terminator included
        line: Decoded line without terminator
        outcome: Collects status lines and the 200 OK body

    Raises:
        MalformedResponseError: If the 200 OK To header has no tag, or a
            Content-Length is not a non-negative integer
    """
    if dialog.start_counting:
        dialog.amount_read += len(raw)
        if dialog.in_ok:
            dialog.body.extend(raw)
        if dialog.amount_read >= dialog.content_length:
            dialog.start_counting = False
            if dialog.in_ok:
                dialog.body_complete = True
        return

    status = parse_status_line(line)
    if status is not None:
        outcome.statuses.append(status)
        dialog.in_headers = True
        dialog.content_length = 0
        dialog.amount_read = 0
        dialog.in_ok = status.status_code == 200 and not dialog.ok_received
        if dialog.in_ok:
            dialog.ok_received = True
        return

    if not dialog.in_headers:
        return

    # Blank line ends the header block
    if not line.strip():
        dialog.in_headers = False
        if dialog.in_ok and not dialog.response_tag:
            raise MalformedResponseError("200 OK carried no To tag")
        if dialog.content_length > 0:
            dialog.start_counting = True
        elif dialog.in_ok:
            dialog.body_complete = True
        return

    header = parse_header_line(line)
    if header is None:
        return
    if header.is_named("To"):
        if not dialog.in_ok:
            return
        tag = header.params.get("tag")
        if not tag:
            raise MalformedResponseError(f"To header without tag: {line!r}")
        if dialog.response_tag is None:
            dialog.response_tag = tag
    elif header.is_named("Content-Length"):
        try:
            value = int(header.value)
        except ValueError:
            raise MalformedResponseError(
                f"Non-numeric Content-Length: {header.value!r}"
            ) from None
        if value < 0:
            raise MalformedResponseError(f"Negative Content-Length: {value}")
        dialog.content_length = value


def _read_invite_response(
    connection: BaseConnection,
    transaction: Transaction,
    outcome: TransactionOutcome,
    echo: Echo,
    send_ack: Callable[[str], None],
) -> None:
    dialog = DialogState()
    while not dialog.ack_sent:
        limit = dialog.remaining if dialog.start_counting else -1
        raw = connection.readline(limit)
        if not raw:
            logger.info("Stream closed by peer, no ACK sent")
            return

        line = _decode(raw)
        echo.received(line)
        outcome.lines.append(line)
        track_line(dialog, raw, line, outcome)

        if dialog.body_complete:
            outcome.response_tag = dialog.response_tag
            outcome.response_body = bytes(dialog.body).decode("utf-8", errors="replace")
            transaction.transition_to(ProbeState.DIALOG_ESTABLISHED)
            send_ack(dialog.response_tag)
            dialog.ack_sent = True
            transaction.transition_to(ProbeState.ACK_SENT)


def _read_options_response(
    connection: BaseConnection, outcome: TransactionOutcome, echo: Echo
) -> None:
    while True:
        raw = connection.readline()
        if not raw:
            return
        line = _decode(raw)
        if not line:
            return
        echo.received(line)
        outcome.lines.append(line)
        status = parse_status_line(line)
        if status is not None:
            outcome.statuses.append(status)


def run_transaction(
    mode: ProbeMode | str,
    target: Target,
    context: CallContext,
    *,
    config: Optional[TransportConfig] = None,
    echo: Optional[Echo] = None,
    opener: Optional[Opener] = None,
) -> TransactionOutcome:
    """
    Run one probe transaction against ``target``.

    Args:
        mode: early, delayed or options
        target: Far end description
        context: Call identifiers; ``context.cseq`` is used for the request
            and its ACK
        config: Transport configuration
        echo: Receives wire traffic (defaults to the rich console)
        opener: Connection factory (defaults to the TCP/TLS selector)

    Returns:
        The transaction outcome, always in state CLOSED

    Raises:
        ValueError: If the target lacks what the mode needs
        TransportError: On name lookup, connect, read or write failure
        MalformedResponseError: If the 200 OK cannot be framed
    """
    mode = ProbeMode.parse(mode)
    config = config or TransportConfig()
    target.validate(mode, config)
    echo = echo or ConsoleEcho()
    opener = opener or open_connection

    transaction = Transaction(mode)
    outcome = TransactionOutcome(mode=mode)

    port = config.port_for(target.transport)
    logger.info(f"Connecting to {target.host}:{port} via {target.transport.via_protocol}")
    connection = opener(target, config)
    transaction.transition_to(ProbeState.CONNECTED)

    def send_ack(tag: str) -> None:
        ack = build_ack(target, context, tag, config=config)
        _send(connection, ack, echo)
        outcome.ack = ack
        if mode is ProbeMode.DELAYED:
            logger.info(f"Sent bodyless ACK for delayed offer (tag={tag})")
        else:
            logger.info(f"Sent ACK (tag={tag})")

    try:
        request = build_request(mode, target, context, config)
        _send(connection, request, echo)
        outcome.request = request
        transaction.transition_to(ProbeState.REQUEST_SENT)

        if mode is ProbeMode.OPTIONS:
            transaction.transition_to(ProbeState.OPTIONS_AWAITING_RESPONSE)
            _read_options_response(connection, outcome, echo)
        else:
            transaction.transition_to(ProbeState.AWAITING_FINAL)
            _read_invite_response(connection, transaction, outcome, echo, send_ack)
    except ProbeError as e:
        logger.debug(f"{mode.value} transaction aborted in {transaction.state.name}: {e}")
        raise
    finally:
        connection.close()
        transaction.close()
        outcome.state = transaction.state
        outcome.history = list(transaction.history)

    return outcome


__all__ = [
    "Echo",
    "Opener",
    "TransactionOutcome",
    "build_request",
    "run_transaction",
    "track_line",
]
