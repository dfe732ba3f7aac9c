"""
Finite state machine for a single probe transaction.

FSM Overview:
=============

INVITE (early or delayed offer):
  IDLE → CONNECTED → REQUEST_SENT → AWAITING_FINAL → DIALOG_ESTABLISHED
       → ACK_SENT → CLOSED

OPTIONS:
  IDLE → CONNECTED → REQUEST_SENT → OPTIONS_AWAITING_RESPONSE → CLOSED

Any state may move to CLOSED when the stream ends or the transaction aborts.
Nothing here outlives one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional

from ._types import InvalidTransitionError, ProbeMode, ProbeState
from ._utils import logger

TRANSITIONS: Dict[ProbeState, FrozenSet[ProbeState]] = {
    ProbeState.IDLE: frozenset({ProbeState.CONNECTED}),
    ProbeState.CONNECTED: frozenset({ProbeState.REQUEST_SENT}),
    ProbeState.REQUEST_SENT: frozenset(
        {ProbeState.AWAITING_FINAL, ProbeState.OPTIONS_AWAITING_RESPONSE}
    ),
    ProbeState.AWAITING_FINAL: frozenset({ProbeState.DIALOG_ESTABLISHED}),
    ProbeState.DIALOG_ESTABLISHED: frozenset({ProbeState.ACK_SENT}),
    ProbeState.ACK_SENT: frozenset(),
    ProbeState.OPTIONS_AWAITING_RESPONSE: frozenset(),
    ProbeState.CLOSED: frozenset(),
}


@dataclass
class DialogState:
    """
    Response-tracking state for one INVITE transaction.

    Passed explicitly through the read loop. Every response's
    ``Content-Length`` is tracked and reset at its status line;
    ``amount_read`` counts raw body bytes, terminators included, once a
    header block has ended with a positive Content-Length. Only the first
    200 OK (``in_ok``) keeps its body and tag.
    """

    ok_received: bool = False
    response_tag: Optional[str] = None
    ack_sent: bool = False
    in_headers: bool = False
    in_ok: bool = False
    content_length: int = 0
    amount_read: int = 0
    start_counting: bool = False
    body_complete: bool = False
    body: bytearray = field(default_factory=bytearray)

    @property
    def remaining(self) -> int:
        """Body bytes still to be read."""
        return max(0, self.content_length - self.amount_read)


@dataclass
class Transaction:
    """
    Tracks the state of one probe transaction.

    Transitions outside :data:`TRANSITIONS` raise
    :class:`InvalidTransitionError`, except the move to CLOSED which is
    always allowed.
    """

    mode: ProbeMode
    state: ProbeState = ProbeState.IDLE
    history: List[ProbeState] = field(default_factory=lambda: [ProbeState.IDLE])

    def transition_to(self, new_state: ProbeState) -> None:
        """
        Transition to a new state.

        Args:
            new_state: The new state
        """
        if self.state is ProbeState.CLOSED:
            raise InvalidTransitionError(f"Transaction already closed, cannot enter {new_state.name}")
        if new_state is not ProbeState.CLOSED and new_state not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.state.name} -> {new_state.name}")
        logger.debug(f"{self.mode.value}: {self.state.name} -> {new_state.name}")
        self.state = new_state
        self.history.append(new_state)

    def close(self) -> None:
        """Move to CLOSED unless already there."""
        if self.state is not ProbeState.CLOSED:
            self.transition_to(ProbeState.CLOSED)

    def reached(self, state: ProbeState) -> bool:
        return state in self.history

    @property
    def is_closed(self) -> bool:
        return self.state is ProbeState.CLOSED

    def __repr__(self) -> str:
        return f"<Transaction({self.mode.value}, {self.state.name})>"


__all__ = ["DialogState", "TRANSITIONS", "Transaction"]
