"""Operation state machine shared by receive and send.

Lifecycle: IDLE → COUNTERS_RESERVED → COUNTERS_PERSISTED
           → MINT_CALL_IN_FLIGHT → APPLIED | FAILED

Any non-terminal state may move to FAILED. Only COUNTERS_PERSISTED →
MINT_CALL_IN_FLIGHT hands control to the network.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecash_wallet.engine.services.counter_service import CounterReservation


class OperationKind(enum.StrEnum):
    """Balance-affecting operation variants."""

    RECEIVE = "receive"
    SEND = "send"


class OperationState(enum.StrEnum):
    """Operation lifecycle states."""

    IDLE = "idle"
    COUNTERS_RESERVED = "counters_reserved"
    COUNTERS_PERSISTED = "counters_persisted"
    MINT_CALL_IN_FLIGHT = "mint_call_in_flight"
    APPLIED = "applied"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """APPLIED and FAILED have no outgoing transitions."""
        return self in (OperationState.APPLIED, OperationState.FAILED)


_TRANSITIONS: dict[OperationState, frozenset[OperationState]] = {
    OperationState.IDLE: frozenset({OperationState.COUNTERS_RESERVED, OperationState.FAILED}),
    OperationState.COUNTERS_RESERVED: frozenset(
        {OperationState.COUNTERS_PERSISTED, OperationState.FAILED}
    ),
    OperationState.COUNTERS_PERSISTED: frozenset(
        {OperationState.MINT_CALL_IN_FLIGHT, OperationState.FAILED}
    ),
    OperationState.MINT_CALL_IN_FLIGHT: frozenset({OperationState.APPLIED, OperationState.FAILED}),
    OperationState.APPLIED: frozenset(),
    OperationState.FAILED: frozenset(),
}


@dataclass
class Operation:
    """One receive or send run and the states it passed through."""

    kind: OperationKind
    state: OperationState = OperationState.IDLE
    history: list[OperationState] = field(default_factory=lambda: [OperationState.IDLE])
    reservation: CounterReservation | None = None
    error: Exception | None = None

    @property
    def is_terminal(self) -> bool:
        """Check if the operation has finished."""
        return self.state.is_terminal

    @property
    def counters_persisted(self) -> bool:
        """Check if this operation's counter range reached the store."""
        return OperationState.COUNTERS_PERSISTED in self.history

    def advance(self, state: OperationState) -> None:
        """Move to ``state``.

        Raises:
            RuntimeError: If the transition is not allowed.
        """
        if state not in _TRANSITIONS[self.state]:
            msg = f"Illegal {self.kind} transition: {self.state} -> {state}"
            raise RuntimeError(msg)
        self.state = state
        self.history.append(state)

    def fail(self, error: Exception) -> None:
        """Record ``error`` and move to FAILED."""
        self.error = error
        self.advance(OperationState.FAILED)
