"""Results returned to callers of receive and send."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from ecash_wallet.engine.operations.state import OperationState

if TYPE_CHECKING:
    from ecash_wallet.engine.services.counter_service import CounterReservation
    from ecash_wallet.mint.models import Proof


@dataclasses.dataclass(frozen=True)
class ReceiveResult:
    """Outcome of a successful receive."""

    amount: int
    proofs: tuple[Proof, ...]
    reservation: CounterReservation
    memo: str | None = None
    state: OperationState = OperationState.APPLIED


@dataclasses.dataclass(frozen=True)
class SendResult:
    """Outcome of a successful send.

    ``token`` carries ``send_proofs``; those proofs are not kept in the store.
    """

    token: str
    amount: int
    send_proofs: tuple[Proof, ...]
    keep_proofs: tuple[Proof, ...]
    consumed: tuple[Proof, ...]
    reservation: CounterReservation
    memo: str | None = None
    state: OperationState = OperationState.APPLIED
