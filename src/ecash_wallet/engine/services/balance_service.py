"""Balance service: read-only aggregation over the stored proofs."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ecash_wallet.engine.client import WalletEngine
    from ecash_wallet.mint.models import Proof


@dataclass(frozen=True)
class KeysetBalance:
    """Proof count and total value under one keyset."""

    keyset_id: str
    count: int
    amount: int


def total_amount(proofs: Iterable[Proof]) -> int:
    """Sum of proof amounts."""
    return sum(p.amount for p in proofs)


def group_by_keyset(proofs: Iterable[Proof]) -> dict[str, KeysetBalance]:
    """Aggregate proofs per keyset id."""
    counts: dict[str, int] = {}
    amounts: dict[str, int] = {}
    for proof in proofs:
        counts[proof.id] = counts.get(proof.id, 0) + 1
        amounts[proof.id] = amounts.get(proof.id, 0) + proof.amount
    return {
        keyset_id: KeysetBalance(keyset_id=keyset_id, count=counts[keyset_id], amount=amounts[keyset_id])
        for keyset_id in sorted(counts)
    }


class BalanceService:
    """Wallet balance views. Never mutates the store."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    async def get_balance(self) -> int:
        """Return the total value of all stored proofs."""
        return total_amount(await self._engine.proof_service.load_all())

    async def balance_per_keyset(self) -> dict[str, KeysetBalance]:
        """Return proof count and value for each keyset holding proofs."""
        return group_by_keyset(await self._engine.proof_service.load_all())
