"""Tests for balance aggregation."""

from __future__ import annotations

import hashlib

from ecash_wallet.engine.client import WalletEngine
from ecash_wallet.engine.services.balance_service import KeysetBalance, group_by_keyset, total_amount
from ecash_wallet.mint.models import Proof
from tests.fakes import KEYSET_ID

OTHER_KEYSET = "00ad268c4d1f5826"


def make_proof(secret: str, amount: int, keyset_id: str = KEYSET_ID) -> Proof:
    return Proof(
        id=keyset_id,
        amount=amount,
        secret=secret,
        signature=hashlib.sha256(secret.encode()).hexdigest(),
    )


class TestHelpers:
    def test_total_amount_empty(self) -> None:
        assert total_amount([]) == 0

    def test_group_by_keyset(self) -> None:
        proofs = [
            make_proof("a", 1),
            make_proof("b", 4),
            make_proof("c", 2, OTHER_KEYSET),
        ]
        grouped = group_by_keyset(proofs)
        assert list(grouped) == sorted([KEYSET_ID, OTHER_KEYSET])
        assert grouped[KEYSET_ID] == KeysetBalance(keyset_id=KEYSET_ID, count=2, amount=5)
        assert grouped[OTHER_KEYSET] == KeysetBalance(keyset_id=OTHER_KEYSET, count=1, amount=2)


class TestBalanceService:
    async def test_empty_wallet(self, engine: WalletEngine) -> None:
        assert await engine.get_balance() == 0
        assert await engine.balance_per_keyset() == {}

    async def test_balance_tracks_store(self, engine: WalletEngine) -> None:
        await engine.proof_service.replace(
            remove=[],
            add=[make_proof("a", 8), make_proof("b", 16), make_proof("c", 1, OTHER_KEYSET)],
        )
        assert await engine.get_balance() == 25
        per_keyset = await engine.balance_per_keyset()
        assert per_keyset[KEYSET_ID].amount == 24
        assert per_keyset[KEYSET_ID].count == 2
        assert per_keyset[OTHER_KEYSET].amount == 1

        await engine.proof_service.replace(remove=[make_proof("b", 16)], add=[])
        assert await engine.balance_service.get_balance() == 9
