"""Collaborator interfaces consumed by the ledger core.

The blind-signature protocol, transport to the mint and the token wire
format live outside this package. Implementations only need to satisfy
these structural types.

The core always supplies pre-derived outputs for every fresh output; a mint
client never chooses derivation indexes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from ecash_wallet.crypto.derivation import DerivedOutput
from ecash_wallet.mint.models import Proof, SendPlan, SplitResult, Token


@runtime_checkable
class MintClient(Protocol):
    """Mint-client capability: keysets, planning, swap and split."""

    async def load_keyset(self) -> str:
        """Return the active keyset id for the wallet's unit."""
        ...

    async def plan_receive(self, token: Token) -> int:
        """Return how many fresh outputs redeeming ``token`` needs."""
        ...

    async def plan_send(self, amount: int, proofs: Sequence[Proof]) -> SendPlan:
        """Select inputs from ``proofs`` and count the split's fresh outputs."""
        ...

    async def swap(self, token: Token, outputs: Sequence[DerivedOutput]) -> list[Proof]:
        """Redeem ``token`` into new proofs built on ``outputs``."""
        ...

    async def split(
        self,
        amount: int,
        inputs: Sequence[Proof],
        outputs: Sequence[DerivedOutput],
    ) -> SplitResult:
        """Split ``inputs`` into ``amount`` to send plus change, built on ``outputs``."""
        ...


@runtime_checkable
class TokenCodec(Protocol):
    """Interchange-token encoding capability."""

    def decode(self, encoded: str) -> Token:
        """Decode a serialized token."""
        ...

    def encode(self, token: Token) -> str:
        """Serialize a token."""
        ...
