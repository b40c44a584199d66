"""Ecash data models: proofs, tokens and mint planning results.

Data classes exchanged between the ledger core and its mint-client and
token-codec collaborators. Field names follow the Cashu wire format where
one exists (``C`` for the proof signature).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Proof, an unspent value fragment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Proof:
    """A mint-signed value fragment.

    Attributes:
        id: Keyset id the proof was signed under.
        amount: Value in the mint's unit (> 0).
        secret: Unique secret string.
        signature: Unblinded mint signature ``C`` (hex).
    """

    id: str
    amount: int
    secret: str
    signature: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the Cashu JSON proof shape."""
        return {"id": self.id, "amount": self.amount, "secret": self.secret, "C": self.signature}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Proof:
        """Create a Proof from a Cashu JSON proof dict (``C`` or ``signature``)."""
        return cls(
            id=data["id"],
            amount=int(data["amount"]),
            secret=data["secret"],
            signature=data.get("C", data.get("signature", "")),
        )

    def __repr__(self) -> str:
        return f"<Proof {self.id} amount={self.amount} secret={self.secret[:12]}...>"


def sum_amounts(proofs: list[Proof] | tuple[Proof, ...]) -> int:
    """Total value of a proof collection."""
    return sum(p.amount for p in proofs)


# ---------------------------------------------------------------------------
# Token, a decoded interchange token
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Token:
    """A decoded interchange token.

    Attributes:
        mint: Mint URL the proofs belong to.
        proofs: Proofs carried by the token.
        unit: Currency unit (e.g. ``sat``).
        memo: Optional free-text memo.
    """

    mint: str
    proofs: tuple[Proof, ...]
    unit: str = "sat"
    memo: str | None = None

    @property
    def amount(self) -> int:
        """Total value carried by the token."""
        return sum_amounts(self.proofs)


# ---------------------------------------------------------------------------
# Mint planning results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SendPlan:
    """Input selection and output count for a send, as planned by the mint client.

    Attributes:
        inputs: Stored proofs to spend.
        output_count: Number of fresh outputs (keep + send sides) the split produces.
    """

    inputs: tuple[Proof, ...]
    output_count: int

    @property
    def input_amount(self) -> int:
        """Total value of the selected inputs."""
        return sum_amounts(self.inputs)


@dataclass(frozen=True)
class SplitResult:
    """Outcome of a split at the mint."""

    keep: tuple[Proof, ...] = field(default_factory=tuple)
    send: tuple[Proof, ...] = field(default_factory=tuple)
