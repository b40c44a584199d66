"""Proof row: one unspent value fragment."""

from __future__ import annotations

from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ecash_wallet.engine.models.base import Base, CreatedMixin


class ProofRecord(Base, CreatedMixin):
    """A stored proof, keyed by its secret.

    The sum of ``amount`` over all rows is the wallet balance.
    """

    __tablename__ = "proofs"

    secret: Mapped[str] = mapped_column(Text, primary_key=True, comment="Proof secret")
    keyset_id: Mapped[str] = mapped_column(
        "id", String(64), nullable=False, index=True, comment="Keyset id"
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, comment="Value in mint unit")
    signature: Mapped[str] = mapped_column("C", Text, nullable=False, comment="Mint signature")

    def __repr__(self) -> str:
        return f"<ProofRecord {self.keyset_id} amount={self.amount} secret={self.secret[:12]}...>"
