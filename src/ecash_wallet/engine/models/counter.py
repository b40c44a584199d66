"""Counter row: next unused derivation index per keyset."""

from __future__ import annotations

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ecash_wallet.engine.models.base import Base, TimestampMixin


class CounterRecord(Base, TimestampMixin):
    """The persisted ``next`` index for one keyset.

    Created on first persist and only ever moved forward; never deleted.
    """

    __tablename__ = "counters"

    keyset_id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Keyset id")
    next_index: Mapped[int] = mapped_column(
        "next", BigInteger, nullable=False, default=0, comment="Next unused index"
    )

    def __repr__(self) -> str:
        return f"<CounterRecord {self.keyset_id} next={self.next_index}>"
