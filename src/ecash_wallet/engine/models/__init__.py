"""Wallet store data models (SQLAlchemy ORM).

Import :data:`ALL_MODELS` for table creation.
"""

from ecash_wallet.engine.models.base import Base, CreatedMixin, TimestampMixin
from ecash_wallet.engine.models.counter import CounterRecord
from ecash_wallet.engine.models.proof import ProofRecord

ALL_MODELS: list[type[Base]] = [
    ProofRecord,
    CounterRecord,
]

__all__ = [
    "ALL_MODELS",
    "Base",
    "CounterRecord",
    "CreatedMixin",
    "ProofRecord",
    "TimestampMixin",
]
