"""Counter service: durable per-keyset derivation index.

The counter is the next unused derivation index for a keyset. Reservation is
a pure in-memory computation; persistence is a separate, committed write that
must land before any mint call uses the reserved range. A persisted counter
never moves backwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ecash_wallet.crypto.bip32 import HARDENED_OFFSET
from ecash_wallet.engine.models.counter import CounterRecord
from ecash_wallet.errors.ledger_errors import CorruptState, CounterExhausted, CounterRegression, StorageError

if TYPE_CHECKING:
    from ecash_wallet.engine.client import WalletEngine

logger = logging.getLogger(__name__)

# Counters index hardened children, so the last usable index is 2**31 - 1.
MAX_NEXT = HARDENED_OFFSET


@dataclass(frozen=True)
class CounterReservation:
    """An index range computed for one operation. Never persisted itself.

    Attributes:
        keyset_id: Keyset the range belongs to.
        start: First index of the range.
        count: Number of indexes reserved.
        next: Value to persist, ``start + count``.
    """

    keyset_id: str
    start: int
    count: int
    next: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.count < 0 or self.next != self.start + self.count:
            msg = f"Inconsistent reservation: start={self.start} count={self.count} next={self.next}"
            raise ValueError(msg)

    @property
    def indexes(self) -> range:
        """The reserved indexes."""
        return range(self.start, self.next)


def _validated_next(record: CounterRecord) -> int:
    value = record.next_index
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise CorruptState("counters", record.keyset_id, f"next must be a non-negative integer, got {value!r}")
    return value


class CounterService:
    """Load, reserve and persist derivation counters for one wallet store."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine
        self._known: dict[str, int] = {}
        self._loaded_all = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, keyset_id: str) -> int:
        """Return the persisted ``next`` for a keyset, or 0 if absent.

        Raises:
            StorageError: On database I/O faults.
            CorruptState: If the stored row is invalid.
        """
        try:
            async with self._engine.datastore.session() as session:
                record = await session.get(CounterRecord, keyset_id)
        except (SQLAlchemyError, OSError) as exc:
            msg = f"failed to load counter for keyset {keyset_id}: {exc}"
            raise StorageError(msg) from exc

        value = 0 if record is None else _validated_next(record)
        self._known[keyset_id] = value
        return value

    async def load_all(self) -> dict[str, int]:
        """Return every persisted counter, keyed by keyset id.

        Also refreshes the in-memory view that :meth:`reserve` computes over.

        Raises:
            StorageError: On database I/O faults.
            CorruptState: If any stored row is invalid.
        """
        try:
            async with self._engine.datastore.session() as session:
                result = await session.execute(select(CounterRecord))
                records = list(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            msg = f"failed to load counters: {exc}"
            raise StorageError(msg) from exc

        counters = {record.keyset_id: _validated_next(record) for record in records}
        self._known = dict(counters)
        self._loaded_all = True
        logger.debug("Loaded counters: %s", counters)
        return counters

    # ------------------------------------------------------------------
    # Reservation
    # ------------------------------------------------------------------

    def known(self, keyset_id: str) -> int | None:
        """Return the in-memory ``next`` for a keyset, or None if not loaded."""
        if keyset_id in self._known:
            return self._known[keyset_id]
        return 0 if self._loaded_all else None

    def reserve(self, keyset_id: str, count: int) -> CounterReservation:
        """Compute the next ``count`` indexes for a keyset without persisting.

        Args:
            keyset_id: Keyset to reserve under.
            count: Number of indexes needed (may be 0).

        Returns:
            The reservation; only its ``next`` should be persisted.

        Raises:
            ValueError: If ``count`` is negative.
            RuntimeError: If the keyset's counter has not been loaded.
            CounterExhausted: If the range would pass the last hardened index.
        """
        if count < 0:
            msg = f"Reservation count must be non-negative, got {count}"
            raise ValueError(msg)
        start = self.known(keyset_id)
        if start is None:
            msg = f"Counter for keyset {keyset_id} not loaded. Call load() or load_all() first."
            raise RuntimeError(msg)
        if start + count > MAX_NEXT:
            raise CounterExhausted(keyset_id, start, count, MAX_NEXT)
        reservation = CounterReservation(
            keyset_id=keyset_id, start=start, count=count, next=start + count
        )
        logger.info(
            "Counters reserved: keyset=%s start=%d count=%d next=%d",
            keyset_id,
            reservation.start,
            reservation.count,
            reservation.next,
        )
        return reservation

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def persist(
        self,
        keyset_id: str,
        next_index: int,
        *,
        expected_start: int | None = None,
    ) -> None:
        """Durably store ``next_index`` for a keyset in its own transaction.

        Args:
            keyset_id: Keyset to update.
            next_index: New ``next`` value.
            expected_start: Start of the reservation being persisted. If the
                stored counter is already past it, the range overlaps indexes
                issued elsewhere and the write is refused.

        Raises:
            CounterRegression: If the write would lower the counter or the
                reservation is stale.
            StorageError: On database I/O faults. Nothing is written.
        """
        if next_index < 0:
            msg = f"Counter must be non-negative, got {next_index}"
            raise ValueError(msg)

        try:
            async with self._engine.datastore.session() as session, session.begin():
                record = await session.get(CounterRecord, keyset_id)
                stored = 0 if record is None else _validated_next(record)
                if expected_start is not None and stored > expected_start:
                    raise CounterRegression(keyset_id, stored, expected_start)
                if next_index < stored:
                    raise CounterRegression(keyset_id, stored, next_index)
                if record is None:
                    session.add(CounterRecord(keyset_id=keyset_id, next_index=next_index))
                else:
                    record.next_index = next_index
        except (SQLAlchemyError, OSError) as exc:
            msg = f"failed to persist counter for keyset {keyset_id}: {exc}"
            raise StorageError(msg) from exc

        self._known[keyset_id] = next_index
        logger.info("Counter for %s persisted: next=%d", keyset_id, next_index)

    async def bump(self, keyset_id: str, by: int = 1) -> int:
        """Skip the counter forward, e.g. after the mint reports outputs already signed.

        Args:
            keyset_id: Keyset to advance.
            by: Number of indexes to skip (> 0).

        Returns:
            The new persisted ``next``.
        """
        if by <= 0:
            msg = f"Counter can only be bumped forward, got {by}"
            raise ValueError(msg)
        current = await self.load(keyset_id)
        new_next = current + by
        await self.persist(keyset_id, new_next, expected_start=current)
        logger.warning("Counter for %s bumped from %d to %d", keyset_id, current, new_next)
        return new_next
