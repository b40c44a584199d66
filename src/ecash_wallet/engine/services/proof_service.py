"""Proof service: the durable set of unspent proofs.

All mutations go through :meth:`ProofService.replace`, which applies removals
and additions in one database transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from ecash_wallet.engine.models.proof import ProofRecord
from ecash_wallet.errors.ledger_errors import CorruptState, StorageError
from ecash_wallet.mint.models import Proof

if TYPE_CHECKING:
    from ecash_wallet.engine.client import WalletEngine

logger = logging.getLogger(__name__)


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_nonempty_str(value: object) -> bool:
    return isinstance(value, str) and bool(value)


def _proof_problem(keyset_id: object, amount: object, secret: object, signature: object) -> str:
    """Return a description of what is wrong with a proof, or an empty string."""
    if not _is_nonempty_str(secret):
        return "secret must be a non-empty string"
    if not _is_nonempty_str(keyset_id):
        return "keyset id must be a non-empty string"
    if not _is_positive_int(amount):
        return f"amount must be a positive integer, got {amount!r}"
    if not _is_nonempty_str(signature):
        return "signature must be a non-empty string"
    return ""


def _to_proof(record: ProofRecord) -> Proof:
    problem = _proof_problem(record.keyset_id, record.amount, record.secret, record.signature)
    if problem:
        raise CorruptState("proofs", str(record.secret)[:16], problem)
    return Proof(
        id=record.keyset_id,
        amount=record.amount,
        secret=record.secret,
        signature=record.signature,
    )


def _to_record(proof: Proof) -> ProofRecord:
    return ProofRecord(
        secret=proof.secret,
        keyset_id=proof.id,
        amount=proof.amount,
        signature=proof.signature,
    )


class ProofService:
    """Load and atomically replace the wallet's unspent proofs."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    async def load_all(self) -> list[Proof]:
        """Return every stored proof.

        Raises:
            StorageError: On database I/O faults.
            CorruptState: If a stored row fails validation.
        """
        stmt = select(ProofRecord).order_by(ProofRecord.keyset_id, ProofRecord.amount.desc())
        try:
            async with self._engine.datastore.session() as session:
                result = await session.execute(stmt)
                records = list(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            msg = f"failed to load proofs: {exc}"
            raise StorageError(msg) from exc

        proofs = [_to_proof(record) for record in records]
        logger.debug("Loaded %d proof(s)", len(proofs))
        return proofs

    async def count(self) -> int:
        """Return the number of stored proofs."""
        try:
            async with self._engine.datastore.session() as session:
                result = await session.execute(select(func.count(ProofRecord.secret)))
                return result.scalar_one()
        except (SQLAlchemyError, OSError) as exc:
            msg = f"failed to count proofs: {exc}"
            raise StorageError(msg) from exc

    async def replace(self, remove: Sequence[Proof], add: Sequence[Proof]) -> None:
        """Remove and add proofs in a single transaction.

        Removals match by secret; secrets not in the store are ignored.
        Additions may reuse a secret being removed, but not one that survives
        or one repeated within ``add``.

        Args:
            remove: Proofs to delete (consumed inputs).
            add: Proofs to insert (received proofs or change).

        Raises:
            StorageError: If an addition is invalid or duplicated, or on a
                database fault. The store is left unchanged.
        """
        remove_secrets = {p.secret for p in remove}
        add_secrets = [p.secret for p in add]
        if len(set(add_secrets)) != len(add_secrets):
            msg = "refusing to store proofs with duplicate secrets"
            raise StorageError(msg, code="duplicate-secret")
        for proof in add:
            problem = _proof_problem(proof.id, proof.amount, proof.secret, proof.signature)
            if problem:
                msg = f"refusing to store invalid proof: {problem}"
                raise StorageError(msg, code="invalid-proof")

        try:
            async with self._engine.datastore.session() as session, session.begin():
                removed = 0
                if remove_secrets:
                    result = await session.execute(
                        delete(ProofRecord).where(ProofRecord.secret.in_(sorted(remove_secrets)))
                    )
                    removed = result.rowcount
                if add_secrets:
                    result = await session.execute(
                        select(ProofRecord.secret).where(ProofRecord.secret.in_(add_secrets))
                    )
                    clashes = set(result.scalars().all())
                    if clashes:
                        msg = f"refusing to store {len(clashes)} proof(s) whose secret is already stored"
                        raise StorageError(msg, code="duplicate-secret")
                    session.add_all([_to_record(p) for p in add])
        except (SQLAlchemyError, OSError) as exc:
            msg = f"failed to replace proofs: {exc}"
            raise StorageError(msg) from exc

        logger.info("Proofs replaced: removed=%d added=%d", removed, len(add_secrets))
