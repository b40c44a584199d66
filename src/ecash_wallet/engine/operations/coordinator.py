"""Operation coordinator: receive and send.

Both operations follow the same ordering:
1. Plan locally and with the mint client (no store writes)
2. Reserve a counter range in memory
3. Persist the range's ``next`` and commit
4. Call the mint with secrets derived from the persisted range
5. Apply proof mutations in one transaction, only after success

A crash at or after step 3 wastes the reserved indexes and nothing else: a
fresh operation starts past them, and the proof set is only touched in step 5.
The coordinator never retries.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from ecash_wallet.engine.operations.results import ReceiveResult, SendResult
from ecash_wallet.engine.operations.state import Operation, OperationKind, OperationState
from ecash_wallet.errors.ledger_errors import (
    InsufficientFunds,
    InvalidAmount,
    InvalidToken,
    MintCallFailed,
    OperationInProgress,
)
from ecash_wallet.mint.models import Proof, SendPlan, Token, sum_amounts

if TYPE_CHECKING:
    from ecash_wallet.crypto.derivation import DerivedOutput
    from ecash_wallet.engine.client import WalletEngine
    from ecash_wallet.engine.services.counter_service import CounterReservation

logger = logging.getLogger(__name__)


class OperationCoordinator:
    """Runs receive/send against one wallet store.

    Operations on a store must be serialized by the caller; starting one
    while another is in flight raises :class:`OperationInProgress`.
    """

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine
        self._current: Operation | None = None
        self._last: Operation | None = None

    @property
    def current_operation(self) -> Operation | None:
        """The operation in flight, if any."""
        return self._current

    @property
    def last_operation(self) -> Operation | None:
        """The most recently finished operation, if any."""
        return self._last

    @asynccontextmanager
    async def _run(self, kind: OperationKind) -> AsyncIterator[Operation]:
        if self._current is not None:
            raise OperationInProgress(str(self._current.kind))
        op = Operation(kind=kind)
        self._current = op
        try:
            yield op
        except Exception as exc:
            if not op.is_terminal:
                op.fail(exc)
            logger.warning("%s failed in state %s: %s", kind, op.history[-2], exc)
            raise
        finally:
            self._current = None
            self._last = op

    # ------------------------------------------------------------------
    # Receive
    # ------------------------------------------------------------------

    async def receive(self, encoded_token: str) -> ReceiveResult:
        """Redeem a token into fresh proofs derived from the seed.

        Args:
            encoded_token: Serialized interchange token.

        Returns:
            ReceiveResult with the stored proofs and the persisted range.

        Raises:
            InvalidToken: If the token cannot be decoded or is empty.
            StorageError: If counters or proofs could not be written.
            MintCallFailed: If planning or the swap failed at the mint.
        """
        async with self._run(OperationKind.RECEIVE) as op:
            # 1. Decode token
            token = self._decode(encoded_token)
            mint = self._engine.mint_client

            # 2. Plan how many outputs the swap needs
            try:
                keyset_id = await mint.load_keyset()
                needed = await mint.plan_receive(token)
            except Exception as exc:
                raise MintCallFailed("receive", str(exc), counters_persisted=False) from exc
            self._check_output_count(needed, "receive")

            # 3-5. Reserve and persist the counter range before any swap
            reservation = await self._reserve_and_persist(op, keyset_id, needed)
            outputs = self._engine.deriver.derive_reservation(reservation)

            # 6. Swap at the mint
            op.advance(OperationState.MINT_CALL_IN_FLIGHT)
            try:
                proofs = list(await mint.swap(token, outputs))
            except Exception as exc:
                raise MintCallFailed(
                    "receive", str(exc), counters_persisted=True, reservation=reservation
                ) from exc
            self._check_secrets(proofs, outputs, "receive")

            # 7. Store the new proofs
            await self._engine.proof_service.replace(remove=[], add=proofs)
            op.advance(OperationState.APPLIED)

        amount = sum_amounts(proofs)
        if amount != token.amount:
            logger.warning("Received %d for a token worth %d", amount, token.amount)
        logger.info("Received %d in %d proof(s)", amount, len(proofs))
        return ReceiveResult(
            amount=amount, proofs=tuple(proofs), reservation=reservation, memo=token.memo
        )

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    async def send(self, amount: int, memo: str | None = None) -> SendResult:
        """Split stored proofs to produce a token worth ``amount``.

        Args:
            amount: Value to send (> 0).
            memo: Optional note carried on the outgoing token.

        Returns:
            SendResult with the encoded token; change is stored, the
            outgoing proofs are not.

        Raises:
            InvalidAmount: If ``amount`` is not a positive integer.
            InsufficientFunds: If the balance is below ``amount``.
            StorageError: If counters or proofs could not be written.
            MintCallFailed: If planning or the split failed at the mint.
        """
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidAmount(amount)

        async with self._run(OperationKind.SEND) as op:
            available = await self._engine.proof_service.load_all()

            # 1. Balance check, before any mutation
            balance = sum_amounts(available)
            if balance < amount:
                raise InsufficientFunds(amount, balance)

            # 2. Input and output planning
            mint = self._engine.mint_client
            try:
                keyset_id = await mint.load_keyset()
                plan = await mint.plan_send(amount, available)
            except Exception as exc:
                raise MintCallFailed("send", str(exc), counters_persisted=False) from exc
            self._check_plan(plan, available, amount)

            # 3. Reserve and persist the counter range before any split
            reservation = await self._reserve_and_persist(op, keyset_id, plan.output_count)
            outputs = self._engine.deriver.derive_reservation(reservation)

            # 4. Split at the mint
            op.advance(OperationState.MINT_CALL_IN_FLIGHT)
            try:
                result = await mint.split(amount, plan.inputs, outputs)
            except Exception as exc:
                raise MintCallFailed(
                    "send", str(exc), counters_persisted=True, reservation=reservation
                ) from exc
            keep, send = list(result.keep), list(result.send)
            self._check_secrets(keep + send, outputs, "send")
            if sum_amounts(keep) + amount != plan.input_amount or sum_amounts(send) != amount:
                logger.warning(
                    "Split totals off: inputs=%d keep=%d send=%d requested=%d",
                    plan.input_amount,
                    sum_amounts(keep),
                    sum_amounts(send),
                    amount,
                )

            # 5. Encode the outgoing token, then swap inputs for change
            token = self._encode(send, memo)
            await self._engine.proof_service.replace(remove=plan.inputs, add=keep)
            op.advance(OperationState.APPLIED)

        logger.info("Sent %d; kept %d in change", amount, sum_amounts(keep))
        return SendResult(
            token=token,
            amount=amount,
            send_proofs=tuple(send),
            keep_proofs=tuple(keep),
            consumed=tuple(plan.inputs),
            reservation=reservation,
            memo=memo,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _reserve_and_persist(
        self, op: Operation, keyset_id: str, count: int
    ) -> CounterReservation:
        counters = self._engine.counter_service
        await counters.load_all()

        reservation = counters.reserve(keyset_id, count)
        op.reservation = reservation
        op.advance(OperationState.COUNTERS_RESERVED)

        await counters.persist(keyset_id, reservation.next, expected_start=reservation.start)
        op.advance(OperationState.COUNTERS_PERSISTED)
        return reservation

    def _decode(self, encoded_token: str) -> Token:
        try:
            token = self._engine.token_codec.decode(encoded_token)
        except Exception as exc:
            raise InvalidToken(f"could not decode token: {exc}") from exc
        if not token.proofs:
            msg = "token carries no proofs"
            raise InvalidToken(msg)
        return token

    def _encode(self, proofs: Sequence[Proof], memo: str | None) -> str:
        mint_config = self._engine.config.mint
        token = Token(mint=mint_config.url, proofs=tuple(proofs), unit=mint_config.unit, memo=memo)
        try:
            return self._engine.token_codec.encode(token)
        except Exception as exc:
            raise InvalidToken(f"could not encode outgoing token: {exc}") from exc

    @staticmethod
    def _check_output_count(count: object, kind: str) -> None:
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            msg = f"mint client planned {count!r} outputs"
            raise MintCallFailed(kind, msg, counters_persisted=False)

    @classmethod
    def _check_plan(cls, plan: SendPlan, available: Sequence[Proof], amount: int) -> None:
        cls._check_output_count(plan.output_count, "send")
        stored = {p.secret for p in available}
        inputs = [p.secret for p in plan.inputs]
        if len(set(inputs)) != len(inputs) or not stored.issuperset(inputs):
            msg = "mint client selected inputs that are not stored proofs"
            raise MintCallFailed("send", msg, counters_persisted=False)
        if plan.input_amount < amount:
            msg = f"mint client selected {plan.input_amount} to cover {amount}"
            raise MintCallFailed("send", msg, counters_persisted=False)

    @staticmethod
    def _check_secrets(proofs: Sequence[Proof], outputs: Sequence[DerivedOutput], kind: str) -> None:
        derived = {o.secret for o in outputs}
        foreign = [p for p in proofs if p.secret not in derived]
        if foreign:
            logger.warning("%s returned %d proof(s) not built on derived secrets", kind, len(foreign))
