"""Typed errors raised by the seed, store and operation layers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ecash_wallet.errors.wallet_errors import WalletError

if TYPE_CHECKING:
    from ecash_wallet.engine.services.counter_service import CounterReservation


class InvalidRecoveryPhrase(WalletError):
    """The recovery phrase failed word-count or checksum validation."""

    def __init__(self, message: str = "invalid recovery phrase") -> None:
        super().__init__(message, code="invalid-recovery-phrase")


class InvalidToken(WalletError):
    """The token codec could not decode an incoming token."""

    def __init__(self, message: str = "invalid token") -> None:
        super().__init__(message, code="invalid-token")


class InvalidAmount(WalletError):
    """A requested amount is not a positive integer."""

    def __init__(self, amount: object) -> None:
        super().__init__(f"amount must be a positive integer, got {amount!r}", code="invalid-amount")
        self.amount = amount


class InsufficientFunds(WalletError):
    """The stored proofs do not cover the requested amount."""

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"insufficient funds: requested {requested}, available {available}",
            code="insufficient-funds",
        )
        self.requested = requested


class StorageError(WalletError):
    """An I/O fault while reading or writing the wallet store."""

    def __init__(self, message: str, *, code: str = "storage-error") -> None:
        super().__init__(message, code=code)


class CounterExhausted(StorageError):
    """A reservation would run past the last hardened derivation index."""

    def __init__(self, keyset_id: str, start: int, count: int, limit: int) -> None:
        super().__init__(
            f"keyset {keyset_id} cannot reserve {count} index(es) from {start}: limit is {limit}",
            code="counter-exhausted",
        )
        self.keyset_id = keyset_id
        self.start = start
        self.count = count
        self.limit = limit
        self.available = available


class CounterRegression(StorageError):
    """An attempt to persist a counter lower than the stored value."""

    def __init__(self, keyset_id: str, stored: int, requested: int) -> None:
        super().__init__(
            f"counter for keyset {keyset_id} cannot move from {stored} back to {requested}",
            code="counter-regression",
        )
        self.keyset_id = keyset_id
        self.stored = stored
        self.requested = requested


class CorruptState(WalletError):
    """A persisted row failed validation on load."""

    def __init__(self, table: str, key: str, reason: str) -> None:
        super().__init__(f"corrupt row in {table} ({key}): {reason}", code="corrupt-state")
        self.table = table
        self.key = key
        self.reason = reason


class MintCallFailed(WalletError):
    """The mint-client capability failed.

    When ``counters_persisted`` is true the reserved index range has already
    been written and is abandoned; the proof set is untouched.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        counters_persisted: bool,
        reservation: CounterReservation | None = None,
    ) -> None:
        super().__init__(f"{operation} failed at mint: {message}", code="mint-call-failed")
        self.operation = operation
        self.counters_persisted = counters_persisted
        self.reservation = reservation


class OperationInProgress(WalletError):
    """Another balance-affecting operation is already running on this store."""

    def __init__(self, running: str) -> None:
        super().__init__(f"operation already in progress: {running}", code="operation-in-progress")
        self.running = running
