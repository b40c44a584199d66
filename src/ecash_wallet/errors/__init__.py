"""Wallet error hierarchy."""

from ecash_wallet.errors.ledger_errors import (
    CorruptState,
    CounterExhausted,
    CounterRegression,
    InsufficientFunds,
    InvalidAmount,
    InvalidRecoveryPhrase,
    InvalidToken,
    MintCallFailed,
    OperationInProgress,
    StorageError,
)
from ecash_wallet.errors.wallet_errors import WalletError

__all__ = [
    "CorruptState",
    "CounterExhausted",
    "CounterRegression",
    "InsufficientFunds",
    "InvalidAmount",
    "InvalidRecoveryPhrase",
    "InvalidToken",
    "MintCallFailed",
    "OperationInProgress",
    "StorageError",
    "WalletError",
]
