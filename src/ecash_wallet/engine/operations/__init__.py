"""Receive/send orchestration."""

from ecash_wallet.engine.operations.coordinator import OperationCoordinator
from ecash_wallet.engine.operations.results import ReceiveResult, SendResult
from ecash_wallet.engine.operations.state import Operation, OperationKind, OperationState

__all__ = [
    "Operation",
    "OperationCoordinator",
    "OperationKind",
    "OperationState",
    "ReceiveResult",
    "SendResult",
]
