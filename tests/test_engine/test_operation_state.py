"""Tests for the receive/send operation state machine."""

from __future__ import annotations

import pytest

from ecash_wallet.engine.operations.state import Operation, OperationKind, OperationState

HAPPY_PATH = [
    OperationState.COUNTERS_RESERVED,
    OperationState.COUNTERS_PERSISTED,
    OperationState.MINT_CALL_IN_FLIGHT,
    OperationState.APPLIED,
]


class TestOperation:
    def test_initial_state(self) -> None:
        op = Operation(kind=OperationKind.RECEIVE)
        assert op.state == OperationState.IDLE
        assert op.history == [OperationState.IDLE]
        assert not op.is_terminal
        assert not op.counters_persisted

    def test_happy_path(self) -> None:
        op = Operation(kind=OperationKind.SEND)
        for state in HAPPY_PATH:
            op.advance(state)
        assert op.is_terminal
        assert op.counters_persisted
        assert op.history == [OperationState.IDLE, *HAPPY_PATH]

    def test_cannot_skip_persist(self) -> None:
        op = Operation(kind=OperationKind.RECEIVE)
        op.advance(OperationState.COUNTERS_RESERVED)
        with pytest.raises(RuntimeError, match="Illegal"):
            op.advance(OperationState.MINT_CALL_IN_FLIGHT)

    def test_cannot_call_mint_from_idle(self) -> None:
        op = Operation(kind=OperationKind.SEND)
        with pytest.raises(RuntimeError, match="Illegal"):
            op.advance(OperationState.MINT_CALL_IN_FLIGHT)

    @pytest.mark.parametrize("steps", range(len(HAPPY_PATH)))
    def test_fail_from_any_non_terminal_state(self, steps: int) -> None:
        op = Operation(kind=OperationKind.RECEIVE)
        for state in HAPPY_PATH[:steps]:
            op.advance(state)
        err = RuntimeError("boom")
        op.fail(err)
        assert op.state == OperationState.FAILED
        assert op.error is err
        assert op.counters_persisted == (steps >= 2)

    @pytest.mark.parametrize("terminal", [OperationState.APPLIED, OperationState.FAILED])
    def test_terminal_states_are_final(self, terminal: OperationState) -> None:
        op = Operation(kind=OperationKind.SEND)
        if terminal is OperationState.APPLIED:
            for state in HAPPY_PATH:
                op.advance(state)
        else:
            op.fail(RuntimeError("x"))
        with pytest.raises(RuntimeError, match="Illegal"):
            op.advance(OperationState.FAILED)
