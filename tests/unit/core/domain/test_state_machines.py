"""
core/domain/state_machines.py 테스트

전표 편집 상태 전이 규칙 테스트
"""

import pytest

from core.domain.state_machines import (
    EditState,
    EditStateMachine,
    StateMachine,
    StateMachineError,
)


class TestStateMachineBase:
    """StateMachine 기본 클래스 테스트"""

    def test_transition_and_history(self) -> None:
        machine = StateMachine("A", {"A": ["B"], "B": ["A"]}, name="Test")

        assert machine.transition("B") == "B"
        assert machine.transition("A") == "A"
        assert machine.history == [("A", "B"), ("B", "A")]

    def test_invalid_transition(self) -> None:
        machine = StateMachine("A", {"A": ["B"]}, name="Test")

        with pytest.raises(StateMachineError, match="Cannot transition from A to C"):
            machine.transition("C")
        assert machine.state == "A"

    def test_history_is_copy(self) -> None:
        machine = StateMachine("A", {"A": ["B"]})
        machine.history.append(("X", "Y"))
        assert machine.history == []


class TestEditStateMachine:
    """편집 상태 머신 테스트"""

    def test_initial_idle(self) -> None:
        machine = EditStateMachine()
        assert machine.is_idle
        assert machine.state == "IDLE"

    def test_happy_path(self) -> None:
        """편집 → 삭제 → 확인 → 재게시 → IDLE"""
        machine = EditStateMachine()
        for state in (
            EditState.EDITING,
            EditState.DELETING,
            EditState.VERIFYING_DELETION,
            EditState.AWAITING_REPOST,
        ):
            machine.transition(state)
        assert machine.is_awaiting_repost

        for state in (
            EditState.BUILDING,
            EditState.VALIDATING,
            EditState.POSTING,
            EditState.VERIFYING_POST,
            EditState.IDLE,
        ):
            machine.transition(state)
        assert machine.is_idle

    def test_retry_then_stuck(self) -> None:
        machine = EditStateMachine(EditState.VERIFYING_DELETION)

        machine.transition(EditState.RETRYING)
        machine.transition(EditState.VERIFYING_DELETION)
        machine.transition(EditState.STUCK)

        assert machine.needs_attention
        machine.transition(EditState.IDLE)
        assert machine.is_idle

    def test_validation_failure_returns_to_awaiting(self) -> None:
        machine = EditStateMachine(EditState.VALIDATING)
        machine.transition(EditState.AWAITING_REPOST)
        assert machine.is_awaiting_repost

    def test_cancel_path(self) -> None:
        machine = EditStateMachine(EditState.AWAITING_REPOST)
        machine.transition(EditState.RESTORING)
        machine.transition(EditState.IDLE)
        assert machine.is_idle

    @pytest.mark.parametrize(
        ("start", "target"),
        [
            (EditState.IDLE, EditState.DELETING),
            (EditState.EDITING, EditState.AWAITING_REPOST),
            (EditState.VERIFYING_DELETION, EditState.POSTING),
            (EditState.AWAITING_REPOST, EditState.POSTING),
            (EditState.STUCK, EditState.AWAITING_REPOST),
        ],
    )
    def test_forbidden_transitions(self, start: EditState, target: EditState) -> None:
        """삭제 확인 전 재게시 불가 등"""
        machine = EditStateMachine(start)
        assert not machine.can_transition(target)
        with pytest.raises(StateMachineError):
            machine.transition(target)

    def test_every_state_has_transitions(self) -> None:
        assert set(EditStateMachine.TRANSITIONS) == {s.value for s in EditState}
