"""
State Machines

게시된 전표 편집(삭제 → 확인 → 재게시)의 상태 전이 관리.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class StateMachineError(Exception):
    """상태 전이 오류"""
    pass


class EditState(str, Enum):
    """전표 편집 상태

    전이 규칙:
    - IDLE → EDITING: 원본 캡처
    - EDITING → DELETING: 삭제 요청
    - DELETING → VERIFYING_DELETION: 재조회로 잔존 행 확인
    - VERIFYING_DELETION → RETRYING: 잔존 행 있음 (1회 재삭제)
    - RETRYING → VERIFYING_DELETION: 재삭제 후 재확인
    - VERIFYING_DELETION → STUCK: 재시도 후에도 잔존 (수동 점검 필요)
    - VERIFYING_DELETION → AWAITING_REPOST: 삭제 확인 완료
    - AWAITING_REPOST → BUILDING: 수정 입력 제출
    - AWAITING_REPOST → RESTORING: 편집 취소 (원본 재게시)
    - BUILDING → VALIDATING / AWAITING_REPOST (입력 오류)
    - VALIDATING → POSTING / AWAITING_REPOST (검증 실패)
    - POSTING → VERIFYING_POST / FAILED (저장 실패)
    - VERIFYING_POST → IDLE
    - RESTORING → IDLE / FAILED
    - STUCK, FAILED → IDLE: 운영자 확인 후 reset
    """
    IDLE = "IDLE"
    EDITING = "EDITING"
    DELETING = "DELETING"
    VERIFYING_DELETION = "VERIFYING_DELETION"
    RETRYING = "RETRYING"
    AWAITING_REPOST = "AWAITING_REPOST"
    BUILDING = "BUILDING"
    VALIDATING = "VALIDATING"
    POSTING = "POSTING"
    VERIFYING_POST = "VERIFYING_POST"
    RESTORING = "RESTORING"
    STUCK = "STUCK"
    FAILED = "FAILED"


class StateMachine:
    """상태 머신 기본 클래스

    Args:
        initial_state: 초기 상태
        transitions: 허용된 전이 정의 {from_state: [to_states]}
        name: 머신 이름 (로깅용)
    """

    def __init__(
        self,
        initial_state: str | Enum,
        transitions: dict[str, list[str]],
        name: str = "StateMachine",
    ):
        self._state = initial_state.value if isinstance(initial_state, Enum) else initial_state
        self._transitions = transitions
        self._name = name
        self._history: list[tuple[str, str]] = []

    @property
    def state(self) -> str:
        """현재 상태"""
        return self._state

    def can_transition(self, to_state: str | Enum) -> bool:
        """전이 가능 여부 확인"""
        target = to_state.value if isinstance(to_state, Enum) else to_state
        return target in self._transitions.get(self._state, [])

    def transition(self, to_state: str | Enum) -> str:
        """상태 전이

        Args:
            to_state: 목표 상태

        Returns:
            새 상태

        Raises:
            StateMachineError: 허용되지 않은 전이
        """
        target = to_state.value if isinstance(to_state, Enum) else to_state

        if not self.can_transition(target):
            allowed = self._transitions.get(self._state, [])
            raise StateMachineError(
                f"{self._name}: Cannot transition from {self._state} to {target}. "
                f"Allowed: {allowed}"
            )

        old_state = self._state
        self._state = target
        self._history.append((old_state, target))

        logger.debug(f"{self._name}: {old_state} → {target}")

        return target

    @property
    def history(self) -> list[tuple[str, str]]:
        """상태 전이 이력"""
        return self._history.copy()


class EditStateMachine(StateMachine):
    """전표 편집 상태 머신"""

    TRANSITIONS: dict[str, list[str]] = {
        "IDLE": ["EDITING"],
        "EDITING": ["DELETING", "IDLE"],
        "DELETING": ["VERIFYING_DELETION", "FAILED"],
        "VERIFYING_DELETION": ["RETRYING", "AWAITING_REPOST", "STUCK"],
        "RETRYING": ["VERIFYING_DELETION", "FAILED"],
        "AWAITING_REPOST": ["BUILDING", "RESTORING"],
        "BUILDING": ["VALIDATING", "AWAITING_REPOST"],
        "VALIDATING": ["POSTING", "AWAITING_REPOST"],
        "POSTING": ["VERIFYING_POST", "FAILED"],
        "VERIFYING_POST": ["IDLE", "FAILED"],
        "RESTORING": ["IDLE", "FAILED"],
        "STUCK": ["IDLE"],
        "FAILED": ["IDLE"],
    }

    def __init__(self, initial_state: str | EditState = EditState.IDLE):
        super().__init__(
            initial_state=initial_state,
            transitions=self.TRANSITIONS,
            name="EditStateMachine",
        )

    @property
    def is_idle(self) -> bool:
        return self._state == EditState.IDLE.value

    @property
    def is_awaiting_repost(self) -> bool:
        """원본 삭제 확인 완료, 수정 입력 대기"""
        return self._state == EditState.AWAITING_REPOST.value

    @property
    def needs_attention(self) -> bool:
        """운영자 점검 필요 상태"""
        return self._state in (EditState.STUCK.value, EditState.FAILED.value)
