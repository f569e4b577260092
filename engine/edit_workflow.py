"""
전표 편집 워크플로

게시된 전표는 수정하지 않고 "삭제 → 삭제 확인 → 같은 번호로 재게시" 로 편집.
저장소가 삭제 직후 이전 행을 반환할 수 있으므로 고정 대기 대신
지수 백오프로 재조회(SyncPolicy). 재삭제 1회 후에도 행이 남으면 STUCK.

처리 중 플래그는 begin()부터 submit()/cancel() 완료까지 유지되어
같은 전표에 대한 다른 게시/편집을 막음.

사용 예시:
```python
workflow = EditWorkflow(posting, notifier)

await workflow.begin("RV-1003", reason="금액 정정")
posted = await workflow.submit(corrected_request)  # RV-1003 유지

# 또는 취소 (원본 그대로 재게시)
await workflow.cancel()
```
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace

from adapters.interfaces import INotifier
from core.config.loader import SyncPolicy
from core.domain.state_machines import EditState, EditStateMachine, StateMachineError
from core.inventory.models import AdjustmentRecord
from core.ledger.errors import (
    LedgerError,
    StoreIOError,
    StuckTransactionError,
    ValidationError,
)
from core.ledger.models import LedgerEntry
from core.ledger.requests import VoucherRequestBase
from core.ledger.types import TransactionType
from engine.posting import PostedVoucher, PostingService

logger = logging.getLogger(__name__)

RESTORE_FAILURE_HINT = (
    "원본 전표를 복구하지 못했을 수 있습니다. 원장을 직접 점검하세요."
)

# 게시 시 품목 수량/평균원가를 바꾼 유형. 분개만으로는 게시 전 품목 상태를
# 복원할 수 없으므로 편집 대신 반대 방향 전표로 정정.
ITEM_MUTATING_KINDS = frozenset({
    TransactionType.INVENTORY_ADJUSTMENT,
    TransactionType.RETURN_TO_SUPPLIER,
})


@dataclass
class EditSession:
    """편집 중인 전표 (EDITING 진입 시 캡처한 원본)"""

    transaction_id: str
    kind: TransactionType
    originals: list[LedgerEntry]
    adjustment_records: list[AdjustmentRecord] = field(default_factory=list)
    reason: str = ""


class EditWorkflow:
    """삭제 → 확인 → 재게시 상태 머신 구동

    Args:
        posting: 게시 서비스 (저장소, 검증기, 처리 중 플래그 공유)
        notifier: STUCK/FAILED 알림 대상 (선택)
        policy: 재조회 정책 (None이면 설정값)
        sleep: 대기 함수 (테스트에서 교체)
    """

    def __init__(
        self,
        posting: PostingService,
        notifier: INotifier | None = None,
        policy: SyncPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.posting = posting
        self.store = posting.store
        self.guard = posting.guard
        self.notifier = notifier
        self.policy = policy or posting.settings.sync
        self._sleep = sleep

        self.machine = EditStateMachine()
        self.session: EditSession | None = None

    @property
    def state(self) -> str:
        return self.machine.state

    # -------------------------------------------------------------------------
    # 편집 시작: 캡처 → 삭제 → 확인
    # -------------------------------------------------------------------------

    async def begin(self, transaction_id: str, reason: str = "Edit") -> EditSession:
        """원본 캡처 후 삭제, 삭제 확인까지 진행 (AWAITING_REPOST)

        Raises:
            DuplicateSubmissionError: 같은 전표가 처리 중
            ValidationError: 전표 없음, 또는 품목 재고를 바꾼 유형(IA, RTS)
            StuckTransactionError: 재시도 후에도 행 잔존
            StoreIOError: 삭제 실패
        """
        if not self.machine.can_transition(EditState.EDITING):
            raise StateMachineError(f"편집을 시작할 수 없는 상태입니다: {self.state}")

        self.guard.acquire(transaction_id)
        try:
            self.machine.transition(EditState.EDITING)
            originals = await self.store.query(transaction_id)
            if not originals:
                self.machine.transition(EditState.IDLE)
                raise ValidationError(f"전표를 찾을 수 없습니다: {transaction_id}", None, "transaction_id")

            kind = TransactionType(originals[0].transaction_type)
            if kind in ITEM_MUTATING_KINDS:
                self.machine.transition(EditState.IDLE)
                raise ValidationError(
                    f"품목 재고를 바꾼 전표는 편집할 수 없습니다: {transaction_id}. "
                    f"반대 방향 {kind.value} 전표로 정정하세요.",
                    kind.value, "kind",
                )

            self.session = EditSession(
                transaction_id=transaction_id,
                kind=kind,
                originals=originals,
                adjustment_records=await self.store.list_adjustment_records(transaction_id),
                reason=reason,
            )
            logger.info(f"편집 시작: {transaction_id} ({len(originals)}행 캡처)")

            self.machine.transition(EditState.DELETING)
            await self._delete(transaction_id, reason)

            self.machine.transition(EditState.VERIFYING_DELETION)
            residual = await self._poll_until_deleted(transaction_id)

            if residual:
                logger.warning(f"삭제 후 잔존 {len(residual)}행, 재삭제: {transaction_id}")
                self.machine.transition(EditState.RETRYING)
                await self._delete(transaction_id, reason)
                self.machine.transition(EditState.VERIFYING_DELETION)
                residual = await self._poll_until_deleted(transaction_id)

            if residual:
                self.machine.transition(EditState.STUCK)
                logger.critical(
                    f"전표 삭제 불가 (STUCK): {transaction_id}, 잔존 {len(residual)}행"
                )
                await self._notify(
                    transaction_id, "STUCK",
                    f"재삭제 후에도 {len(residual)}행이 남아 있습니다. 수동 점검이 필요합니다.",
                    level="CRITICAL",
                )
                raise StuckTransactionError(transaction_id, len(residual))

            self.machine.transition(EditState.AWAITING_REPOST)
            self.posting.reconciler.invalidate()
            return self.session

        except BaseException:
            if not self.machine.is_awaiting_repost:
                self.guard.release(transaction_id)
                if self.machine.is_idle:
                    self.session = None
            raise

    async def _delete(self, transaction_id: str, reason: str) -> None:
        try:
            await self.store.delete(transaction_id, reason=reason)
        except StoreIOError as e:
            self.machine.transition(EditState.FAILED)
            logger.error(f"전표 삭제 실패: {transaction_id} - {e}")
            await self._notify(transaction_id, "DELETE_FAILED", str(e), hint=RESTORE_FAILURE_HINT)
            raise

    async def _poll_until_deleted(self, transaction_id: str) -> list[LedgerEntry]:
        """행이 사라질 때까지 재조회 (지수 백오프, 최대 max_attempts회)

        Returns:
            마지막 조회에서 남은 행 (비었으면 삭제 확인)
        """
        delays = self.policy.delays()
        rows: list[LedgerEntry] = []
        for attempt in range(max(self.policy.max_attempts, 1)):
            rows = await self.store.query(transaction_id)
            if not rows:
                return []
            if attempt < len(delays):
                await self._sleep(delays[attempt])
        return rows

    async def _poll_until_posted(self, transaction_id: str, expected: int) -> list[LedgerEntry]:
        delays = self.policy.delays()
        rows: list[LedgerEntry] = []
        for attempt in range(max(self.policy.max_attempts, 1)):
            rows = await self.store.query(transaction_id)
            if len(rows) >= expected:
                return rows
            if attempt < len(delays):
                await self._sleep(delays[attempt])
        return rows

    # -------------------------------------------------------------------------
    # 재게시
    # -------------------------------------------------------------------------

    async def submit(self, request: VoucherRequestBase) -> PostedVoucher:
        """수정 입력으로 같은 전표 번호에 재게시

        입력/검증 오류는 AWAITING_REPOST로 되돌아가 다시 제출 가능.

        Raises:
            ValidationError / MissingAccountError / UnbalancedTransactionError
            StoreIOError: 게시 실패 (FAILED)
        """
        session = self._require_awaiting()
        self.machine.transition(EditState.BUILDING)

        try:
            if request.kind != session.kind.value:  # type: ignore[attr-defined]
                raise ValidationError(
                    f"전표 유형을 바꿀 수 없습니다 ({session.kind.value})",
                    session.kind.value, "kind",
                )
            builder, context = await self.posting.load_context()
            built = builder.build(request, session.transaction_id, context)

            self.machine.transition(EditState.VALIDATING)
            self.posting.validator.validate(built.entries)
        except LedgerError:
            self.machine.transition(EditState.AWAITING_REPOST)
            raise

        self.machine.transition(EditState.POSTING)
        try:
            posted = await self.posting.commit(built)
        except StoreIOError as e:
            await self._fail(session, "REPOST_FAILED", f"재게시 실패: {e}")
            raise

        self.machine.transition(EditState.VERIFYING_POST)
        rows = await self._poll_until_posted(session.transaction_id, len(posted.entries))
        if len(rows) < len(posted.entries):
            await self._fail(
                session, "REPOST_UNVERIFIED",
                f"재게시 확인 실패 ({len(rows)}/{len(posted.entries)}행)",
            )
            raise StoreIOError(
                "재게시 확인 실패", "verify_post", session.transaction_id
            )

        self._finish(session)
        logger.info(f"편집 완료: {session.transaction_id}")
        return posted

    async def cancel(self) -> list[LedgerEntry]:
        """편집 취소: 캡처한 원본을 그대로 재게시

        Returns:
            복구된 분개 (원본과 동등)
        """
        session = self._require_awaiting()
        self.machine.transition(EditState.RESTORING)

        try:
            restored = await self.store.append(
                [replace(e, entry_id=None, seq=None) for e in session.originals]
            )
            if session.adjustment_records:
                seq = min((e.seq for e in restored if e.seq is not None), default=0)
                await self.store.save_adjustment_records(
                    [replace(r, seq=seq) for r in session.adjustment_records]
                )
        except StoreIOError as e:
            await self._fail(session, "RESTORE_FAILED", f"원본 복구 실패: {e}")
            raise

        self.posting.reconciler.invalidate()
        self._finish(session)
        logger.info(f"편집 취소, 원본 복구: {session.transaction_id} ({len(restored)}행)")
        return restored

    def reset(self) -> None:
        """STUCK/FAILED 상태 해제 (운영자 점검 후)"""
        if not self.machine.needs_attention:
            raise StateMachineError(f"reset 대상 상태가 아닙니다: {self.state}")
        if self.session is not None:
            self.guard.release(self.session.transaction_id)
        self.machine.transition(EditState.IDLE)
        self.session = None

    # -------------------------------------------------------------------------
    # 내부 헬퍼
    # -------------------------------------------------------------------------

    def _require_awaiting(self) -> EditSession:
        if not self.machine.is_awaiting_repost or self.session is None:
            raise StateMachineError(f"재게시 대기 상태가 아닙니다: {self.state}")
        return self.session

    def _finish(self, session: EditSession) -> None:
        self.machine.transition(EditState.IDLE)
        self.guard.release(session.transaction_id)
        self.session = None

    async def _fail(self, session: EditSession, event: str, detail: str) -> None:
        self.machine.transition(EditState.FAILED)
        self.guard.release(session.transaction_id)
        logger.error(f"{detail}: {session.transaction_id}")
        await self._notify(session.transaction_id, event, detail, hint=RESTORE_FAILURE_HINT)

    async def _notify(
        self,
        transaction_id: str,
        event: str,
        detail: str,
        level: str = "ERROR",
        hint: str | None = None,
    ) -> None:
        if self.notifier is None:
            return
        await self.notifier.send_transaction_alert(
            transaction_id, event, detail, level=level, hint=hint
        )
