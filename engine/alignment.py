"""
정렬(소급 조정) 계획

현재 원장/재고에서 계산한 값과 목표값의 차이를 한 건의 소급 조정 전표로 맞춤.
- 차이 < 0.01 이면 전표를 만들지 않음 (no-op)
- 전표 일자 = 대상의 가장 이른 분개 전날 (분개가 없으면 설정의 기준일)
- 상대 계정은 자본금 (Owner's Capital), 모든 행 is_adjustment=True
- 이전 정렬 분개도 현재값에 포함되므로 반복 실행해도 수렴

대상 3종:
- 계정/거래처 잔액
- 완제품 품목 (수량 + 가치)
- 원자재 버킷 (중량 + 가치, 목표 모드/SET-TO-ZERO 조정 기록)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from core.constants import Tolerances
from core.inventory.models import AdjustmentRecord, BucketKey
from core.inventory.narration import render_adjustment_narration
from core.ledger.balances import compute_balance, earliest_entry_date
from core.ledger.errors import ValidationError
from core.ledger.models import LedgerEntry, LedgerParty
from core.ledger.requests import StockAdjustmentLine
from core.ledger.types import AccountRole, JournalSide, TransactionType
from core.ledger.voucher_builder import (
    BuildContext,
    BuiltVoucher,
    ItemMutation,
    StockAdjustmentMutation,
    VoucherBuilder,
)
from core.types import AdjustmentDirection, NormalSide
from core.utils.voucher_no import next_voucher_no
from engine.posting import PostedVoucher, PostingService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class AlignmentPlan:
    """정렬 계획

    built가 None이면 이미 목표와 일치 (게시할 것 없음).
    """

    target_label: str
    current: Decimal
    target: Decimal
    built: BuiltVoucher | None = None

    @property
    def delta(self) -> Decimal:
        return self.target - self.current

    @property
    def is_noop(self) -> bool:
        return self.built is None

    @property
    def transaction_id(self) -> str | None:
        return self.built.transaction_id if self.built is not None else None


class AlignmentPlanner:
    """소급 조정 전표 계획/게시

    Args:
        posting: 게시 서비스 (저장소, 재구성기, 설정 공유)
    """

    TOLERANCE = Tolerances.BALANCE

    def __init__(self, posting: PostingService):
        self.posting = posting

    @property
    def epoch(self) -> date:
        return self.posting.settings.alignment_epoch

    # -------------------------------------------------------------------------
    # 계정/거래처 잔액
    # -------------------------------------------------------------------------

    async def plan_balance(
        self,
        entity_id: str,
        target_balance: Decimal,
        reason: str = "",
    ) -> AlignmentPlan:
        """잔액 정렬

        정상 방향 잔액(차변 정상: 차변-대변, 대변 정상: 대변-차변)을 목표로 맞춤.
        """
        builder, context = await self.posting.load_context()
        party = builder.chart.require(entity_id, "entity")
        current = compute_balance(party, context.ledger)
        plan = AlignmentPlan(party.name, current, target_balance)

        if abs(plan.delta) < self.TOLERANCE:
            logger.info(f"잔액 정렬 불필요: {party.name} (현재 {current})")
            return plan

        capital = builder.chart.require_role(AccountRole.OWNER_CAPITAL)
        normal = JournalSide.DEBIT if party.normal_side == NormalSide.DEBIT else JournalSide.CREDIT
        side = normal if plan.delta > 0 else normal.opposite

        transaction_id = self._next_id(TransactionType.JOURNAL, context)
        entry_date = self._entry_date(party.id, context.ledger)
        narration = f"Balance Alignment: {party.name} to {target_balance}"
        if reason:
            narration = f"{narration} - {reason}"

        plan.built = BuiltVoucher(
            transaction_id,
            TransactionType.JOURNAL,
            self._pair(builder, transaction_id, TransactionType.JOURNAL, entry_date,
                       party, capital, side, abs(plan.delta), narration),
        )
        return plan

    # -------------------------------------------------------------------------
    # 완제품 품목
    # -------------------------------------------------------------------------

    async def plan_item(
        self,
        item_id: str,
        target_qty: Decimal,
        target_worth: Decimal,
        reason: str = "",
    ) -> AlignmentPlan:
        """완제품 수량/가치 정렬

        가치 차이는 완제품 재고 vs 자본금으로 게시.
        수량만 다르면 분개 없이 품목 변경만 적용.
        """
        if target_qty < 0 or target_worth < 0:
            raise ValidationError("목표 수량/가치는 음수일 수 없습니다", "IA", "target")

        builder, context = await self.posting.load_context()
        item = context.items.get(item_id)
        if item is None:
            raise ValidationError(f"품목을 찾을 수 없습니다: {item_id}", "IA", "item_id")

        plan = AlignmentPlan(item.name, item.worth, target_worth)
        worth_delta = plan.delta
        qty_changed = target_qty != item.stock_qty
        if abs(worth_delta) < self.TOLERANCE and not qty_changed:
            logger.info(f"품목 정렬 불필요: {item.name}")
            return plan

        new_avg = target_worth / target_qty if target_qty > 0 else ZERO
        mutation = ItemMutation(item.id, target_qty, new_avg)
        transaction_id = self._next_id(TransactionType.JOURNAL, context)

        entries: list[LedgerEntry] = []
        if abs(worth_delta) >= self.TOLERANCE:
            inventory = builder.chart.require_role(AccountRole.FINISHED_GOODS)
            capital = builder.chart.require_role(AccountRole.OWNER_CAPITAL)
            side = JournalSide.DEBIT if worth_delta > 0 else JournalSide.CREDIT
            narration = (
                f"Inventory Alignment: {item.name} to {target_qty} units / {target_worth}"
            )
            if reason:
                narration = f"{narration} - {reason}"
            entries = self._pair(
                builder, transaction_id, TransactionType.JOURNAL,
                self._entry_date(inventory.id, context.ledger),
                inventory, capital, side, abs(worth_delta), narration,
            )

        plan.built = BuiltVoucher(transaction_id, TransactionType.JOURNAL, entries, [mutation])
        return plan

    # -------------------------------------------------------------------------
    # 원자재 버킷
    # -------------------------------------------------------------------------

    async def plan_bucket(
        self,
        key: BucketKey,
        target_weight: Decimal,
        target_worth: Decimal,
        reason: str = "Stock alignment",
    ) -> AlignmentPlan:
        """원자재 버킷 정렬

        목표 (0, 0)은 SET-TO-ZERO, 그 외는 목표 모드 기록.
        재구성기가 다시 읽을 수 있도록 narration과 구조화 기록을 함께 남김.
        """
        kind = TransactionType.ORIGINAL_STOCK_ADJUSTMENT
        builder, context = await self.posting.load_context()
        if context.stock is None or (position := context.stock.find(key)) is None:
            raise ValidationError(f"원자재 버킷이 없습니다: {key}", kind.value, "key")

        plan = AlignmentPlan(
            f"{position.type_name} / {position.supplier_name}",
            position.worth,
            target_worth,
        )
        weight_delta = target_weight - position.weight_in_hand
        if abs(plan.delta) < self.TOLERANCE and abs(weight_delta) < self.TOLERANCE:
            logger.info(f"버킷 정렬 불필요: {plan.target_label}")
            return plan

        transaction_id = self._next_id(kind, context)

        if abs(plan.delta) < self.TOLERANCE:
            # 중량만 다름: 가치 변화 0이라 분개 없이 기록만 남김
            record = AdjustmentRecord(
                transaction_id=transaction_id,
                direction=(
                    AdjustmentDirection.INCREASE if weight_delta > 0 else AdjustmentDirection.DECREASE
                ),
                type_name=position.type_name,
                supplier_name=position.supplier_name,
                worth=ZERO,
                reason=reason,
                weight=weight_delta,
                target_weight=target_weight,
                target_worth=target_worth,
                key=position.key,
            )
            last_seq = max((e.seq or 0 for e in context.ledger), default=0)
            plan.built = BuiltVoucher(
                transaction_id, kind, [],
                [StockAdjustmentMutation((record,), fallback_seq=last_seq + 1)],
            )
            return plan

        set_to_zero = target_weight == 0 and target_worth == 0
        line = StockAdjustmentLine(
            original_type_id=key.original_type_id,
            supplier_id=key.supplier_id,
            sub_supplier_id=key.sub_supplier_id,
            product_id=key.product_id,
            target_weight=None if set_to_zero else target_weight,
            target_worth=None if set_to_zero else target_worth,
            set_to_zero=set_to_zero,
        )
        record = builder.stock_adjustment_record(
            line, transaction_id, reason, context.stock, kind
        )

        inventory = builder.chart.require_role(AccountRole.RAW_MATERIALS)
        capital = builder.chart.require_role(AccountRole.OWNER_CAPITAL)
        side = (
            JournalSide.DEBIT if record.direction == AdjustmentDirection.INCREASE
            else JournalSide.CREDIT
        )
        entries = self._pair(
            builder, transaction_id, kind,
            self._entry_date(inventory.id, context.ledger),
            inventory, capital, side, record.worth, render_adjustment_narration(record),
        )
        plan.built = BuiltVoucher(
            transaction_id, kind, entries, [StockAdjustmentMutation((record,))]
        )
        return plan

    # -------------------------------------------------------------------------
    # 게시
    # -------------------------------------------------------------------------

    async def apply(self, plan: AlignmentPlan) -> PostedVoucher | None:
        """계획 게시 (no-op이면 None)"""
        if plan.built is None:
            return None
        posted = await self.posting.post_built(plan.built)
        logger.info(
            f"정렬 게시: {plan.target_label} {plan.current} → {plan.target} "
            f"({posted.transaction_id})"
        )
        return posted

    # -------------------------------------------------------------------------
    # 내부 헬퍼
    # -------------------------------------------------------------------------

    def _entry_date(self, account_id: str, ledger: Sequence[LedgerEntry]) -> date:
        """대상의 가장 이른 분개 전날 (없으면 기준일)"""
        earliest = earliest_entry_date(account_id, ledger)
        if earliest is None:
            return self.epoch
        return earliest - timedelta(days=1)

    @staticmethod
    def _next_id(kind: TransactionType, context: BuildContext) -> str:
        return next_voucher_no(kind.value, {e.transaction_id for e in context.ledger})

    @staticmethod
    def _pair(
        builder: VoucherBuilder,
        transaction_id: str,
        kind: TransactionType,
        entry_date: date,
        target: LedgerParty,
        capital: LedgerParty,
        target_side: JournalSide,
        amount: Decimal,
        narration: str,
    ) -> list[LedgerEntry]:
        """대상 vs 자본금 한 쌍 (is_adjustment)"""
        return [
            builder.make_entry(
                transaction_id, kind, entry_date, target, target_side,
                base_amount=amount, narration=narration, is_adjustment=True,
            ),
            builder.make_entry(
                transaction_id, kind, entry_date, capital, target_side.opposite,
                base_amount=amount, narration=narration, is_adjustment=True,
            ),
        ]
