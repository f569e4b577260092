"""
전표 생성기

전표 유형(12종)별 규칙으로 사용자 입력을 균형 잡힌 LedgerEntry 목록으로 변환.
재고에 영향을 주는 유형은 지연 변경(DeferredMutation)을 함께 반환하며,
호출자는 분개가 저장소에 확정된 뒤에만 이를 적용해야 함.

사용 예시:
```python
builder = VoucherBuilder(chart, CurrencyConverter(), factory_id="FACTORY-01")

built = builder.build(
    SimpleVoucherRequest(kind="RV", source_id="CUST-A", dest_id="ACC-102", amount="1000"),
    context=BuildContext(ledger=entries),
)
DoubleEntryValidator().validate(built.entries)
```
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol

from core.constants import Tolerances
from core.inventory.models import AdjustmentRecord, BucketKey, Item
from core.inventory.narration import render_adjustment_narration
from core.inventory.original_stock import StockReconciliation
from core.inventory.valuation import InventoryValuationEngine, ValuationResult
from core.ledger.accounts import ChartOfAccounts
from core.ledger.balances import compute_balance
from core.ledger.currency import CurrencyConverter
from core.ledger.errors import ValidationError
from core.ledger.models import LedgerEntry, LedgerParty, Partner
from core.ledger.requests import (
    BalancingDiscrepancyRequest,
    InventoryAdjustmentRequest,
    JournalVoucherRequest,
    OpeningBalanceRequest,
    OriginalStockAdjustmentRequest,
    PurchaseBillRequest,
    ReturnToSupplierRequest,
    SimpleVoucherRequest,
    StockAdjustmentLine,
    TransferRequest,
    VoucherRequestBase,
    WriteOffRequest,
)
from core.ledger.types import AccountRole, JournalSide, PaymentMode, TransactionType
from core.types import AdjustmentDirection, NormalSide
from core.utils.voucher_no import next_voucher_no

if TYPE_CHECKING:
    from adapters.interfaces import IEntryStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

SIMPLE_VOUCHER_LABELS: dict[str, str] = {
    TransactionType.RECEIPT.value: "Receipt",
    TransactionType.PAYMENT.value: "Payment",
    TransactionType.EXPENSE.value: "Expense",
}


# -----------------------------------------------------------------------------
# 지연 변경 (게시 확정 후 적용)
# -----------------------------------------------------------------------------


class DeferredMutation(Protocol):
    """게시 성공 후 적용되는 상태 변경"""

    async def apply(self, store: "IEntryStore", posted: Sequence[LedgerEntry]) -> None:
        ...


@dataclass(frozen=True)
class ItemMutation:
    """완제품 수량/평균원가 갱신"""

    item_id: str
    new_qty: Decimal
    new_avg_cost: Decimal

    async def apply(self, store: "IEntryStore", posted: Sequence[LedgerEntry]) -> None:
        await store.update_item(self.item_id, self.new_qty, self.new_avg_cost)


@dataclass(frozen=True)
class StockAdjustmentMutation:
    """원자재 조정 구조화 기록 저장

    seq는 게시된 분개의 seq(append 순서)로 채움.
    분개 없이 기록만 남는 경우(중량만 정렬) fallback_seq 사용.
    """

    records: tuple[AdjustmentRecord, ...]
    fallback_seq: int = 0

    async def apply(self, store: "IEntryStore", posted: Sequence[LedgerEntry]) -> None:
        seqs = [e.seq for e in posted if e.seq is not None]
        seq = min(seqs) if seqs else self.fallback_seq
        await store.save_adjustment_records(
            [replace(record, seq=seq) for record in self.records]
        )


@dataclass
class BuiltVoucher:
    """전표 생성 결과"""

    transaction_id: str
    kind: TransactionType
    entries: list[LedgerEntry]
    mutations: list[Any] = field(default_factory=list)

    @property
    def adjustment_records(self) -> list[AdjustmentRecord]:
        records: list[AdjustmentRecord] = []
        for mutation in self.mutations:
            if isinstance(mutation, StockAdjustmentMutation):
                records.extend(mutation.records)
        return records

    @property
    def total_debit(self) -> Decimal:
        return sum((e.debit for e in self.entries), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((e.credit for e in self.entries), ZERO)


@dataclass
class BuildContext:
    """전표 생성에 필요한 현재 상태 (저장소 스냅샷)

    Attributes:
        ledger: 원장 전체 (전표 번호 채번, BD 잔액 계산)
        items: 완제품 {item_id: Item} (IA, RTS)
        stock: 원자재 재구성 결과 (OSA)
        today: 기본 전표 일자 (None이면 date.today())
    """

    ledger: Sequence[LedgerEntry] = ()
    items: dict[str, Item] = field(default_factory=dict)
    stock: StockReconciliation | None = None
    today: date | None = None


class VoucherBuilder:
    """전표 유형별 분개 생성

    각 규칙은 분개를 만들기 전에 필수 입력을 검사하고
    누락 시 유형별 ValidationError를 던짐 (fail fast).
    필수 시스템 계정이 없으면 MissingAccountError.

    Args:
        chart: 계정과목/거래처 조회
        converter: 환율 변환기
        valuation: 완제품 평가 엔진
        factory_id: 분개에 기록할 공장 ID
    """

    TOLERANCE = Tolerances.BALANCE

    def __init__(
        self,
        chart: ChartOfAccounts,
        converter: CurrencyConverter,
        valuation: InventoryValuationEngine | None = None,
        factory_id: str = "",
    ):
        self.chart = chart
        self.converter = converter
        self.valuation = valuation or InventoryValuationEngine()
        self.factory_id = factory_id

    def build(
        self,
        request: VoucherRequestBase,
        transaction_id: str | None = None,
        context: BuildContext | None = None,
    ) -> BuiltVoucher:
        """요청 → 전표

        Args:
            request: 유형별 요청 모델
            transaction_id: 기존 전표 번호 (편집 재게시 시). None이면 채번
            context: 현재 상태 스냅샷

        Raises:
            ValidationError: 유형별 필수 입력 누락
            MissingAccountError: 필수 계정 없음
        """
        context = context or BuildContext()
        kind = TransactionType(request.kind)  # type: ignore[attr-defined]

        handlers: dict[TransactionType, Callable[..., BuiltVoucher]] = {
            TransactionType.RECEIPT: self._build_simple,
            TransactionType.PAYMENT: self._build_payment,
            TransactionType.EXPENSE: self._build_simple,
            TransactionType.PURCHASE_BILL: self._build_purchase_bill,
            TransactionType.JOURNAL: self._build_journal,
            TransactionType.INTERNAL_TRANSFER: self._build_transfer,
            TransactionType.INVENTORY_ADJUSTMENT: self._build_inventory_adjustment,
            TransactionType.ORIGINAL_STOCK_ADJUSTMENT: self._build_original_stock_adjustment,
            TransactionType.RETURN_TO_SUPPLIER: self._build_return_to_supplier,
            TransactionType.WRITE_OFF: self._build_write_off,
            TransactionType.BALANCING_DISCREPANCY: self._build_balancing_discrepancy,
            TransactionType.OPENING_BALANCE: self._build_opening_balance,
        }

        if transaction_id is None:
            transaction_id = next_voucher_no(
                kind.value, {e.transaction_id for e in context.ledger}
            )

        built = handlers[kind](request, transaction_id, kind, context)
        logger.debug(
            f"전표 생성: {transaction_id} ({kind.value}), {len(built.entries)}행, "
            f"debit={built.total_debit}, credit={built.total_credit}"
        )
        return built

    # -------------------------------------------------------------------------
    # 분개 생성 기본 단위 (AlignmentPlanner도 사용)
    # -------------------------------------------------------------------------

    def make_entry(
        self,
        transaction_id: str,
        kind: TransactionType,
        entry_date: date,
        party: LedgerParty,
        side: JournalSide,
        base_amount: Decimal,
        narration: str,
        currency: str | None = None,
        rate: Decimal | None = None,
        fcy_amount: Decimal | None = None,
        is_reporting_only: bool = False,
        is_adjustment: bool = False,
    ) -> LedgerEntry:
        """분개 행 1개 (금액은 기준통화)"""
        rate = Decimal("1") if rate is None else rate
        if fcy_amount is None:
            fcy_amount = base_amount * rate
        return LedgerEntry(
            transaction_id=transaction_id,
            entry_date=entry_date,
            account_id=party.id,
            account_name=party.name,
            transaction_type=kind.value,
            debit=base_amount if side == JournalSide.DEBIT else ZERO,
            credit=base_amount if side == JournalSide.CREDIT else ZERO,
            currency=currency or self.converter.base_currency,
            exchange_rate=rate,
            fcy_amount=fcy_amount,
            narration=narration,
            factory_id=self.factory_id,
            is_reporting_only=is_reporting_only,
            is_adjustment=is_adjustment,
        )

    def paired_lines(
        self,
        transaction_id: str,
        kind: TransactionType,
        entry_date: date,
        debit_party: LedgerParty,
        credit_party: LedgerParty,
        base_amount: Decimal,
        narration: str,
        currency: str | None = None,
        rate: Decimal | None = None,
        fcy_amount: Decimal | None = None,
        is_adjustment: bool = False,
    ) -> list[LedgerEntry]:
        """차변/대변 한 쌍"""
        common: dict[str, Any] = {
            "transaction_id": transaction_id,
            "kind": kind,
            "entry_date": entry_date,
            "base_amount": base_amount,
            "narration": narration,
            "currency": currency,
            "rate": rate,
            "fcy_amount": fcy_amount,
            "is_adjustment": is_adjustment,
        }
        return [
            self.make_entry(party=debit_party, side=JournalSide.DEBIT, **common),
            self.make_entry(party=credit_party, side=JournalSide.CREDIT, **common),
        ]

    # -------------------------------------------------------------------------
    # 단순 2행: RV / PV / EV / PB
    # -------------------------------------------------------------------------

    def _build_simple(
        self,
        request: SimpleVoucherRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """입금/경비: destination 차변, source 대변"""
        source, dest = self._require_source_dest(request, kind)
        amount = self._require_positive(request.amount, kind, "amount")
        rate = self._rate(request.currency, request.exchange_rate)
        base = self.converter.to_base(amount, rate)
        narration = request.description or f"{SIMPLE_VOUCHER_LABELS[kind.value]}: {dest.name}"

        entries = self.paired_lines(
            transaction_id, kind, self._entry_date(request, context),
            debit_party=dest,
            credit_party=source,
            base_amount=base,
            narration=narration,
            currency=request.currency,
            rate=rate,
            fcy_amount=amount,
        )
        return BuiltVoucher(transaction_id, kind, entries)

    def _build_payment(
        self,
        request: SimpleVoucherRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """출금: 하위공급처 지급은 상위 공급처에 실제 반영 + reporting-only 경유 분개"""
        built = self._build_simple(request, transaction_id, kind, context)
        payee = self.chart.require(request.dest_id, "destination")
        parent = self.chart.parent_supplier_of(payee) if isinstance(payee, Partner) else None
        if parent is None:
            return built

        debit_line, credit_line = built.entries
        real_debit = replace(debit_line, account_id=parent.id, account_name=parent.name)
        pass_through = f"Pass-through: {payee.name} via {parent.name}"
        reporting = [
            replace(debit_line, narration=pass_through, is_reporting_only=True),
            replace(
                credit_line,
                account_id=parent.id,
                account_name=parent.name,
                narration=pass_through,
                is_reporting_only=True,
            ),
        ]
        built.entries = [real_debit, credit_line, *reporting]
        return built

    def _build_purchase_bill(
        self,
        request: PurchaseBillRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """매입 청구서: 비용 차변 / (외상) 거래처 또는 (현금) 현금 계정 대변"""
        expense = self._require_party(request.expense_id, kind, "expense_id", "비용 계정을 선택하세요")
        vendor = self._require_party(request.vendor_id, kind, "vendor_id", "거래처를 선택하세요")

        if request.payment_mode == PaymentMode.CASH:
            credit_party = self._require_party(
                request.cash_account_id, kind, "cash_account_id", "지급 계정을 선택하세요"
            )
            label = "Cash Bill"
        else:
            credit_party = vendor
            label = "Credit Bill"

        amount = self._require_positive(request.amount, kind, "amount")
        rate = self._rate(request.currency, request.exchange_rate)
        base = self.converter.to_base(amount, rate)

        entries = self.paired_lines(
            transaction_id, kind, self._entry_date(request, context),
            debit_party=expense,
            credit_party=credit_party,
            base_amount=base,
            narration=f"{label}: {vendor.name} - {request.description}",
            currency=request.currency,
            rate=rate,
            fcy_amount=amount,
        )
        return BuiltVoucher(transaction_id, kind, entries)

    # -------------------------------------------------------------------------
    # JV / TR
    # -------------------------------------------------------------------------

    def _build_journal(
        self,
        request: JournalVoucherRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """일반 분개: 행마다 차변 또는 대변 하나, 기준금액 직접 입력 우선"""
        if len(request.lines) < 2:
            raise ValidationError("분개 행은 2개 이상이어야 합니다", kind.value, "lines")

        entry_date = self._entry_date(request, context)
        entries: list[LedgerEntry] = []

        for index, line in enumerate(request.lines, start=1):
            party = self._require_party(
                line.account_id, kind, "account_id", f"{index}행 계정을 선택하세요"
            )
            if line.debit < 0 or line.credit < 0:
                raise ValidationError(f"{index}행 금액은 음수일 수 없습니다", kind.value, "amount")
            if (line.debit > 0) == (line.credit > 0):
                raise ValidationError(
                    f"{index}행은 차변 또는 대변 중 하나만 입력해야 합니다", kind.value, "amount"
                )

            side = JournalSide.DEBIT if line.debit > 0 else JournalSide.CREDIT
            fcy = line.debit if side == JournalSide.DEBIT else line.credit
            conversion = self.converter.resolve(
                fcy, self._rate(line.currency, line.exchange_rate), line.base_amount
            )
            entries.append(self.make_entry(
                transaction_id, kind, entry_date, party, side,
                base_amount=conversion.base_amount,
                narration=line.narration or request.description or "Journal Voucher",
                currency=line.currency,
                rate=conversion.rate,
                fcy_amount=fcy,
            ))

        return BuiltVoucher(transaction_id, kind, entries)

    def _build_transfer(
        self,
        request: TransferRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """이체: 출금 계정 대변, 입금 계정 차변, 환차는 Exchange Variance

        환차 계정이 없으면 환차 행만 생략 (이체 자체는 실패시키지 않음).
        """
        source = self._require_party(request.from_account_id, kind, "from_account_id", "출금 계정을 선택하세요")
        dest = self._require_party(request.to_account_id, kind, "to_account_id", "입금 계정을 선택하세요")
        if source.id == dest.id:
            raise ValidationError("출금/입금 계정이 같습니다", kind.value, "to_account_id")

        from_amount = self._require_positive(request.from_amount, kind, "from_amount")
        to_amount = self._require_positive(request.to_amount, kind, "to_amount")
        from_rate = self._rate(request.from_currency, request.from_rate)
        to_rate = self._rate(request.to_currency, request.to_rate)
        from_base = self.converter.to_base(from_amount, from_rate)
        to_base = self.converter.to_base(to_amount, to_rate)

        entry_date = self._entry_date(request, context)
        narration = request.description or f"Transfer: {source.name} to {dest.name}"

        entries = [
            self.make_entry(
                transaction_id, kind, entry_date, source, JournalSide.CREDIT,
                base_amount=from_base, narration=narration,
                currency=request.from_currency, rate=from_rate, fcy_amount=from_amount,
            ),
            self.make_entry(
                transaction_id, kind, entry_date, dest, JournalSide.DEBIT,
                base_amount=to_base, narration=narration,
                currency=request.to_currency, rate=to_rate, fcy_amount=to_amount,
            ),
        ]

        variance = to_base - from_base
        if abs(variance) > self.TOLERANCE:
            variance_account = self.chart.find_role(AccountRole.EXCHANGE_VARIANCE)
            if variance_account is None:
                logger.warning(
                    f"환차 계정 없음, 환차 행 생략: {transaction_id} (variance={variance})"
                )
            else:
                loss = variance < 0
                entries.append(self.make_entry(
                    transaction_id, kind, entry_date, variance_account,
                    JournalSide.DEBIT if loss else JournalSide.CREDIT,
                    base_amount=abs(variance),
                    narration="Exchange Loss" if loss else "Exchange Gain",
                ))

        return BuiltVoucher(transaction_id, kind, entries)

    # -------------------------------------------------------------------------
    # 재고: IA / OSA / RTS
    # -------------------------------------------------------------------------

    def _build_inventory_adjustment(
        self,
        request: InventoryAdjustmentRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """완제품 조정: 품목마다 완제품 재고 vs 재고조정 계정 한 쌍"""
        reason = self._require_reason(request.description, kind)
        if not request.lines:
            raise ValidationError("조정할 품목을 선택하세요", kind.value, "lines")

        inventory = self.chart.require_role(AccountRole.FINISHED_GOODS)
        offset = self.chart.require_role(AccountRole.INVENTORY_ADJUSTMENT)
        entry_date = self._entry_date(request, context)

        working: dict[str, Item] = {}
        final: dict[str, ValuationResult] = {}
        entries: list[LedgerEntry] = []

        for index, line in enumerate(request.lines, start=1):
            item = working.get(line.item_id) or self._require_item(line.item_id, kind, context)
            quantity = self._non_negative(line.quantity, kind, "quantity", index)
            worth = self._non_negative(line.worth, kind, "worth", index)
            sign = line.direction.sign

            result = self.valuation.apply(
                item,
                qty_delta=quantity * sign if quantity else None,
                worth_delta=worth * sign if worth else None,
            )
            if result.amount <= 0:
                raise ValidationError(
                    f"'{item.name}' 조정 가치가 0입니다 (평균원가 {item.avg_cost})",
                    kind.value, "worth",
                )

            narration = (
                f"Inventory {result.direction.value}: {item.name} "
                f"({_format_quantity(quantity)} units) - {reason}"
            )
            entries.extend(self._inventory_pair(
                transaction_id, kind, entry_date, inventory, offset,
                result.amount, result.direction, narration,
            ))

            working[item.id] = replace(item, stock_qty=result.new_qty, avg_cost=result.new_avg_cost)
            final[item.id] = result

        mutations = [
            ItemMutation(item_id, result.new_qty, result.new_avg_cost)
            for item_id, result in final.items()
        ]
        return BuiltVoucher(transaction_id, kind, entries, mutations)

    def _build_original_stock_adjustment(
        self,
        request: OriginalStockAdjustmentRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """원자재 조정: 버킷마다 원자재 재고 vs 재고조정 계정 한 쌍

        narration은 조정 문법으로 렌더링하고 구조화 기록을 함께 남김.
        """
        reason = self._require_reason(request.description, kind)
        if not request.lines:
            raise ValidationError("조정할 원자재 버킷을 선택하세요", kind.value, "lines")
        if context.stock is None:
            raise ValidationError("원자재 재구성 결과가 필요합니다", kind.value, "stock")

        inventory = self.chart.require_role(AccountRole.RAW_MATERIALS)
        offset = self.chart.require_role(AccountRole.INVENTORY_ADJUSTMENT)
        entry_date = self._entry_date(request, context)

        entries: list[LedgerEntry] = []
        records: list[AdjustmentRecord] = []

        for index, line in enumerate(request.lines, start=1):
            record = self.stock_adjustment_record(
                line, transaction_id, reason, context.stock, kind, index
            )
            entries.extend(self._inventory_pair(
                transaction_id, kind, entry_date, inventory, offset,
                record.worth, record.direction, render_adjustment_narration(record),
            ))
            records.append(record)

        return BuiltVoucher(
            transaction_id, kind, entries, [StockAdjustmentMutation(tuple(records))]
        )

    def stock_adjustment_record(
        self,
        line: StockAdjustmentLine,
        transaction_id: str,
        reason: str,
        stock: StockReconciliation,
        kind: TransactionType = TransactionType.ORIGINAL_STOCK_ADJUSTMENT,
        index: int = 1,
    ) -> AdjustmentRecord:
        """버킷 조정 1행 → 조정 기록

        - SET-TO-ZERO: 목표 (0, 0)
        - 목표 모드: 목표 중량만 있으면 목표 가치 = 목표 중량 × kg당 원가
        - 가산: 가치가 없으면 중량 × kg당 원가
        게시 금액은 가치 변화의 크기.
        """
        if not line.original_type_id:
            raise ValidationError(f"{index}행 원자재 유형을 선택하세요", kind.value, "original_type_id")
        if not line.supplier_id:
            raise ValidationError(f"{index}행 공급처를 선택하세요", kind.value, "supplier_id")

        key = BucketKey(line.original_type_id, line.supplier_id, line.sub_supplier_id, line.product_id)
        position = stock.find(key)
        if position is None:
            raise ValidationError(
                f"{index}행 원자재 버킷이 없습니다: {key}", kind.value, "original_type_id"
            )

        target_weight: Decimal | None = None
        target_worth: Decimal | None = None
        zero_worth = False

        if line.set_to_zero:
            target_weight, target_worth = ZERO, ZERO
            weight_delta: Decimal | None = -position.weight_in_hand
            worth_delta = -position.worth
        elif line.target_weight is not None or line.target_worth is not None:
            target_weight = line.target_weight
            target_worth = line.target_worth
            if target_weight is not None and target_weight < 0:
                raise ValidationError(f"{index}행 목표 중량은 음수일 수 없습니다", kind.value, "target_weight")
            if target_worth is not None and target_worth < 0:
                raise ValidationError(f"{index}행 목표 가치는 음수일 수 없습니다", kind.value, "target_worth")
            if target_worth is None:
                target_worth = target_weight * position.avg_cost_per_kg  # type: ignore[operator]
            weight_delta = (
                None if target_weight is None else target_weight - position.weight_in_hand
            )
            worth_delta = target_worth - position.worth
            zero_worth = target_worth == 0
        else:
            weight = self._non_negative(line.weight, kind, "weight", index)
            worth = self._non_negative(line.worth, kind, "worth", index)
            if not weight and not worth:
                raise ValidationError(
                    f"{index}행 중량 또는 가치를 입력하세요", kind.value, "weight"
                )
            if not worth:
                worth = weight * position.avg_cost_per_kg
            sign = line.direction.sign
            weight_delta = weight * sign if weight else None
            worth_delta = worth * sign

        if worth_delta > 0 or (worth_delta == 0 and (weight_delta or ZERO) > 0):
            direction = AdjustmentDirection.INCREASE
        else:
            direction = AdjustmentDirection.DECREASE

        amount = abs(worth_delta)
        if amount < self.TOLERANCE:
            raise ValidationError(
                f"{index}행 가치 변화가 0이라 게시할 수 없습니다 "
                f"({position.type_name} / {position.supplier_name})",
                kind.value, "worth",
            )

        return AdjustmentRecord(
            transaction_id=transaction_id,
            direction=direction,
            type_name=position.type_name,
            supplier_name=position.supplier_name,
            worth=amount,
            reason=reason,
            weight=weight_delta,
            target_weight=target_weight,
            target_worth=target_worth,
            set_to_zero=line.set_to_zero,
            zero_worth=zero_worth,
            key=position.key,
        )

    def _build_return_to_supplier(
        self,
        request: ReturnToSupplierRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """공급처 반품: 공급처 차변 / 완제품 재고 대변 (수량 × 평균원가)"""
        reason = self._require_reason(request.description, kind)
        supplier = self._require_party(request.supplier_id, kind, "supplier_id", "공급처를 선택하세요")
        item = self._require_item(request.item_id, kind, context)
        quantity = self._require_positive(request.quantity, kind, "quantity")

        result = self.valuation.apply(item, qty_delta=-quantity)
        if result.amount <= 0:
            raise ValidationError(
                f"'{item.name}' 반품 가치가 0입니다 (평균원가 {item.avg_cost})",
                kind.value, "quantity",
            )

        inventory = self.chart.require_role(AccountRole.FINISHED_GOODS)
        entries = self.paired_lines(
            transaction_id, kind, self._entry_date(request, context),
            debit_party=supplier,
            credit_party=inventory,
            base_amount=result.amount,
            narration=(
                f"Return to Supplier: {item.name} ({_format_quantity(quantity)} units) "
                f"to {supplier.name} - {reason}"
            ),
        )
        mutation = ItemMutation(item.id, result.new_qty, result.new_avg_cost)
        return BuiltVoucher(transaction_id, kind, entries, [mutation])

    # -------------------------------------------------------------------------
    # 정리: WO / BD / OB
    # -------------------------------------------------------------------------

    def _build_write_off(
        self,
        request: WriteOffRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """상각: 대상 잔액을 0 방향으로 (정상 방향의 반대쪽에 기록)"""
        reason = self._require_reason(request.description, kind)
        target = self._require_party(request.account_id, kind, "account_id", "상각할 계정을 선택하세요")
        amount = self._require_positive(request.amount, kind, "amount")
        offset = self.chart.require_role(AccountRole.WRITE_OFF)
        rate = self._rate(request.currency, request.exchange_rate)
        base = self.converter.to_base(amount, rate)

        target_side = (
            JournalSide.CREDIT if target.normal_side == NormalSide.DEBIT else JournalSide.DEBIT
        )
        entry_date = self._entry_date(request, context)
        narration = f"Write-off: {target.name} - {reason}"

        entries = [
            self.make_entry(
                transaction_id, kind, entry_date, target, target_side,
                base_amount=base, narration=narration,
                currency=request.currency, rate=rate, fcy_amount=amount,
            ),
            self.make_entry(
                transaction_id, kind, entry_date, offset, target_side.opposite,
                base_amount=base, narration=narration,
                currency=request.currency, rate=rate, fcy_amount=amount,
            ),
        ]
        return BuiltVoucher(transaction_id, kind, entries)

    def _build_balancing_discrepancy(
        self,
        request: BalancingDiscrepancyRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """잔액 차이 정리

        증가 = 0에서 멀어짐, 감소 = 0으로 다가감.
        대변 정상 대상은 현재 잔액 부호에 따라 차변/대변이 뒤집힘.
        """
        reason = self._require_reason(request.description, kind)
        target = self._require_party(request.account_id, kind, "account_id", "대상 계정을 선택하세요")
        amount = self._require_positive(request.amount, kind, "amount")
        offset = self.chart.require_role(AccountRole.DISCREPANCY)
        rate = self._rate(request.currency, request.exchange_rate)
        base = self.converter.to_base(amount, rate)

        increase = request.direction == AdjustmentDirection.INCREASE
        if target.normal_side == NormalSide.DEBIT:
            target_side = JournalSide.DEBIT if increase else JournalSide.CREDIT
        else:
            balance = compute_balance(target, context.ledger)
            away_side = JournalSide.CREDIT if balance >= 0 else JournalSide.DEBIT
            target_side = away_side if increase else away_side.opposite

        entry_date = request.entry_date or context.today or date.today()
        narration = f"Balance {request.direction.value}: {target.name} - {reason}"

        entries = [
            self.make_entry(
                transaction_id, kind, entry_date, target, target_side,
                base_amount=base, narration=narration,
                currency=request.currency, rate=rate, fcy_amount=amount,
            ),
            self.make_entry(
                transaction_id, kind, entry_date, offset, target_side.opposite,
                base_amount=base, narration=narration,
                currency=request.currency, rate=rate, fcy_amount=amount,
            ),
        ]
        return BuiltVoucher(transaction_id, kind, entries)

    def _build_opening_balance(
        self,
        request: OpeningBalanceRequest,
        transaction_id: str,
        kind: TransactionType,
        context: BuildContext,
    ) -> BuiltVoucher:
        """기초 잔액: 양수는 정상 방향, 음수는 반대 방향 / 자본금 상대"""
        target = self._require_party(request.account_id, kind, "account_id", "계정을 선택하세요")
        if request.amount is None or request.amount == 0:
            raise ValidationError("기초 잔액을 입력하세요", kind.value, "amount")
        capital = self.chart.require_role(AccountRole.OWNER_CAPITAL)

        amount = abs(request.amount)
        rate = self._rate(request.currency, request.exchange_rate)
        base = self.converter.to_base(amount, rate)

        normal = JournalSide.DEBIT if target.normal_side == NormalSide.DEBIT else JournalSide.CREDIT
        target_side = normal if request.amount > 0 else normal.opposite

        entry_date = self._entry_date(request, context)
        narration = f"Opening Balance: {target.name}"
        if request.description:
            narration = f"{narration} - {request.description}"

        entries = [
            self.make_entry(
                transaction_id, kind, entry_date, target, target_side,
                base_amount=base, narration=narration,
                currency=request.currency, rate=rate, fcy_amount=amount,
            ),
            self.make_entry(
                transaction_id, kind, entry_date, capital, target_side.opposite,
                base_amount=base, narration=narration,
                currency=request.currency, rate=rate, fcy_amount=amount,
            ),
        ]
        return BuiltVoucher(transaction_id, kind, entries)

    # -------------------------------------------------------------------------
    # 내부 헬퍼
    # -------------------------------------------------------------------------

    def _inventory_pair(
        self,
        transaction_id: str,
        kind: TransactionType,
        entry_date: date,
        inventory: LedgerParty,
        offset: LedgerParty,
        amount: Decimal,
        direction: AdjustmentDirection,
        narration: str,
    ) -> list[LedgerEntry]:
        """증가: 재고 차변 / 상대 대변, 감소: 반대"""
        if direction == AdjustmentDirection.INCREASE:
            debit_party, credit_party = inventory, offset
        else:
            debit_party, credit_party = offset, inventory
        return self.paired_lines(
            transaction_id, kind, entry_date,
            debit_party=debit_party,
            credit_party=credit_party,
            base_amount=amount,
            narration=narration,
        )

    def _entry_date(self, request: VoucherRequestBase, context: BuildContext) -> date:
        return request.entry_date or context.today or date.today()

    def _rate(self, currency: str, explicit: Decimal | None) -> Decimal:
        """명시 환율 우선, 없으면 설정 환율"""
        return explicit if explicit is not None else self.converter.rate_for(currency)

    def _require_source_dest(
        self,
        request: SimpleVoucherRequest,
        kind: TransactionType,
    ) -> tuple[LedgerParty, LedgerParty]:
        source = self._require_party(request.source_id, kind, "source_id", "출처 계정을 선택하세요")
        dest = self._require_party(request.dest_id, kind, "dest_id", "대상 계정을 선택하세요")
        if source.id == dest.id:
            raise ValidationError("출처와 대상 계정이 같습니다", kind.value, "dest_id")
        return source, dest

    def _require_party(
        self,
        entity_id: str,
        kind: TransactionType,
        field_name: str,
        message: str,
    ) -> LedgerParty:
        """선택 누락은 ValidationError, 없는 ID는 MissingAccountError"""
        if not entity_id:
            raise ValidationError(message, kind.value, field_name)
        return self.chart.require(entity_id, field_name)

    def _require_item(self, item_id: str, kind: TransactionType, context: BuildContext) -> Item:
        if not item_id:
            raise ValidationError("품목을 선택하세요", kind.value, "item_id")
        item = context.items.get(item_id)
        if item is None:
            raise ValidationError(f"품목을 찾을 수 없습니다: {item_id}", kind.value, "item_id")
        return item

    @staticmethod
    def _require_positive(
        value: Decimal | None,
        kind: TransactionType,
        field_name: str,
    ) -> Decimal:
        if value is None or not value.is_finite() or value <= 0:
            raise ValidationError(f"{field_name}은(는) 0보다 커야 합니다", kind.value, field_name)
        return value

    @staticmethod
    def _non_negative(
        value: Decimal | None,
        kind: TransactionType,
        field_name: str,
        index: int,
    ) -> Decimal:
        """선택 입력 수치 (없으면 0, 음수 금지 - 방향은 direction으로)"""
        if value is None:
            return ZERO
        if value < 0:
            raise ValidationError(
                f"{index}행 {field_name}은(는) 음수일 수 없습니다", kind.value, field_name
            )
        return value

    @staticmethod
    def _require_reason(text: str, kind: TransactionType) -> str:
        reason = (text or "").strip()
        if not reason:
            raise ValidationError("사유를 입력하세요", kind.value, "description")
        return reason


def _format_quantity(quantity: Decimal) -> str:
    """수량 표시 (불필요한 소수점 제거)"""
    if quantity == quantity.to_integral_value():
        return str(quantity.quantize(Decimal("1")))
    return format(quantity.normalize(), "f")
