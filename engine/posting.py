"""
전표 게시 서비스

입력 → VoucherBuilder → DoubleEntryValidator → store.append → 지연 변경 적용.
검증을 통과하지 못한 전표는 어떤 행도 저장되지 않음.

사용 예시:
```python
service = PostingService(store, settings)

posted = await service.post(
    SimpleVoucherRequest(kind="RV", source_id="CUST-A", dest_id="ACC-102", amount="1000")
)
print(posted.transaction_id)  # RV-1001
```
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from adapters.interfaces import IEntryStore
from core.config.loader import LedgerSettings
from core.inventory.models import AdjustmentRecord
from core.inventory.original_stock import OriginalStockReconciler
from core.inventory.valuation import InventoryValuationEngine
from core.ledger.currency import CurrencyConverter
from core.ledger.models import LedgerEntry
from core.ledger.requests import VoucherRequestBase
from core.ledger.types import TransactionType
from core.ledger.validator import DoubleEntryValidator
from core.ledger.voucher_builder import BuildContext, BuiltVoucher, VoucherBuilder
from core.utils.submission_guard import SubmissionGuard

logger = logging.getLogger(__name__)


@dataclass
class PostedVoucher:
    """게시 결과 (저장소가 부여한 entry_id/seq 포함)"""

    transaction_id: str
    kind: TransactionType
    entries: list[LedgerEntry]
    adjustment_records: list[AdjustmentRecord] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((e.debit for e in self.entries), Decimal("0"))


class PostingService:
    """전표 게시

    Args:
        store: 원장 저장소
        settings: 원장 설정 (None이면 기본값)
        reconciler: 원자재 재구성기 (엔진 전체에서 공유, 캐시 보유)
        guard: 처리 중 플래그 (편집 워크플로와 공유)
    """

    def __init__(
        self,
        store: IEntryStore,
        settings: LedgerSettings | None = None,
        reconciler: OriginalStockReconciler | None = None,
        guard: SubmissionGuard | None = None,
    ):
        self.store = store
        self.settings = settings or LedgerSettings()
        self.converter = CurrencyConverter(
            self.settings.exchange_rates, self.settings.base_currency
        )
        self.valuation = InventoryValuationEngine()
        self.validator = DoubleEntryValidator()
        self.reconciler = reconciler or OriginalStockReconciler()
        self.guard = guard or SubmissionGuard()

    async def load_context(self) -> tuple[VoucherBuilder, BuildContext]:
        """현재 저장소 상태로 생성기 + 컨텍스트 준비"""
        chart = await self.store.get_chart(
            self.settings.factory_id, self.settings.account_overrides
        )
        ledger = await self.store.list_entries()
        items = await self.store.get_items()
        snapshot = await self.store.load_stock_snapshot()

        builder = VoucherBuilder(
            chart, self.converter, self.valuation, factory_id=self.settings.factory_id
        )
        context = BuildContext(
            ledger=ledger,
            items=items,
            stock=self.reconciler.reconcile(snapshot),
        )
        return builder, context

    async def prepare(
        self,
        request: VoucherRequestBase,
        transaction_id: str | None = None,
    ) -> BuiltVoucher:
        """전표 생성 + 검증 (저장하지 않음)

        Raises:
            ValidationError / MissingAccountError / UnbalancedTransactionError
        """
        builder, context = await self.load_context()
        built = builder.build(request, transaction_id, context)
        self.validator.validate(built.entries)
        return built

    async def post(
        self,
        request: VoucherRequestBase,
        transaction_id: str | None = None,
    ) -> PostedVoucher:
        """전표 생성 → 검증 → 게시"""
        built = await self.prepare(request, transaction_id)
        return await self.post_built(built)

    async def post_built(self, built: BuiltVoucher) -> PostedVoucher:
        """생성된 전표 게시 (처리 중 플래그 보유)

        Raises:
            DuplicateSubmissionError: 같은 전표가 이미 처리 중
        """
        async with self.guard.hold(built.transaction_id):
            return await self.commit(built)

    async def commit(self, built: BuiltVoucher) -> PostedVoucher:
        """검증 → append → 지연 변경 적용 (플래그는 호출자가 보유)

        분개 없이 지연 변경만 있는 전표(수량만 정렬 등)는 검증 없이 변경만 적용.
        """
        posted: list[LedgerEntry] = []
        if built.entries:
            self.validator.validate(built.entries)
            posted = await self.store.append(built.entries)

        await self.apply_mutations(built, posted)
        self.reconciler.invalidate()

        logger.info(
            f"전표 게시: {built.transaction_id} ({built.kind.value}), "
            f"{len(posted)}행, 금액={sum((e.debit for e in posted), Decimal('0'))}"
        )
        return PostedVoucher(
            transaction_id=built.transaction_id,
            kind=built.kind,
            entries=posted,
            adjustment_records=built.adjustment_records,
        )

    async def apply_mutations(
        self,
        built: BuiltVoucher,
        posted: Sequence[LedgerEntry],
    ) -> None:
        """게시 확정 후 재고 변경 적용

        분개는 이미 저장된 상태이므로 실패 시 원장과 재고가 어긋남을 기록하고 전파.
        """
        for mutation in built.mutations:
            try:
                await mutation.apply(self.store, posted)
            except Exception:
                logger.error(
                    f"재고 변경 적용 실패 (분개는 게시됨): {built.transaction_id} - {mutation}"
                )
                raise
