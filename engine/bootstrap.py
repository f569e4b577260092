"""
Ledger Engine Bootstrap

설정 로드, 의존성 주입(저장소, 알림, 서비스) 관리.
운영 스크립트는 open_engine()으로 엔진을 열고 닫음.

사용 예시:
```python
async with open_engine() as engine:
    posted = await engine.post({"kind": "RV", "source_id": "CUST-A", ...})
    report = await engine.stock_report()
```
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import IEntryStore, INotifier
from adapters.slack.notifier import SlackNotifier
from core.config.loader import LedgerSettings, get_settings
from core.inventory.original_stock import OriginalStockReconciler, StockReconciliation
from core.ledger.balances import (
    TransactionDiscrepancy,
    find_unbalanced_transactions,
    trial_balance,
)
from core.ledger.requests import VoucherRequestBase, parse_voucher_request
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.utils.submission_guard import SubmissionGuard
from engine.alignment import AlignmentPlanner
from engine.edit_workflow import EditWorkflow
from engine.posting import PostedVoucher, PostingService

logger = logging.getLogger(__name__)


def create_notifier(settings: LedgerSettings) -> INotifier | None:
    """설정에 Slack webhook이 있으면 SlackNotifier"""
    if not settings.slack_webhook_url:
        return None
    return SlackNotifier(webhook_url=settings.slack_webhook_url, factory_id=settings.factory_id)


class LedgerEngine:
    """원장 엔진

    게시/정렬/편집 서비스가 같은 재구성 캐시와 처리 중 플래그를 공유.

    Args:
        settings: 원장 설정
        store: 원장 저장소
        notifier: 알림 (선택)
    """

    def __init__(
        self,
        settings: LedgerSettings,
        store: IEntryStore,
        notifier: INotifier | None = None,
    ):
        self.settings = settings
        self.store = store
        self.notifier = notifier

        self.reconciler = OriginalStockReconciler()
        self.guard = SubmissionGuard()
        self.posting = PostingService(store, settings, self.reconciler, self.guard)
        self.alignment = AlignmentPlanner(self.posting)

    def edit_workflow(self) -> EditWorkflow:
        """편집 1건용 워크플로 (다른 전표 편집과는 독립)"""
        return EditWorkflow(self.posting, self.notifier, self.settings.sync)

    async def post(self, request: VoucherRequestBase | dict[str, Any]) -> PostedVoucher:
        """전표 게시 (dict 입력은 kind로 요청 모델 판별)"""
        if isinstance(request, dict):
            request = parse_voucher_request(request)
        return await self.posting.post(request)

    async def stock_report(self) -> StockReconciliation:
        """원자재 버킷 현황 (version 캐시)"""
        snapshot = await self.store.load_stock_snapshot()
        return self.reconciler.reconcile(snapshot)

    async def trial_balance(self) -> dict[str, Decimal]:
        chart = await self.store.get_chart(self.settings.factory_id, self.settings.account_overrides)
        entries = await self.store.list_entries()
        return trial_balance([*chart.accounts, *chart.partners], entries)

    async def unbalanced_transactions(self) -> list[TransactionDiscrepancy]:
        """원장 감사: 불균형 전표 목록"""
        entries = await self.store.list_entries()
        discrepancies = find_unbalanced_transactions(entries)
        if discrepancies:
            logger.warning(f"불균형 전표 {len(discrepancies)}건 발견")
        return discrepancies


@asynccontextmanager
async def open_engine(settings: LedgerSettings | None = None) -> AsyncIterator[LedgerEngine]:
    """SQLite 연결 + 스키마 초기화 + 엔진 생성

    Args:
        settings: 원장 설정 (None이면 settings.yaml)
    """
    settings = settings or get_settings().ledger
    logger.info(f"원장 엔진 시작: factory={settings.factory_id}, db={settings.db_path}")

    async with SQLiteAdapter(settings.db_path) as db:
        await init_ledger_schema(db)
        notifier = create_notifier(settings)
        try:
            yield LedgerEngine(settings, LedgerStore(db), notifier)
        finally:
            if isinstance(notifier, SlackNotifier):
                await notifier.close()

    logger.info("원장 엔진 종료")
