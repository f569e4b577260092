"""
engine/bootstrap.py 테스트

LedgerEngine 조립과 감사 기능
"""

from datetime import date
from decimal import Decimal

import pytest

from adapters.mock.entry_store import InMemoryEntryStore
from adapters.slack.notifier import SlackNotifier
from core.config.loader import LedgerSettings
from core.inventory.models import BucketKey
from core.ledger.models import LedgerEntry
from engine.bootstrap import LedgerEngine, create_notifier


@pytest.fixture
def engine(store: InMemoryEntryStore, settings: LedgerSettings) -> LedgerEngine:
    return LedgerEngine(settings, store)


class TestCreateNotifier:
    def test_without_webhook(self) -> None:
        assert create_notifier(LedgerSettings()) is None

    def test_with_webhook(self) -> None:
        notifier = create_notifier(
            LedgerSettings(
                factory_id="FACTORY-02",
                slack_webhook_url="https://hooks.slack.com/services/TEST",
            )
        )
        assert isinstance(notifier, SlackNotifier)
        assert notifier.factory_id == "FACTORY-02"


class TestLedgerEngine:
    """서비스 조립"""

    def test_services_share_cache_and_guard(self, engine: LedgerEngine) -> None:
        assert engine.posting.reconciler is engine.reconciler
        assert engine.posting.guard is engine.guard
        assert engine.alignment.posting is engine.posting

        workflow = engine.edit_workflow()
        assert workflow.guard is engine.guard
        assert workflow.policy == engine.settings.sync

    @pytest.mark.asyncio
    async def test_post_dict_request(self, engine: LedgerEngine) -> None:
        posted = await engine.post({
            "kind": "EV",
            "source_id": "ACC-101",
            "dest_id": "ACC-601",
            "amount": "75.50",
            "entry_date": "2024-02-01",
        })

        assert posted.transaction_id == "EV-1001"
        assert posted.entries[0].entry_date == date(2024, 2, 1)
        assert posted.total == Decimal("75.50")

    @pytest.mark.asyncio
    async def test_trial_balance(self, engine: LedgerEngine) -> None:
        await engine.post({
            "kind": "RV", "source_id": "CUST-A", "dest_id": "ACC-102", "amount": "300",
        })

        balances = await engine.trial_balance()

        assert balances["ACC-102"] == Decimal("300")
        assert balances["CUST-A"] == Decimal("-300")

    @pytest.mark.asyncio
    async def test_stock_report_cached(self, engine: LedgerEngine) -> None:
        first = await engine.stock_report()
        second = await engine.stock_report()

        assert first is second
        position = first.find(BucketKey("OT-1", "SUP-A"))
        assert position.weight_in_hand == Decimal("1000")
        assert position.avg_cost_per_kg == Decimal("2")


class TestUnbalancedAudit:
    """원장 감사"""

    @pytest.mark.asyncio
    async def test_clean_ledger(self, engine: LedgerEngine) -> None:
        await engine.post({
            "kind": "RV", "source_id": "CUST-A", "dest_id": "ACC-102", "amount": "300",
        })
        assert await engine.unbalanced_transactions() == []

    @pytest.mark.asyncio
    async def test_detects_one_sided_transaction(
        self, engine: LedgerEngine, store: InMemoryEntryStore
    ) -> None:
        """외부에서 들어온 한쪽 분개"""
        await store.append([LedgerEntry(
            transaction_id="JV-2000",
            entry_date=date(2024, 1, 1),
            account_id="ACC-102",
            account_name="Bank Account",
            transaction_type="JV",
            debit=Decimal("40"),
            credit=Decimal("0"),
        )])

        discrepancies = await engine.unbalanced_transactions()

        assert len(discrepancies) == 1
        assert discrepancies[0].transaction_id == "JV-2000"
        assert discrepancies[0].missing_side
        assert discrepancies[0].difference == Decimal("40")
