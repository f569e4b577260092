"""LedgerStore 통합 테스트 (SQLite)"""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import AccountLookupRule, LedgerSettings
from core.inventory.models import (
    AdjustmentRecord,
    BucketKey,
    DirectSaleLine,
    Item,
    OriginalOpening,
    OriginalType,
    Purchase,
)
from core.inventory.original_stock import OriginalStockReconciler
from core.ledger.errors import StoreIOError
from core.ledger.models import Account, LedgerEntry, Partner
from core.ledger.requests import SimpleVoucherRequest
from core.ledger.schema import init_ledger_schema
from core.ledger.store import LedgerStore
from core.ledger.types import AccountRole
from core.types import AccountType, AdjustmentDirection, PartnerType
from engine.bootstrap import open_engine


def journal(transaction_id: str = "JV-1001", amount: str = "10.10") -> list[LedgerEntry]:
    common = {
        "transaction_id": transaction_id,
        "entry_date": date(2024, 2, 1),
        "transaction_type": "JV",
        "currency": "AED",
        "exchange_rate": Decimal("3.67"),
        "fcy_amount": Decimal("37.067"),
        "factory_id": "FACTORY-01",
    }
    return [
        LedgerEntry(account_id="ACC-101", account_name="Cash in Hand",
                    debit=Decimal(amount), narration="Float top-up", **common),
        LedgerEntry(account_id="ACC-301", account_name="Owner's Capital",
                    credit=Decimal(amount), is_adjustment=True, **common),
    ]


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> SQLiteAdapter:
    """스키마가 초기화된 임시 DB"""
    adapter = SQLiteAdapter(tmp_path / "ledger_test.db")
    await adapter.connect()
    await init_ledger_schema(adapter)
    yield adapter
    await adapter.close()


@pytest.fixture
def ledger_store(db: SQLiteAdapter) -> LedgerStore:
    return LedgerStore(db)


class TestEntries:
    """분개 append / query"""

    @pytest.mark.asyncio
    async def test_append_assigns_seq(self, ledger_store: LedgerStore) -> None:
        first = await ledger_store.append(journal("JV-1001"))
        second = await ledger_store.append(journal("JV-1002"))

        seqs = [e.seq for e in first + second]
        assert seqs == sorted(seqs)
        assert len(set(seqs)) == 4
        assert all(e.entry_id for e in first + second)

    @pytest.mark.asyncio
    async def test_round_trip_preserves_values(self, ledger_store: LedgerStore) -> None:
        """Decimal 문자열, 플래그, 외화 정보 보존"""
        stored = await ledger_store.append(journal())

        loaded = await ledger_store.query("JV-1001")

        assert loaded == stored
        assert loaded[0].debit == Decimal("10.10")
        assert loaded[0].fcy_amount == Decimal("37.067")
        assert loaded[1].is_adjustment
        assert [e.seq for e in loaded] == [e.seq for e in stored]

    @pytest.mark.asyncio
    async def test_list_entries_by_factory(self, ledger_store: LedgerStore) -> None:
        await ledger_store.append(journal())

        assert len(await ledger_store.list_entries()) == 2
        assert len(await ledger_store.list_entries("FACTORY-01")) == 2
        assert await ledger_store.list_entries("FACTORY-02") == []

    @pytest.mark.asyncio
    async def test_version_counter(self, ledger_store: LedgerStore) -> None:
        assert await ledger_store.version() == 0

        await ledger_store.append(journal())
        await ledger_store.delete("JV-1001")

        assert await ledger_store.version() == 2

    @pytest.mark.asyncio
    async def test_sqlite_error_becomes_store_error(
        self, ledger_store: LedgerStore, db: SQLiteAdapter
    ) -> None:
        await db.execute("DROP TABLE ledger_entry")
        await db.commit()

        with pytest.raises(StoreIOError) as exc_info:
            await ledger_store.append(journal())

        assert exc_info.value.operation == "append"
        assert exc_info.value.transaction_id == "JV-1001"
        assert await ledger_store.version() == 0


class TestDelete:
    """삭제 + 보관"""

    @pytest.mark.asyncio
    async def test_delete_archives_rows(self, ledger_store: LedgerStore) -> None:
        stored = await ledger_store.append(journal())

        deleted = await ledger_store.delete("JV-1001", reason="Duplicate", deleted_by="auditor")

        assert deleted == 2
        assert await ledger_store.query("JV-1001") == []
        archived = await ledger_store.list_archived()
        assert archived[0].original_transaction_id == "JV-1001"
        assert archived[0].deleted_by == "auditor"
        assert list(archived[0].entries) == stored
        assert archived[0].total_value == Decimal("10.10")

    @pytest.mark.asyncio
    async def test_delete_missing(self, ledger_store: LedgerStore) -> None:
        assert await ledger_store.delete("JV-9999") == 0
        assert await ledger_store.list_archived() == []

    @pytest.mark.asyncio
    async def test_delete_removes_adjustment_records(self, ledger_store: LedgerStore) -> None:
        await ledger_store.append(journal("OSA-1001"))
        await ledger_store.save_adjustment_records([AdjustmentRecord(
            transaction_id="OSA-1001",
            direction=AdjustmentDirection.DECREASE,
            type_name="Cotton Waste",
            supplier_name="Gulf Textiles",
            worth=Decimal("10.10"),
            reason="Recount",
            seq=1,
        )])

        await ledger_store.delete("OSA-1001")

        assert await ledger_store.list_adjustment_records() == []


class TestAdjustmentRecords:
    @pytest.mark.asyncio
    async def test_round_trip_sorted_by_seq(self, ledger_store: LedgerStore) -> None:
        later = AdjustmentRecord(
            transaction_id="OSA-1002",
            direction=AdjustmentDirection.INCREASE,
            type_name="Cotton Waste",
            supplier_name="Gulf Textiles",
            worth=Decimal("5"),
            target_weight=Decimal("800"),
            seq=9,
            key=BucketKey("OT-1", "SUP-A", None, "P-1"),
        )
        earlier = AdjustmentRecord(
            transaction_id="OSA-1001",
            direction=AdjustmentDirection.DECREASE,
            type_name="Cotton Waste",
            supplier_name="Gulf Textiles",
            worth=Decimal("2.50"),
            weight=Decimal("-1.25"),
            seq=3,
        )
        await ledger_store.save_adjustment_records([later])
        await ledger_store.save_adjustment_records([earlier])

        records = await ledger_store.list_adjustment_records()

        assert records == [earlier, later]
        assert await ledger_store.list_adjustment_records("OSA-1002") == [later]


class TestReferenceData:
    """계정과목 / 거래처 / 품목"""

    @pytest.mark.asyncio
    async def test_default_chart(self, ledger_store: LedgerStore) -> None:
        await ledger_store.upsert_partner(Partner("SUP-A", "Gulf Textiles", PartnerType.SUPPLIER))
        await ledger_store.upsert_partner(
            Partner("SUB-A", "Desert Mills", PartnerType.SUB_SUPPLIER, parent_supplier_id="SUP-A")
        )

        chart = await ledger_store.get_chart()

        assert len(chart.accounts) == 16
        assert chart.require_role(AccountRole.OWNER_CAPITAL).id == "ACC-301"
        assert chart.parent_supplier_of(chart.get("SUB-A")).id == "SUP-A"

    @pytest.mark.asyncio
    async def test_overrides_and_custom_account(self, ledger_store: LedgerStore) -> None:
        """공장별 계정 코드 재정의"""
        await ledger_store.upsert_account(
            Account("ACC-1201", "1201", "Raw Stock", AccountType.ASSET, factory_id="F-2")
        )
        await ledger_store.delete_account("ACC-104")

        chart = await ledger_store.get_chart(
            "F-2", {"RAW_MATERIALS": AccountLookupRule(codes=("1201",))}
        )

        assert chart.require_role(AccountRole.RAW_MATERIALS).id == "ACC-1201"

    @pytest.mark.asyncio
    async def test_item_update(self, ledger_store: LedgerStore) -> None:
        await ledger_store.upsert_item(
            Item("ITEM-1", "FG-001", "Cotton Shirt", Decimal("100"), Decimal("5"))
        )

        await ledger_store.update_item("ITEM-1", Decimal("90"), Decimal("5.25"))

        item = (await ledger_store.get_items())["ITEM-1"]
        assert item.stock_qty == Decimal("90")
        assert item.avg_cost == Decimal("5.25")


class TestStockSnapshot:
    """원자재 재구성 입력"""

    @pytest.mark.asyncio
    async def test_snapshot_reconciles(self, ledger_store: LedgerStore) -> None:
        await ledger_store.upsert_partner(Partner("SUP-A", "Gulf Textiles", PartnerType.SUPPLIER))
        await ledger_store.upsert_original_type(OriginalType("OT-1", "Cotton Waste"))
        await ledger_store.add_purchase(Purchase(
            id="PUR-1",
            purchase_date=date(2024, 1, 10),
            supplier_id="SUP-A",
            original_type_id="OT-1",
            weight_kg=Decimal("1000"),
            landed_cost=Decimal("2000"),
        ))
        await ledger_store.add_opening(OriginalOpening(
            "OPN-1", date(2024, 1, 20), "SUP-A", "OT-1", Decimal("300"),
        ))
        await ledger_store.add_direct_sale_line(DirectSaleLine("INV-1", "Posted", "PUR-1", Decimal("100")))
        await ledger_store.add_direct_sale_line(DirectSaleLine("INV-2", "Draft", "PUR-1", Decimal("50")))

        snapshot = await ledger_store.load_stock_snapshot()
        report = OriginalStockReconciler().reconcile(snapshot)

        assert snapshot.version == 6
        position = report.find(BucketKey("OT-1", "SUP-A"))
        assert position.type_name == "Cotton Waste"
        assert position.supplier_name == "Gulf Textiles"
        assert position.weight_in_hand == Decimal("600")
        assert position.worth == Decimal("1200")


class TestOpenEngine:
    """SQLite 엔진 전체 흐름"""

    @pytest.mark.asyncio
    async def test_post_edit_and_reopen(self, tmp_path: Path) -> None:
        settings = LedgerSettings(factory_id="FACTORY-01", db_path=tmp_path / "engine.db")

        async with open_engine(settings) as engine:
            await engine.store.upsert_partner(
                Partner("CUST-A", "Acme Trading", PartnerType.CUSTOMER)
            )
            posted = await engine.post({
                "kind": "RV", "source_id": "CUST-A", "dest_id": "ACC-102", "amount": "1000",
            })

            workflow = engine.edit_workflow()
            await workflow.begin(posted.transaction_id, reason="Amount fix")
            reposted = await workflow.submit(SimpleVoucherRequest(
                kind="RV", source_id="CUST-A", dest_id="ACC-102", amount=Decimal("1200"),
            ))
            assert reposted.transaction_id == "RV-1001"

        async with open_engine(settings) as engine:
            balances = await engine.trial_balance()
            archived = await engine.store.list_archived()

        assert balances["ACC-102"] == Decimal("1200")
        assert archived[0].original_transaction_id == "RV-1001"
