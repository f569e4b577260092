"""
pytest 공통 fixture 정의

원장 엔진 테스트용 설정 파일, Mock 저장소, 계정과목 fixture
"""

import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from adapters.mock.entry_store import InMemoryEntryStore
from adapters.mock.notifier import MockNotifier
from core.config.loader import LedgerSettings, SyncPolicy
from core.inventory.models import Item, OriginalType, Purchase
from core.ledger.accounts import ChartOfAccounts
from core.ledger.models import Partner
from core.types import PartnerType


def sample_partners() -> list[Partner]:
    """테스트용 거래처 (고객, 공급처, 하위공급처, 거래처)"""
    return [
        Partner("CUST-A", "Acme Trading", PartnerType.CUSTOMER),
        Partner("SUP-A", "Gulf Textiles", PartnerType.SUPPLIER),
        Partner("SUB-A", "Desert Mills", PartnerType.SUB_SUPPLIER, parent_supplier_id="SUP-A"),
        Partner("VEN-A", "City Power", PartnerType.VENDOR),
    ]


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_settings_file(temp_dir: Path) -> Path:
    """테스트용 settings.yaml 파일 생성"""
    settings_content = """# 테스트용 settings.yaml
factory_id: FACTORY-TEST
base_currency: usd

database:
  path: ledger_test.db

exchange_rates:
  AED: 3.67
  PKR: 278.5

sync:
  max_attempts: 3
  initial_delay_sec: 0.1
  backoff_multiplier: 2
  max_delay_sec: 1

alignment:
  epoch_date: "2020-01-01"

notifier:
  slack_webhook_url: "https://hooks.slack.com/services/TEST"

accounts:
  RAW_MATERIALS:
    codes: ["1201"]
    names: ["Raw Stock"]
"""
    settings_path = temp_dir / "settings.yaml"
    settings_path.write_text(settings_content, encoding="utf-8")
    return settings_path


@pytest.fixture
def settings() -> LedgerSettings:
    """대기 없는 재조회 정책의 기본 설정"""
    return LedgerSettings(
        factory_id="FACTORY-01",
        sync=SyncPolicy(max_attempts=4, initial_delay_sec=0.0, max_delay_sec=0.0),
        alignment_epoch=date(2000, 1, 1),
    )


@pytest.fixture
def store() -> InMemoryEntryStore:
    """거래처/품목/원자재 매입이 등록된 Mock 저장소"""
    store = InMemoryEntryStore()
    for partner in sample_partners():
        store.add_partner(partner)

    store.add_item(Item("ITEM-1", "FG-001", "Cotton Shirt", Decimal("100"), Decimal("5")))
    store.add_item(Item("ITEM-2", "FG-002", "Wool Scarf", Decimal("0"), Decimal("0")))

    store.add_original_type(OriginalType("OT-1", "Cotton Waste"))
    store.add_purchase(Purchase(
        id="PUR-1",
        purchase_date=date(2024, 1, 10),
        supplier_id="SUP-A",
        original_type_id="OT-1",
        weight_kg=Decimal("1000"),
        landed_cost=Decimal("2000"),
    ))
    return store


@pytest.fixture
def notifier() -> MockNotifier:
    return MockNotifier()


@pytest.fixture
def chart() -> ChartOfAccounts:
    """기본 계정과목 + 테스트 거래처"""
    return ChartOfAccounts(InMemoryEntryStore().state.accounts.values(), sample_partners())
