"""
Mock 원장 저장소

테스트용 메모리 내 IEntryStore 구현.
저장 실패, 삭제 잔존, 삭제 지연(eventual consistency) 시뮬레이션 지원.
"""

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal

from core.config.loader import AccountLookupRule
from core.constants import Defaults
from core.inventory.models import (
    AdjustmentRecord,
    DirectSaleLine,
    Item,
    OriginalOpening,
    OriginalType,
    Purchase,
    StockSnapshot,
)
from core.ledger.accounts import ChartOfAccounts
from core.ledger.errors import StoreIOError
from core.ledger.models import Account, ArchivedTransaction, LedgerEntry, Partner
from core.ledger.types import INITIAL_ACCOUNTS
from core.types import AccountType


def default_accounts() -> list[Account]:
    """INITIAL_ACCOUNTS → Account 목록"""
    return [
        Account(id=account_id, code=code, name=name, account_type=AccountType(account_type))
        for account_id, code, name, account_type in INITIAL_ACCOUNTS
    ]


@dataclass
class MockLedgerState:
    """Mock 상태 (메모리 내 저장)"""

    entries: list[LedgerEntry] = field(default_factory=list)
    accounts: dict[str, Account] = field(default_factory=dict)
    partners: dict[str, Partner] = field(default_factory=dict)
    items: dict[str, Item] = field(default_factory=dict)
    original_types: dict[str, OriginalType] = field(default_factory=dict)
    purchases: list[Purchase] = field(default_factory=list)
    openings: list[OriginalOpening] = field(default_factory=list)
    sales: list[DirectSaleLine] = field(default_factory=list)
    adjustment_records: list[AdjustmentRecord] = field(default_factory=list)
    archived: list[ArchivedTransaction] = field(default_factory=list)

    version: int = 0
    seq_counter: int = 0

    # 시뮬레이션 옵션
    fail_on_append: bool = False
    # 남은 횟수만큼 delete가 아무것도 지우지 않음 (잔존 시뮬레이션)
    sticky_deletes: int = 0
    # delete 후 남은 횟수만큼 query가 이전 행을 반환 (지연 시뮬레이션)
    delete_lag: int = 0


class InMemoryEntryStore:
    """Mock 원장 저장소

    IEntryStore Protocol 구현.

    사용 예시:
    ```python
    store = InMemoryEntryStore()
    store.add_partner(Partner("CUST-A", "Acme", PartnerType.CUSTOMER))

    # 삭제 후 2번 조회까지 이전 행이 보임
    store.state.delete_lag = 2
    ```
    """

    def __init__(self, state: MockLedgerState | None = None):
        self.state = state or MockLedgerState()
        if not self.state.accounts:
            for account in default_accounts():
                self.state.accounts[account.id] = account

        self._stale: dict[str, tuple[list[LedgerEntry], int]] = {}
        self.append_calls = 0
        self.delete_calls = 0

    # -------------------------------------------------------------------------
    # 분개
    # -------------------------------------------------------------------------

    async def append(self, entries: Sequence[LedgerEntry]) -> list[LedgerEntry]:
        self.append_calls += 1
        transaction_id = entries[0].transaction_id if entries else None
        if self.state.fail_on_append:
            raise StoreIOError("mock append failure", "append", transaction_id)

        stored: list[LedgerEntry] = []
        for entry in entries:
            self.state.seq_counter += 1
            stored.append(replace(entry, entry_id=str(uuid.uuid4()), seq=self.state.seq_counter))
        self.state.entries.extend(stored)
        self.state.version += 1
        return stored

    async def query(self, transaction_id: str) -> list[LedgerEntry]:
        stale = self._stale.get(transaction_id)
        if stale is not None:
            rows, remaining = stale
            if remaining > 0:
                self._stale[transaction_id] = (rows, remaining - 1)
                return list(rows)
            del self._stale[transaction_id]
        return [e for e in self.state.entries if e.transaction_id == transaction_id]

    async def list_entries(self, factory_id: str | None = None) -> list[LedgerEntry]:
        if factory_id is None:
            return list(self.state.entries)
        return [e for e in self.state.entries if e.factory_id == factory_id]

    async def delete(
        self,
        transaction_id: str,
        reason: str = "",
        deleted_by: str = Defaults.DELETED_BY,
    ) -> int:
        self.delete_calls += 1
        rows = [e for e in self.state.entries if e.transaction_id == transaction_id]
        if not rows:
            return 0

        if self.state.sticky_deletes > 0:
            self.state.sticky_deletes -= 1
            return len(rows)

        self.state.archived.append(ArchivedTransaction(
            archive_id=str(uuid.uuid4()),
            original_transaction_id=transaction_id,
            deleted_at=datetime.now(timezone.utc),
            deleted_by=deleted_by,
            reason=reason,
            entries=tuple(rows),
        ))
        self.state.entries = [e for e in self.state.entries if e.transaction_id != transaction_id]
        self.state.adjustment_records = [
            r for r in self.state.adjustment_records if r.transaction_id != transaction_id
        ]
        if self.state.delete_lag > 0:
            self._stale[transaction_id] = (rows, self.state.delete_lag)
        self.state.version += 1
        return len(rows)

    async def list_archived(self, limit: int = 100) -> list[ArchivedTransaction]:
        return list(reversed(self.state.archived))[:limit]

    async def version(self) -> int:
        return self.state.version

    # -------------------------------------------------------------------------
    # 재고 / 참조 데이터
    # -------------------------------------------------------------------------

    async def save_adjustment_records(self, records: Iterable[AdjustmentRecord]) -> None:
        self.state.adjustment_records.extend(records)
        self.state.version += 1

    async def list_adjustment_records(
        self,
        transaction_id: str | None = None,
    ) -> list[AdjustmentRecord]:
        records = sorted(self.state.adjustment_records, key=lambda r: r.seq)
        if transaction_id is None:
            return records
        return [r for r in records if r.transaction_id == transaction_id]

    async def get_items(self) -> dict[str, Item]:
        return {item_id: replace(item) for item_id, item in self.state.items.items()}

    async def update_item(self, item_id: str, stock_qty: Decimal, avg_cost: Decimal) -> None:
        item = self.state.items[item_id]
        item.stock_qty = stock_qty
        item.avg_cost = avg_cost

    async def get_chart(
        self,
        factory_id: str | None = None,
        overrides: dict[str, AccountLookupRule] | None = None,
    ) -> ChartOfAccounts:
        return ChartOfAccounts(
            self.state.accounts.values(),
            self.state.partners.values(),
            factory_id=factory_id,
            overrides=overrides,
        )

    async def load_stock_snapshot(self) -> StockSnapshot:
        return StockSnapshot(
            version=self.state.version,
            entries=tuple(self.state.entries),
            purchases=tuple(self.state.purchases),
            openings=tuple(self.state.openings),
            sales=tuple(self.state.sales),
            adjustment_records=tuple(sorted(self.state.adjustment_records, key=lambda r: r.seq)),
            type_names={t.id: t.name for t in self.state.original_types.values()},
            partner_names={p.id: p.name for p in self.state.partners.values()},
        )

    # -------------------------------------------------------------------------
    # 테스트 헬퍼 메서드
    # -------------------------------------------------------------------------

    def add_account(self, account: Account) -> None:
        self.state.accounts[account.id] = account

    def remove_account(self, account_id: str) -> None:
        self.state.accounts.pop(account_id, None)

    def add_partner(self, partner: Partner) -> None:
        self.state.partners[partner.id] = partner
        self.state.version += 1

    def add_item(self, item: Item) -> None:
        self.state.items[item.id] = item

    def add_original_type(self, original_type: OriginalType) -> None:
        self.state.original_types[original_type.id] = original_type
        self.state.version += 1

    def add_purchase(self, purchase: Purchase) -> None:
        self.state.purchases.append(purchase)
        self.state.version += 1

    def add_opening(self, opening: OriginalOpening) -> None:
        self.state.openings.append(opening)
        self.state.version += 1

    def add_direct_sale_line(self, line: DirectSaleLine) -> None:
        self.state.sales.append(line)
        self.state.version += 1

    @property
    def transaction_ids(self) -> set[str]:
        return {e.transaction_id for e in self.state.entries}
