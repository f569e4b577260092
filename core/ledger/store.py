"""
원장 저장소 (SQLite)

분개 append / 조회 / 삭제(보관) 와 원자재 재구성 입력 로드.
append / delete / 조정 기록 저장 / 원자재 입력 변경마다 version 카운터 증가
(원자재 재구성 캐시 무효화 기준).

aiosqlite 오류는 StoreIOError로 변환해 상위로 전파.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import aiosqlite

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
from core.types import AccountType, PartnerType

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter
    from core.config.loader import AccountLookupRule

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = """
    seq, entry_id, transaction_id, entry_date, account_id, account_name,
    transaction_type, debit, credit, currency, exchange_rate, fcy_amount,
    narration, factory_id, is_reporting_only, is_adjustment
"""


def _row_to_entry(row: tuple[Any, ...]) -> LedgerEntry:
    return LedgerEntry(
        seq=row[0],
        entry_id=row[1],
        transaction_id=row[2],
        entry_date=date.fromisoformat(row[3]),
        account_id=row[4],
        account_name=row[5],
        transaction_type=row[6],
        debit=Decimal(row[7]),
        credit=Decimal(row[8]),
        currency=row[9],
        exchange_rate=Decimal(row[10]),
        fcy_amount=Decimal(row[11]),
        narration=row[12] or "",
        factory_id=row[13] or "",
        is_reporting_only=bool(row[14]),
        is_adjustment=bool(row[15]),
    )


class LedgerStore:
    """원장 저장소

    IEntryStore 구현 (SQLite 백엔드, 쓰기 직후 조회 일관).

    Args:
        db: 연결된 SQLiteAdapter (init_ledger_schema 완료 상태)
    """

    def __init__(self, db: SQLiteAdapter):
        self.db = db

    @asynccontextmanager
    async def _io(
        self,
        operation: str,
        transaction_id: str | None = None,
    ) -> AsyncIterator[None]:
        """aiosqlite.Error → StoreIOError"""
        try:
            yield
        except aiosqlite.Error as e:
            logger.error(f"저장소 오류 ({operation}, {transaction_id}): {e}")
            raise StoreIOError(str(e), operation, transaction_id) from e

    async def _bump_version(self) -> None:
        await self.db.execute(
            "UPDATE ledger_meta SET meta_value = meta_value + 1 WHERE meta_key = 'version'"
        )

    # -------------------------------------------------------------------------
    # 분개
    # -------------------------------------------------------------------------

    async def append(self, entries: Sequence[LedgerEntry]) -> list[LedgerEntry]:
        """분개 저장 (원자적)

        Returns:
            entry_id / seq가 부여된 분개 목록 (입력 순서 유지)
        """
        if not entries:
            return []
        transaction_id = entries[0].transaction_id
        stored: list[LedgerEntry] = []

        async with self._io("append", transaction_id), self.db.transaction():
            for entry in entries:
                entry_id = str(uuid.uuid4())
                cursor = await self.db.execute(
                    """
                    INSERT INTO ledger_entry (
                        entry_id, transaction_id, entry_date, account_id, account_name,
                        transaction_type, debit, credit, currency, exchange_rate,
                        fcy_amount, narration, factory_id, is_reporting_only, is_adjustment
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry_id,
                        entry.transaction_id,
                        entry.entry_date.isoformat(),
                        entry.account_id,
                        entry.account_name,
                        entry.transaction_type,
                        str(entry.debit),
                        str(entry.credit),
                        entry.currency,
                        str(entry.exchange_rate),
                        str(entry.fcy_amount),
                        entry.narration,
                        entry.factory_id,
                        int(entry.is_reporting_only),
                        int(entry.is_adjustment),
                    ),
                )
                stored.append(replace(entry, entry_id=entry_id, seq=cursor.lastrowid))
            await self._bump_version()

        logger.debug(f"분개 저장: {transaction_id} ({len(stored)}행)")
        return stored

    async def query(self, transaction_id: str) -> list[LedgerEntry]:
        """전표 번호로 분개 조회 (seq 순)"""
        async with self._io("query", transaction_id):
            rows = await self.db.fetchall(
                f"SELECT {_ENTRY_COLUMNS} FROM ledger_entry WHERE transaction_id = ? ORDER BY seq",
                (transaction_id,),
            )
        return [_row_to_entry(row) for row in rows]

    async def list_entries(self, factory_id: str | None = None) -> list[LedgerEntry]:
        """원장 전체 (seq 순, factory_id 지정 시 해당 공장만)"""
        async with self._io("list_entries"):
            if factory_id is None:
                rows = await self.db.fetchall(
                    f"SELECT {_ENTRY_COLUMNS} FROM ledger_entry ORDER BY seq"
                )
            else:
                rows = await self.db.fetchall(
                    f"SELECT {_ENTRY_COLUMNS} FROM ledger_entry WHERE factory_id = ? ORDER BY seq",
                    (factory_id,),
                )
        return [_row_to_entry(row) for row in rows]

    async def delete(
        self,
        transaction_id: str,
        reason: str = "",
        deleted_by: str = Defaults.DELETED_BY,
    ) -> int:
        """전표 삭제 (보관 후 삭제, 구조화 조정 기록 포함)

        Returns:
            삭제된 분개 행 수 (없으면 0, 보관 기록도 생성하지 않음)
        """
        entries = await self.query(transaction_id)
        if not entries:
            return 0

        archived = ArchivedTransaction(
            archive_id=str(uuid.uuid4()),
            original_transaction_id=transaction_id,
            deleted_at=datetime.now(timezone.utc),
            deleted_by=deleted_by,
            reason=reason,
            entries=tuple(entries),
        )

        async with self._io("delete", transaction_id), self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO archived_transaction (
                    archive_id, original_transaction_id, deleted_at,
                    deleted_by, reason, entries_json
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    archived.archive_id,
                    transaction_id,
                    archived.deleted_at.isoformat(),
                    deleted_by,
                    reason,
                    json.dumps([e.to_dict() for e in entries]),
                ),
            )
            await self.db.execute(
                "DELETE FROM ledger_entry WHERE transaction_id = ?",
                (transaction_id,),
            )
            await self.db.execute(
                "DELETE FROM adjustment_record WHERE transaction_id = ?",
                (transaction_id,),
            )
            await self._bump_version()

        logger.info(f"전표 삭제: {transaction_id} ({len(entries)}행), 사유: {reason or '-'}")
        return len(entries)

    async def list_archived(self, limit: int = 100) -> list[ArchivedTransaction]:
        """삭제 보관 목록 (최근 순)"""
        async with self._io("list_archived"):
            rows = await self.db.fetchall(
                """
                SELECT archive_id, original_transaction_id, deleted_at,
                       deleted_by, reason, entries_json
                FROM archived_transaction
                ORDER BY deleted_at DESC
                LIMIT ?
                """,
                (limit,),
            )
        return [
            ArchivedTransaction(
                archive_id=row[0],
                original_transaction_id=row[1],
                deleted_at=datetime.fromisoformat(row[2]),
                deleted_by=row[3],
                reason=row[4] or "",
                entries=tuple(LedgerEntry.from_dict(d) for d in json.loads(row[5])),
            )
            for row in rows
        ]

    async def version(self) -> int:
        """변경 카운터"""
        async with self._io("version"):
            value = await self.db.fetchvalue(
                "SELECT meta_value FROM ledger_meta WHERE meta_key = 'version'",
                default=0,
            )
        return int(value)

    # -------------------------------------------------------------------------
    # 원자재 조정 기록
    # -------------------------------------------------------------------------

    async def save_adjustment_records(self, records: Iterable[AdjustmentRecord]) -> None:
        records = list(records)
        if not records:
            return
        async with self._io("save_adjustment_records", records[0].transaction_id), \
                self.db.transaction():
            for record in records:
                await self.db.execute(
                    """
                    INSERT INTO adjustment_record (transaction_id, seq, record_json)
                    VALUES (?, ?, ?)
                    """,
                    (record.transaction_id, record.seq, json.dumps(record.to_dict())),
                )
            await self._bump_version()

    async def list_adjustment_records(
        self,
        transaction_id: str | None = None,
    ) -> list[AdjustmentRecord]:
        """구조화 조정 기록 (seq 순)"""
        async with self._io("list_adjustment_records", transaction_id):
            if transaction_id is None:
                rows = await self.db.fetchall(
                    "SELECT record_json FROM adjustment_record ORDER BY seq, id"
                )
            else:
                rows = await self.db.fetchall(
                    "SELECT record_json FROM adjustment_record WHERE transaction_id = ? ORDER BY seq, id",
                    (transaction_id,),
                )
        return [AdjustmentRecord.from_dict(json.loads(row[0])) for row in rows]

    # -------------------------------------------------------------------------
    # 완제품
    # -------------------------------------------------------------------------

    async def get_items(self) -> dict[str, Item]:
        async with self._io("get_items"):
            rows = await self.db.fetchall(
                "SELECT item_id, code, name, stock_qty, avg_cost, factory_id FROM item"
            )
        return {
            row[0]: Item(
                id=row[0],
                code=row[1],
                name=row[2],
                stock_qty=Decimal(row[3]),
                avg_cost=Decimal(row[4]),
                factory_id=row[5],
            )
            for row in rows
        }

    async def update_item(self, item_id: str, stock_qty: Decimal, avg_cost: Decimal) -> None:
        async with self._io("update_item"), self.db.transaction():
            await self.db.execute(
                """
                UPDATE item SET stock_qty = ?, avg_cost = ?, updated_at = datetime('now')
                WHERE item_id = ?
                """,
                (str(stock_qty), str(avg_cost), item_id),
            )
        logger.debug(f"품목 갱신: {item_id} qty={stock_qty}, avg={avg_cost}")

    async def upsert_item(self, item: Item) -> None:
        async with self._io("upsert_item"), self.db.transaction():
            await self.db.execute(
                """
                INSERT OR REPLACE INTO item (item_id, code, name, stock_qty, avg_cost, factory_id)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (item.id, item.code, item.name, str(item.stock_qty), str(item.avg_cost), item.factory_id),
            )

    # -------------------------------------------------------------------------
    # 계정과목 / 거래처
    # -------------------------------------------------------------------------

    async def upsert_account(self, account: Account) -> None:
        async with self._io("upsert_account"), self.db.transaction():
            await self.db.execute(
                """
                INSERT OR REPLACE INTO account (account_id, code, name, account_type, factory_id)
                VALUES (?, ?, ?, ?, ?)
                """,
                (account.id, account.code, account.name, account.account_type.value, account.factory_id),
            )

    async def delete_account(self, account_id: str) -> None:
        async with self._io("delete_account"), self.db.transaction():
            await self.db.execute("DELETE FROM account WHERE account_id = ?", (account_id,))

    async def upsert_partner(self, partner: Partner) -> None:
        async with self._io("upsert_partner"), self.db.transaction():
            await self.db.execute(
                """
                INSERT OR REPLACE INTO partner (
                    partner_id, name, partner_type, parent_supplier_id, factory_id
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    partner.id,
                    partner.name,
                    partner.partner_type.value,
                    partner.parent_supplier_id,
                    partner.factory_id,
                ),
            )
            # 원자재 버킷 표시 이름이 거래처 이름을 사용
            await self._bump_version()

    async def get_chart(
        self,
        factory_id: str | None = None,
        overrides: dict[str, AccountLookupRule] | None = None,
    ) -> ChartOfAccounts:
        async with self._io("get_chart"):
            account_rows = await self.db.fetchall(
                "SELECT account_id, code, name, account_type, factory_id FROM account ORDER BY code"
            )
            partner_rows = await self.db.fetchall(
                "SELECT partner_id, name, partner_type, parent_supplier_id, factory_id FROM partner"
            )
        accounts = [
            Account(id=r[0], code=r[1], name=r[2], account_type=AccountType(r[3]), factory_id=r[4])
            for r in account_rows
        ]
        partners = [
            Partner(id=r[0], name=r[1], partner_type=PartnerType(r[2]), parent_supplier_id=r[3], factory_id=r[4])
            for r in partner_rows
        ]
        return ChartOfAccounts(accounts, partners, factory_id=factory_id, overrides=overrides)

    # -------------------------------------------------------------------------
    # 원자재 입력
    # -------------------------------------------------------------------------

    async def upsert_original_type(self, original_type: OriginalType) -> None:
        async with self._io("upsert_original_type"), self.db.transaction():
            await self.db.execute(
                "INSERT OR REPLACE INTO original_type (original_type_id, name) VALUES (?, ?)",
                (original_type.id, original_type.name),
            )
            await self._bump_version()

    async def add_purchase(self, purchase: Purchase) -> None:
        async with self._io("add_purchase"), self.db.transaction():
            await self.db.execute(
                """
                INSERT OR REPLACE INTO purchase (
                    purchase_id, purchase_date, supplier_id, sub_supplier_id,
                    original_type_id, product_id, weight_kg, landed_cost
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    purchase.id,
                    purchase.purchase_date.isoformat(),
                    purchase.supplier_id,
                    purchase.sub_supplier_id,
                    purchase.original_type_id,
                    purchase.product_id,
                    str(purchase.weight_kg),
                    str(purchase.landed_cost),
                ),
            )
            await self._bump_version()

    async def add_opening(self, opening: OriginalOpening) -> None:
        async with self._io("add_opening"), self.db.transaction():
            await self.db.execute(
                """
                INSERT OR REPLACE INTO original_opening (
                    opening_id, opening_date, supplier_id, original_type_id, weight_kg
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    opening.id,
                    opening.opening_date.isoformat(),
                    opening.supplier_id,
                    opening.original_type_id,
                    str(opening.weight_kg),
                ),
            )
            await self._bump_version()

    async def add_direct_sale_line(self, line: DirectSaleLine) -> None:
        async with self._io("add_direct_sale_line"), self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO direct_sale_line (
                    invoice_id, invoice_status, original_purchase_id, sold_kg
                ) VALUES (?, ?, ?, ?)
                """,
                (line.invoice_id, line.invoice_status, line.original_purchase_id, str(line.sold_kg)),
            )
            await self._bump_version()

    async def load_stock_snapshot(self) -> StockSnapshot:
        """원자재 재구성 입력 스냅샷"""
        version = await self.version()
        entries = await self.list_entries()
        records = await self.list_adjustment_records()

        async with self._io("load_stock_snapshot"):
            purchase_rows = await self.db.fetchall(
                """
                SELECT purchase_id, purchase_date, supplier_id, original_type_id,
                       weight_kg, landed_cost, sub_supplier_id, product_id
                FROM purchase ORDER BY purchase_date, purchase_id
                """
            )
            opening_rows = await self.db.fetchall(
                """
                SELECT opening_id, opening_date, supplier_id, original_type_id, weight_kg
                FROM original_opening ORDER BY opening_date, opening_id
                """
            )
            sale_rows = await self.db.fetchall(
                """
                SELECT invoice_id, invoice_status, original_purchase_id, sold_kg
                FROM direct_sale_line ORDER BY id
                """
            )
            type_rows = await self.db.fetchall("SELECT original_type_id, name FROM original_type")
            partner_rows = await self.db.fetchall("SELECT partner_id, name FROM partner")

        return StockSnapshot(
            version=version,
            entries=tuple(entries),
            purchases=tuple(
                Purchase(
                    id=r[0],
                    purchase_date=date.fromisoformat(r[1]),
                    supplier_id=r[2],
                    original_type_id=r[3],
                    weight_kg=Decimal(r[4]),
                    landed_cost=Decimal(r[5]),
                    sub_supplier_id=r[6],
                    product_id=r[7],
                )
                for r in purchase_rows
            ),
            openings=tuple(
                OriginalOpening(
                    id=r[0],
                    opening_date=date.fromisoformat(r[1]),
                    supplier_id=r[2],
                    original_type_id=r[3],
                    weight_kg=Decimal(r[4]),
                )
                for r in opening_rows
            ),
            sales=tuple(
                DirectSaleLine(
                    invoice_id=r[0],
                    invoice_status=r[1],
                    original_purchase_id=r[2],
                    sold_kg=Decimal(r[3]),
                )
                for r in sale_rows
            ),
            adjustment_records=tuple(records),
            type_names={r[0]: r[1] for r in type_rows},
            partner_names={r[0]: r[1] for r in partner_rows},
        )
