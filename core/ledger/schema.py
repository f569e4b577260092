"""
원장 스키마 초기화

엔진 시작 시 자동으로 원장 테이블 생성 및 기본 계정과목 삽입.
CREATE IF NOT EXISTS / INSERT OR IGNORE 패턴으로 반복 호출해도 안전.

금액은 모두 TEXT(Decimal 문자열)로 저장.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.db.sqlite_adapter import SQLiteAdapter

logger = logging.getLogger(__name__)


async def init_ledger_schema(db: "SQLiteAdapter") -> None:
    """원장 스키마 초기화 (테이블 + 기본 계정)

    Args:
        db: 연결된 SQLiteAdapter
    """
    await _create_reference_tables(db)
    await _create_ledger_tables(db)
    await _migrate_entry_flags(db)
    await _insert_initial_accounts(db)
    logger.info("원장 스키마 초기화 완료")


async def _create_reference_tables(db: "SQLiteAdapter") -> None:
    """계정과목 / 거래처 / 품목 / 원자재 입력 테이블"""

    await db.execute("""
        CREATE TABLE IF NOT EXISTS account (
            account_id       TEXT PRIMARY KEY,
            code             TEXT NOT NULL,
            name             TEXT NOT NULL,
            account_type     TEXT NOT NULL,
            factory_id       TEXT,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS partner (
            partner_id         TEXT PRIMARY KEY,
            name               TEXT NOT NULL,
            partner_type       TEXT NOT NULL,
            parent_supplier_id TEXT,
            factory_id         TEXT,
            created_at         TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS item (
            item_id          TEXT PRIMARY KEY,
            code             TEXT NOT NULL,
            name             TEXT NOT NULL,
            stock_qty        TEXT NOT NULL DEFAULT '0',
            avg_cost         TEXT NOT NULL DEFAULT '0',
            factory_id       TEXT,
            updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS original_type (
            original_type_id TEXT PRIMARY KEY,
            name             TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS purchase (
            purchase_id      TEXT PRIMARY KEY,
            purchase_date    TEXT NOT NULL,
            supplier_id      TEXT NOT NULL,
            sub_supplier_id  TEXT,
            original_type_id TEXT NOT NULL,
            product_id       TEXT,
            weight_kg        TEXT NOT NULL,
            landed_cost      TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS original_opening (
            opening_id       TEXT PRIMARY KEY,
            opening_date     TEXT NOT NULL,
            supplier_id      TEXT NOT NULL,
            original_type_id TEXT NOT NULL,
            weight_kg        TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS direct_sale_line (
            id                   INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_id           TEXT NOT NULL,
            invoice_status       TEXT NOT NULL,
            original_purchase_id TEXT,
            sold_kg              TEXT NOT NULL
        )
    """)

    await db.commit()


async def _create_ledger_tables(db: "SQLiteAdapter") -> None:
    """원장 / 조정 기록 / 삭제 보관 / 버전 카운터"""

    # seq: append 순서 ("마지막 기록 우선" 판정 기준)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_entry (
            seq               INTEGER PRIMARY KEY AUTOINCREMENT,
            entry_id          TEXT NOT NULL UNIQUE,
            transaction_id    TEXT NOT NULL,
            entry_date        TEXT NOT NULL,
            account_id        TEXT NOT NULL,
            account_name      TEXT NOT NULL,
            transaction_type  TEXT NOT NULL,
            debit             TEXT NOT NULL DEFAULT '0',
            credit            TEXT NOT NULL DEFAULT '0',
            currency          TEXT NOT NULL,
            exchange_rate     TEXT NOT NULL,
            fcy_amount        TEXT NOT NULL,
            narration         TEXT,
            factory_id        TEXT,
            is_reporting_only INTEGER NOT NULL DEFAULT 0,
            is_adjustment     INTEGER NOT NULL DEFAULT 0,
            created_at        TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_entry_transaction
        ON ledger_entry(transaction_id)
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_ledger_entry_account
        ON ledger_entry(account_id)
    """)

    # 원자재 조정 구조화 기록 (narration보다 우선)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS adjustment_record (
            id               INTEGER PRIMARY KEY AUTOINCREMENT,
            transaction_id   TEXT NOT NULL,
            seq              INTEGER NOT NULL,
            record_json      TEXT NOT NULL,
            created_at       TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS ix_adjustment_record_transaction
        ON adjustment_record(transaction_id)
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS archived_transaction (
            archive_id              TEXT PRIMARY KEY,
            original_transaction_id TEXT NOT NULL,
            deleted_at              TEXT NOT NULL,
            deleted_by              TEXT NOT NULL,
            reason                  TEXT,
            entries_json            TEXT NOT NULL
        )
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS ledger_meta (
            meta_key         TEXT PRIMARY KEY,
            meta_value       INTEGER NOT NULL DEFAULT 0
        )
    """)

    await db.execute(
        "INSERT OR IGNORE INTO ledger_meta (meta_key, meta_value) VALUES ('version', 0)"
    )

    await db.commit()
    logger.debug("원장 테이블 생성 완료")


async def _migrate_entry_flags(db: "SQLiteAdapter") -> None:
    """플래그 컬럼이 없는 이전 ledger_entry에 컬럼 추가 (기존 행은 0)"""
    columns = await db.column_names("ledger_entry")
    added = []
    for column in ("is_reporting_only", "is_adjustment"):
        if column not in columns:
            await db.execute(
                f"ALTER TABLE ledger_entry ADD COLUMN {column} INTEGER NOT NULL DEFAULT 0"
            )
            added.append(column)

    if added:
        await db.commit()
        logger.info(f"ledger_entry 컬럼 추가: {', '.join(added)}")


async def _insert_initial_accounts(db: "SQLiteAdapter") -> None:
    """초기 계정 삽입

    INITIAL_ACCOUNTS에 정의된 모든 계정을 생성.
    이미 존재하는 계정은 무시 (INSERT OR IGNORE).
    """
    from core.ledger.types import INITIAL_ACCOUNTS

    for account_id, code, name, account_type in INITIAL_ACCOUNTS:
        await db.execute(
            """
            INSERT OR IGNORE INTO account (account_id, code, name, account_type)
            VALUES (?, ?, ?, ?)
            """,
            (account_id, code, name, account_type),
        )

    await db.commit()
    logger.debug("초기 계정 삽입 완료")
