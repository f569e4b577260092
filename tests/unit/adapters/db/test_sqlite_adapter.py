"""
SQLite 어댑터 테스트

연결 설정, 쓰기 트랜잭션, 스키마 조회.
"""

from pathlib import Path

import pytest
import pytest_asyncio

from adapters.db.sqlite_adapter import SQLiteAdapter, create_connection
from core.ledger.schema import init_ledger_schema


class TestCreateConnection:
    """create_connection 테스트"""

    @pytest.mark.asyncio
    async def test_wal_mode(self, tmp_path: Path) -> None:
        conn = await create_connection(tmp_path / "ledger.db")

        cursor = await conn.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0].upper() == "WAL"

        await conn.close()

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path: Path) -> None:
        db_path = tmp_path / "data" / "ledger.db"

        conn = await create_connection(db_path)

        assert db_path.parent.exists()
        await conn.close()

    @pytest.mark.asyncio
    async def test_memory_database(self) -> None:
        conn = await create_connection(":memory:")

        cursor = await conn.execute("PRAGMA foreign_keys")
        assert (await cursor.fetchone())[0] == 1

        await conn.close()

    @pytest.mark.asyncio
    async def test_busy_timeout(self, tmp_path: Path) -> None:
        conn = await create_connection(tmp_path / "ledger.db", busy_timeout_ms=1500)

        cursor = await conn.execute("PRAGMA busy_timeout")
        assert (await cursor.fetchone())[0] == 1500

        await conn.close()


class TestSQLiteAdapter:
    """SQLiteAdapter 테스트"""

    @pytest_asyncio.fixture
    async def adapter(self, tmp_path: Path) -> SQLiteAdapter:
        adapter = SQLiteAdapter(tmp_path / "ledger.db")
        await adapter.connect()
        await adapter.execute("CREATE TABLE entry (id INTEGER PRIMARY KEY, amount TEXT)")
        await adapter.commit()
        yield adapter
        await adapter.close()

    @pytest.mark.asyncio
    async def test_not_connected(self, tmp_path: Path) -> None:
        adapter = SQLiteAdapter(tmp_path / "ledger.db")

        assert not adapter.is_connected
        with pytest.raises(RuntimeError, match="Not connected"):
            await adapter.execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_fetch_helpers(self, adapter: SQLiteAdapter) -> None:
        async with adapter.transaction():
            await adapter.execute("INSERT INTO entry (amount) VALUES (?)", ("10.50",))
            await adapter.execute("INSERT INTO entry (amount) VALUES (?)", ("3",))

        rows = await adapter.fetchall("SELECT amount FROM entry ORDER BY id")
        assert rows == [("10.50",), ("3",)]
        assert await adapter.fetchvalue("SELECT COUNT(*) FROM entry") == 2
        assert await adapter.fetchvalue(
            "SELECT amount FROM entry WHERE id = ?", (99,), default="0"
        ) == "0"

    @pytest.mark.asyncio
    async def test_transaction_rollback(self, adapter: SQLiteAdapter) -> None:
        """예외 시 전표 일부 행도 남지 않음"""
        with pytest.raises(ValueError):
            async with adapter.transaction():
                await adapter.execute("INSERT INTO entry (amount) VALUES ('1')")
                raise ValueError("second line failed")

        assert await adapter.fetchvalue("SELECT COUNT(*) FROM entry") == 0
        assert not adapter.in_transaction

    @pytest.mark.asyncio
    async def test_nested_transaction_joins_outer(self, adapter: SQLiteAdapter) -> None:
        """안쪽 트랜잭션은 바깥 롤백에 함께 취소"""
        with pytest.raises(ValueError):
            async with adapter.transaction():
                async with adapter.transaction():
                    await adapter.execute("INSERT INTO entry (amount) VALUES ('1')")
                assert adapter.in_transaction
                raise ValueError("outer failed")

        assert await adapter.fetchvalue("SELECT COUNT(*) FROM entry") == 0

    @pytest.mark.asyncio
    async def test_schema_queries(self, adapter: SQLiteAdapter) -> None:
        assert await adapter.table_exists("entry")
        assert not await adapter.table_exists("missing")
        assert await adapter.column_names("entry") == ["id", "amount"]
        assert await adapter.column_names("missing") == []


class TestLedgerSchema:
    """init_ledger_schema 테스트"""

    @pytest.mark.asyncio
    async def test_creates_tables_and_accounts(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "ledger.db") as db:
            await init_ledger_schema(db)

            for table in ("account", "partner", "item", "ledger_entry",
                          "adjustment_record", "archived_transaction", "ledger_meta"):
                assert await db.table_exists(table), table
            assert await db.fetchvalue("SELECT COUNT(*) FROM account") == 16

    @pytest.mark.asyncio
    async def test_idempotent(self, tmp_path: Path) -> None:
        async with SQLiteAdapter(tmp_path / "ledger.db") as db:
            await init_ledger_schema(db)
            await init_ledger_schema(db)

            assert await db.fetchvalue("SELECT COUNT(*) FROM account") == 16
            assert await db.fetchvalue(
                "SELECT meta_value FROM ledger_meta WHERE meta_key = 'version'"
            ) == 0

    @pytest.mark.asyncio
    async def test_adds_missing_flag_columns(self, tmp_path: Path) -> None:
        """플래그 컬럼 없는 이전 DB"""
        async with SQLiteAdapter(tmp_path / "ledger.db") as db:
            await db.execute("""
                CREATE TABLE ledger_entry (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    entry_id TEXT NOT NULL UNIQUE,
                    transaction_id TEXT NOT NULL,
                    entry_date TEXT NOT NULL,
                    account_id TEXT NOT NULL,
                    account_name TEXT NOT NULL,
                    transaction_type TEXT NOT NULL,
                    debit TEXT NOT NULL DEFAULT '0',
                    credit TEXT NOT NULL DEFAULT '0',
                    currency TEXT NOT NULL,
                    exchange_rate TEXT NOT NULL,
                    fcy_amount TEXT NOT NULL,
                    narration TEXT,
                    factory_id TEXT
                )
            """)
            await db.commit()

            await init_ledger_schema(db)

            columns = await db.column_names("ledger_entry")
            assert "is_reporting_only" in columns
            assert "is_adjustment" in columns
