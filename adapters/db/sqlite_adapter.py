"""
SQLite 어댑터

원장 DB 연결 관리 (WAL 모드).
엔진이 쓰는 동안 점검 스크립트가 읽기 전용으로 동시에 조회할 수 있도록 설정.

쓰기 트랜잭션은 BEGIN IMMEDIATE로 시작해 전표 한 건의 행들이
다른 프로세스의 쓰기와 섞이지 않도록 함.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiosqlite

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


async def create_connection(
    db_path: Path | str,
    readonly: bool = False,
    busy_timeout_ms: int = 30000,
) -> aiosqlite.Connection:
    """SQLite 연결 생성

    Args:
        db_path: DB 파일 경로 (":memory:"면 메모리 DB)
        readonly: 읽기 전용 여부
        busy_timeout_ms: 잠금 대기 시간

    Returns:
        aiosqlite 연결 객체
    """
    db_path_str = str(db_path)
    in_memory = db_path_str == MEMORY_DB

    if readonly:
        conn = await aiosqlite.connect(f"file:{db_path_str}?mode=ro", uri=True)
    else:
        if not in_memory:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(db_path_str)

    if not in_memory and not readonly:
        await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
    await conn.execute("PRAGMA foreign_keys=ON")

    logger.info(f"SQLite 연결: {db_path_str} (readonly={readonly})")
    return conn


class SQLiteAdapter:
    """원장 DB 어댑터

    Args:
        db_path: DB 파일 경로
        readonly: 읽기 전용 여부 (점검 스크립트 조회용)

    사용 예시:
    ```python
    async with SQLiteAdapter(settings.db_path) as db:
        await init_ledger_schema(db)

        async with db.transaction():
            await db.execute("INSERT INTO ledger_entry ...")

        version = await db.fetchvalue("SELECT meta_value FROM ledger_meta WHERE ...", default=0)
    ```
    """

    def __init__(self, db_path: Path | str, readonly: bool = False):
        self.db_path = db_path if str(db_path) == MEMORY_DB else Path(db_path)
        self.readonly = readonly
        self._conn: aiosqlite.Connection | None = None

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    async def connect(self) -> None:
        if self._conn is not None:
            return
        self._conn = await create_connection(self.db_path, self.readonly)

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info(f"SQLite 연결 종료: {self.db_path}")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Not connected to database")
        return self._conn

    # -------------------------------------------------------------------------
    # 실행 / 조회
    # -------------------------------------------------------------------------

    async def execute(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> aiosqlite.Cursor:
        conn = self._require_conn()
        if parameters:
            return await conn.execute(sql, parameters)
        return await conn.execute(sql)

    async def fetchone(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> tuple[Any, ...] | None:
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
    ) -> list[tuple[Any, ...]]:
        cursor = await self.execute(sql, parameters)
        return list(await cursor.fetchall())

    async def fetchvalue(
        self,
        sql: str,
        parameters: tuple[Any, ...] | None = None,
        default: Any = None,
    ) -> Any:
        """첫 행의 첫 컬럼 (행이 없으면 default)"""
        row = await self.fetchone(sql, parameters)
        return row[0] if row is not None else default

    async def commit(self) -> None:
        if self._conn is not None:
            await self._conn.commit()

    async def rollback(self) -> None:
        if self._conn is not None:
            await self._conn.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """쓰기 트랜잭션

        성공 시 커밋, 예외 시 롤백.
        이미 열린 트랜잭션 안에서 호출되면 바깥 트랜잭션에 합류
        (커밋/롤백은 바깥 호출자가 결정).
        """
        conn = self._require_conn()
        if conn.in_transaction:
            yield conn
            return

        await conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
            await conn.commit()
        except BaseException:
            await conn.rollback()
            raise

    # -------------------------------------------------------------------------
    # 스키마 조회
    # -------------------------------------------------------------------------

    async def table_exists(self, table_name: str) -> bool:
        result = await self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return result is not None

    async def column_names(self, table_name: str) -> list[str]:
        """테이블 컬럼 이름 (정의 순서, 테이블이 없으면 빈 목록)"""
        rows = await self.fetchall(f"PRAGMA table_info({table_name})")
        return [row[1] for row in rows]

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "SQLiteAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
