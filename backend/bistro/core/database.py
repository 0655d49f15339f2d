from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import aiosqlite

from bistro.core.constants import DEFAULT_BUSY_TIMEOUT_MS, DEFAULT_DB_PATH
from bistro.core.exceptions import DatabaseError
from bistro.core.logging import get_logger

logger = get_logger(__name__)

_MIGRATIONS_DIR = Path(__file__).parent / "migrations"


@dataclass(frozen=True)
class WriteResult:
    lastrowid: Optional[int]
    rowcount: int


class Database:
    """Async SQLite document store for the site content.

    Writes are serialized through ``_write_lock`` and committed before the
    call returns, so a returned :class:`WriteResult` means the change is
    durable and public caches may be revalidated.
    """

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    async def connect(cls, db_path: str = DEFAULT_DB_PATH) -> Database:
        """Open *db_path* (``":memory:"`` for a throwaway database)."""
        try:
            conn = await aiosqlite.connect(db_path)
            conn.row_factory = aiosqlite.Row
            if db_path != ":memory:":
                await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute(f"PRAGMA busy_timeout={DEFAULT_BUSY_TIMEOUT_MS}")
            await conn.execute("PRAGMA foreign_keys=ON")
        except Exception as exc:
            raise DatabaseError(f"Failed to open database {db_path}: {exc}") from exc
        logger.info("Database opened: %s", db_path)
        return cls(conn)

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------

    async def run_migrations(self, migrations_dir: Optional[Path] = None) -> int:
        """Apply pending ``*.sql`` files in name order; return how many ran."""
        migrations_path = migrations_dir or _MIGRATIONS_DIR

        await self.execute_write(
            "CREATE TABLE IF NOT EXISTS _migrations ("
            "    id INTEGER PRIMARY KEY,"
            "    filename TEXT UNIQUE NOT NULL,"
            "    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP"
            ")"
        )
        rows = await self.fetch_all("SELECT filename FROM _migrations")
        applied = {row["filename"] for row in rows}

        pending = sorted(p for p in migrations_path.glob("*.sql") if p.name not in applied)
        for sql_file in pending:
            statements = [
                s.strip() for s in sql_file.read_text(encoding="utf-8").split(";") if s.strip()
            ]
            operations: list[tuple[str, tuple[Any, ...]]] = [(s, ()) for s in statements]
            operations.append(("INSERT INTO _migrations (filename) VALUES (?)", (sql_file.name,)))
            await self.execute_write_transaction(operations)
            logger.info("Migration applied: %s", sql_file.name)
        return len(pending)

    # ------------------------------------------------------------------
    # Writes (lock-protected, committed on return)
    # ------------------------------------------------------------------

    async def execute_write(self, sql: str, params: tuple[Any, ...] = ()) -> WriteResult:
        async with self._write_lock:
            try:
                cursor = await self._conn.execute(sql, params)
                await self._conn.commit()
            except Exception as exc:
                await self._conn.rollback()
                raise DatabaseError(f"Write failed: {exc}") from exc
            return WriteResult(lastrowid=cursor.lastrowid, rowcount=cursor.rowcount)

    async def execute_write_transaction(
        self, operations: Sequence[tuple[str, tuple[Any, ...]]]
    ) -> int:
        """Run *operations* atomically; return the total affected row count."""
        affected = 0
        async with self._write_lock:
            try:
                for sql, params in operations:
                    cursor = await self._conn.execute(sql, params)
                    affected += max(cursor.rowcount, 0)
                await self._conn.commit()
            except Exception as exc:
                await self._conn.rollback()
                raise DatabaseError(f"Transaction failed: {exc}") from exc
        return affected

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def fetch_one(
        self, sql: str, params: tuple[Any, ...] = ()
    ) -> Optional[dict[str, Any]]:
        try:
            cursor = await self._conn.execute(sql, params)
            row = await cursor.fetchone()
        except Exception as exc:
            raise DatabaseError(f"fetch_one failed: {exc}") from exc
        return dict(row) if row is not None else None

    async def fetch_all(
        self, sql: str, params: tuple[Any, ...] = ()
    ) -> list[dict[str, Any]]:
        try:
            cursor = await self._conn.execute(sql, params)
            rows = await cursor.fetchall()
        except Exception as exc:
            raise DatabaseError(f"fetch_all failed: {exc}") from exc
        return [dict(r) for r in rows]

    async def ping(self) -> bool:
        try:
            await self.fetch_one("SELECT 1")
        except DatabaseError:
            return False
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        try:
            await self._conn.close()
            logger.info("Database connection closed")
        except Exception as exc:
            logger.warning("Error closing database: %s", exc)
