from __future__ import annotations

from typing import Any, Optional

from bistro.core.database import Database, WriteResult


class BaseRepository:
    """Thin convenience wrapper around :class:`Database`.

    Subclasses set ``_table_name`` and ``_columns`` and build domain-specific
    queries.  All SQL uses parameter binding; only whitelisted column names
    are ever interpolated.
    """

    _table_name: str = ""
    _columns: frozenset[str] = frozenset()

    def __init__(self, db: Database) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Delegated helpers
    # ------------------------------------------------------------------

    async def execute_write(self, sql: str, params: tuple[Any, ...] = ()) -> WriteResult:
        return await self._db.execute_write(sql, params)

    async def fetch_one(
        self, sql: str, params: tuple[Any, ...] = ()
    ) -> Optional[dict[str, Any]]:
        return await self._db.fetch_one(sql, params)

    async def fetch_all(
        self, sql: str, params: tuple[Any, ...] = ()
    ) -> list[dict[str, Any]]:
        return await self._db.fetch_all(sql, params)

    # ------------------------------------------------------------------
    # Generic row helpers
    # ------------------------------------------------------------------

    async def _fetch_by_id(self, id: int) -> Optional[dict[str, Any]]:
        return await self.fetch_one(f"SELECT * FROM {self._table_name} WHERE id = ?", (id,))

    async def _update_columns(self, id: int, values: dict[str, Any]) -> None:
        unknown = set(values) - self._columns
        if unknown:
            raise ValueError(f"Unknown column(s) for {self._table_name}: {sorted(unknown)}")
        if not values:
            return
        assignments = ", ".join(f"{col} = ?" for col in values)
        await self.execute_write(
            f"UPDATE {self._table_name} SET {assignments}, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (*values.values(), id),
        )

    async def _delete_by_id(self, id: int) -> bool:
        result = await self.execute_write(
            f"DELETE FROM {self._table_name} WHERE id = ?", (id,)
        )
        return result.rowcount > 0

    async def _slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        if exclude_id is None:
            row = await self.fetch_one(
                f"SELECT 1 FROM {self._table_name} WHERE slug = ? LIMIT 1", (slug,)
            )
        else:
            row = await self.fetch_one(
                f"SELECT 1 FROM {self._table_name} WHERE slug = ? AND id != ? LIMIT 1",
                (slug, exclude_id),
            )
        return row is not None
