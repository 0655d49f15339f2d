from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from bistro.core.constants import DishStatus
from bistro.models.bundle import Bundle, BundleCreate, BundleIncludes
from bistro.repositories.base import BaseRepository


def _to_column(key: str, value: Any) -> Any:
    if key == "includes":
        includes = value if isinstance(value, dict) else value.model_dump()
        return json.dumps(includes)
    if key == "dish_ids":
        return json.dumps(list(value))
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _from_row(row: dict[str, Any]) -> Bundle:
    row = dict(row)
    row["includes"] = BundleIncludes(**json.loads(row.get("includes") or "{}"))
    row["dish_ids"] = json.loads(row.get("dish_ids") or "[]")
    return Bundle(**row)


def _placeholders(values: list[Any]) -> str:
    return ", ".join("?" for _ in values)


class BundleRepository(BaseRepository):
    """CRUD helpers for the ``bundles`` table.

    ``includes`` and ``dish_ids`` are stored as JSON text; dish membership
    queries go through SQLite's ``json_each``.
    """

    _table_name = "bundles"
    _columns = frozenset(
        {
            "slug",
            "title",
            "description",
            "price_per_person",
            "min_persons",
            "max_persons",
            "includes",
            "dish_ids",
            "status",
            "publish_at",
        }
    )

    async def add(self, item: BundleCreate, slug: str) -> Bundle:
        values = item.model_dump(exclude={"slug"})
        values["slug"] = slug
        columns = list(values)
        result = await self.execute_write(
            f"INSERT INTO bundles ({', '.join(columns)}) VALUES ({_placeholders(columns)})",
            tuple(_to_column(c, values[c]) for c in columns),
        )
        bundle = await self.get_by_id(result.lastrowid or 0)
        assert bundle is not None
        return bundle

    async def get_by_id(self, id: int) -> Optional[Bundle]:
        row = await self._fetch_by_id(id)
        return _from_row(row) if row else None

    async def get_by_slug(self, slug: str, published_only: bool = False) -> Optional[Bundle]:
        sql = "SELECT * FROM bundles WHERE slug = ?"
        params: tuple[Any, ...] = (slug,)
        if published_only:
            sql += " AND status = ?"
            params = (slug, DishStatus.PUBLISHED.value)
        row = await self.fetch_one(sql, params)
        return _from_row(row) if row else None

    async def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        return await self._slug_exists(slug, exclude_id)

    async def update(self, id: int, values: dict[str, Any]) -> Optional[Bundle]:
        await self._update_columns(id, {k: _to_column(k, v) for k, v in values.items()})
        return await self.get_by_id(id)

    async def delete(self, id: int) -> bool:
        return await self._delete_by_id(id)

    async def list_filtered(
        self,
        *,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Bundle], int]:
        """Return one page of bundles (newest first) and the total match count."""
        conditions: list[str] = []
        params: list[object] = []
        if status is not None:
            conditions.append("status = ?")
            params.append(status)
        if search:
            conditions.append("title LIKE ?")
            params.append(f"%{search}%")
        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        total_row = await self.fetch_one(
            f"SELECT COUNT(*) AS cnt FROM bundles {where}", tuple(params)
        )
        rows = await self.fetch_all(
            f"SELECT * FROM bundles {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        total = int(total_row["cnt"]) if total_row else 0
        return [_from_row(r) for r in rows], total

    async def add_dishes(self, bundle_ids: list[int], dish_ids: list[int]) -> list[Bundle]:
        """Append *dish_ids* to each existing bundle; return the bundles that changed.

        Unknown bundle ids are skipped.  Dishes already in a bundle keep
        their position.
        """
        if not bundle_ids:
            return []
        rows = await self.fetch_all(
            f"SELECT * FROM bundles WHERE id IN ({_placeholders(bundle_ids)})", tuple(bundle_ids)
        )
        changed: list[int] = []
        operations: list[tuple[str, tuple[Any, ...]]] = []
        for bundle in (_from_row(r) for r in rows):
            merged = bundle.dish_ids + [d for d in dish_ids if d not in bundle.dish_ids]
            if merged == bundle.dish_ids:
                continue
            changed.append(bundle.id)
            operations.append(
                (
                    "UPDATE bundles SET dish_ids = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (json.dumps(merged), bundle.id),
                )
            )
        if operations:
            await self._db.execute_write_transaction(operations)
        return await self._get_many(changed)

    async def detach_dishes(self, dish_ids: list[int]) -> list[Bundle]:
        """Remove *dish_ids* from every bundle that lists them; return those bundles."""
        if not dish_ids:
            return []
        rows = await self.fetch_all(
            "SELECT DISTINCT bundles.* FROM bundles, json_each(bundles.dish_ids) AS item "
            f"WHERE item.value IN ({_placeholders(dish_ids)})",
            tuple(dish_ids),
        )
        affected = [_from_row(r) for r in rows]
        if not affected:
            return []
        await self._db.execute_write_transaction(
            [
                (
                    "UPDATE bundles SET dish_ids = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (json.dumps([d for d in b.dish_ids if d not in dish_ids]), b.id),
                )
                for b in affected
            ]
        )
        return await self._get_many([b.id for b in affected])

    async def _get_many(self, ids: list[int]) -> list[Bundle]:
        if not ids:
            return []
        rows = await self.fetch_all(
            f"SELECT * FROM bundles WHERE id IN ({_placeholders(ids)}) ORDER BY id", tuple(ids)
        )
        return [_from_row(r) for r in rows]
