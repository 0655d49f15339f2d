from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bistro.core.constants import DishStatus
from bistro.models.dish import Dish, DishCreate
from bistro.repositories.base import BaseRepository


def _to_column(value: Any) -> Any:
    if hasattr(value, "value"):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


class DishRepository(BaseRepository):
    """CRUD and query helpers for the ``dishes`` table."""

    _table_name = "dishes"
    _columns = frozenset(
        {
            "slug",
            "title",
            "description",
            "price",
            "currency",
            "type",
            "category_id",
            "spice_level",
            "is_vegan",
            "is_vegetarian",
            "is_gluten_free",
            "availability",
            "status",
            "publish_at",
        }
    )

    async def add(self, item: DishCreate, slug: str) -> Dish:
        values = item.model_dump(exclude={"slug"})
        values["slug"] = slug
        columns = list(values)
        placeholders = ", ".join("?" for _ in columns)
        result = await self.execute_write(
            f"INSERT INTO dishes ({', '.join(columns)}) VALUES ({placeholders})",
            tuple(_to_column(values[c]) for c in columns),
        )
        dish = await self.get_by_id(result.lastrowid or 0)
        assert dish is not None
        return dish

    async def get_by_id(self, id: int) -> Optional[Dish]:
        row = await self._fetch_by_id(id)
        return Dish(**row) if row else None

    async def get_by_slug(self, slug: str, published_only: bool = False) -> Optional[Dish]:
        sql = "SELECT * FROM dishes WHERE slug = ?"
        params: tuple[Any, ...] = (slug,)
        if published_only:
            sql += " AND status = ?"
            params = (slug, DishStatus.PUBLISHED.value)
        row = await self.fetch_one(sql, params)
        return Dish(**row) if row else None

    async def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        return await self._slug_exists(slug, exclude_id)

    async def update(self, id: int, values: dict[str, Any]) -> Optional[Dish]:
        await self._update_columns(id, {k: _to_column(v) for k, v in values.items()})
        return await self.get_by_id(id)

    async def delete(self, id: int) -> bool:
        return await self._delete_by_id(id)

    async def get_many(self, ids: list[int]) -> list[Dish]:
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = await self.fetch_all(
            f"SELECT * FROM dishes WHERE id IN ({placeholders}) ORDER BY id", tuple(ids)
        )
        return [Dish(**r) for r in rows]

    async def assign_category(self, ids: list[int], category_id: int) -> int:
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        result = await self.execute_write(
            "UPDATE dishes SET category_id = ?, updated_at = CURRENT_TIMESTAMP "
            f"WHERE id IN ({placeholders})",
            (category_id, *ids),
        )
        return result.rowcount

    async def delete_many(self, ids: list[int]) -> int:
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        result = await self.execute_write(
            f"DELETE FROM dishes WHERE id IN ({placeholders})", tuple(ids)
        )
        return result.rowcount

    async def count_by_category(self, category_id: int) -> int:
        row = await self.fetch_one(
            "SELECT COUNT(*) AS cnt FROM dishes WHERE category_id = ?", (category_id,)
        )
        return int(row["cnt"]) if row else 0

    async def list_filtered(
        self,
        *,
        status: Optional[str] = None,
        dish_type: Optional[str] = None,
        category_id: Optional[int] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dish], int]:
        """Return one page of dishes (newest first) and the total match count."""
        conditions: list[str] = []
        params: list[object] = []

        if status is not None:
            conditions.append("status = ?")
            params.append(status)
        if dish_type is not None:
            conditions.append("type = ?")
            params.append(dish_type)
        if category_id is not None:
            conditions.append("category_id = ?")
            params.append(category_id)
        if search:
            conditions.append("title LIKE ?")
            params.append(f"%{search}%")

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        total_row = await self.fetch_one(
            f"SELECT COUNT(*) AS cnt FROM dishes {where}", tuple(params)
        )
        rows = await self.fetch_all(
            f"SELECT * FROM dishes {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            (*params, limit, offset),
        )
        total = int(total_row["cnt"]) if total_row else 0
        return [Dish(**r) for r in rows], total
