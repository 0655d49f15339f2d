from __future__ import annotations

from typing import Any, Optional

from bistro.models.category import Category, CategoryCreate, CategoryOrder
from bistro.repositories.base import BaseRepository


def _from_row(row: dict[str, Any]) -> Category:
    row = dict(row)
    row["order"] = row.pop("sort_order", 0)
    return Category(**row)


class CategoryRepository(BaseRepository):
    """CRUD helpers for the ``categories`` table."""

    _table_name = "categories"
    _columns = frozenset({"slug", "name", "type_scope", "sort_order"})

    async def add(self, item: CategoryCreate, slug: str) -> Category:
        result = await self.execute_write(
            "INSERT INTO categories (slug, name, type_scope, sort_order) VALUES (?, ?, ?, ?)",
            (
                slug,
                item.name,
                item.type_scope.value if item.type_scope else None,
                item.order,
            ),
        )
        category = await self.get_by_id(result.lastrowid or 0)
        assert category is not None
        return category

    async def get_by_id(self, id: int) -> Optional[Category]:
        row = await self._fetch_by_id(id)
        return _from_row(row) if row else None

    async def slug_exists(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        return await self._slug_exists(slug, exclude_id)

    async def list_all(self) -> list[Category]:
        rows = await self.fetch_all("SELECT * FROM categories ORDER BY sort_order ASC, id ASC")
        return [_from_row(r) for r in rows]

    async def update(self, id: int, values: dict[str, Any]) -> Optional[Category]:
        columns: dict[str, Any] = {}
        for key, value in values.items():
            column = "sort_order" if key == "order" else key
            columns[column] = getattr(value, "value", value)
        await self._update_columns(id, columns)
        return await self.get_by_id(id)

    async def delete(self, id: int) -> bool:
        return await self._delete_by_id(id)

    async def reorder(self, items: list[CategoryOrder]) -> list[Category]:
        await self._db.execute_write_transaction(
            [
                (
                    "UPDATE categories SET sort_order = ?, updated_at = CURRENT_TIMESTAMP "
                    "WHERE id = ?",
                    (item.order, item.id),
                )
                for item in items
            ]
        )
        return await self.list_all()
