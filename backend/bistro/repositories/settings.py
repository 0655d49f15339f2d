from __future__ import annotations

import json
from typing import Any

from bistro.core.constants import SETTINGS_SECTIONS
from bistro.models.settings import SiteSettings
from bistro.repositories.base import BaseRepository


class SettingsRepository(BaseRepository):
    """Read/write helpers for the singleton ``site_settings`` row."""

    _table_name = "site_settings"

    async def get(self) -> SiteSettings:
        """Return the settings document, or defaults if none was saved yet."""
        row = await self.fetch_one("SELECT document, updated_at FROM site_settings WHERE id = 1")
        if row is None:
            return SiteSettings()
        return SiteSettings(**json.loads(row["document"]), updated_at=row["updated_at"])

    async def merge(self, patch: dict[str, Any]) -> SiteSettings:
        """Shallow-merge each known section of *patch* into the stored document."""
        current = await self.get()
        document = current.model_dump(exclude={"updated_at"})
        for section in SETTINGS_SECTIONS:
            incoming = patch.get(section)
            if isinstance(incoming, dict):
                document[section] = {**document.get(section, {}), **incoming}

        await self.execute_write(
            "INSERT INTO site_settings (id, document) VALUES (1, ?) "
            "ON CONFLICT(id) DO UPDATE SET document = excluded.document, "
            "updated_at = CURRENT_TIMESTAMP",
            (json.dumps(document, ensure_ascii=False),),
        )
        return await self.get()
