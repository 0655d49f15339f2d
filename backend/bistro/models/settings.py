from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from bistro.models.base import BaseModel


class SiteSettings(BaseModel):
    """Singleton site-wide settings document.

    Each section is a free-form mapping; updates merge section by section.
    """

    brand: dict[str, Any] = Field(default_factory=dict)
    contact: dict[str, Any] = Field(default_factory=dict)
    location: dict[str, Any] = Field(default_factory=dict)
    hours: dict[str, Any] = Field(default_factory=dict)
    legal: dict[str, Any] = Field(default_factory=dict)
    ui: dict[str, Any] = Field(default_factory=lambda: {"rtl": True})
    updated_at: Optional[datetime] = None
