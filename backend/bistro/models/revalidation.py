from __future__ import annotations

from typing import Optional

from bistro.models.base import BaseModel


class RevalidationResult(BaseModel):
    path: str
    success: bool
    error: Optional[str] = None
