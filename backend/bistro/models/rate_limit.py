from __future__ import annotations

from typing import Optional

from bistro.models.base import BaseModel


class RateLimitRecord(BaseModel):
    """Failed-login bookkeeping for one client identifier."""

    failure_count: int = 0
    window_start: int
    blocked_until: Optional[int] = None


class RateLimitStatus(BaseModel):
    allowed: bool
    remaining_attempts: int
    reset_at: int
    blocked_until: Optional[int] = None
