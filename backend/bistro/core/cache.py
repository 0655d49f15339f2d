from __future__ import annotations

import time
from typing import Any, Optional

from bistro.core.constants import DEFAULT_CACHE_MAX_VARIANTS
from bistro.core.logging import get_logger

logger = get_logger(__name__)


class ResponseCache:
    """In-process cache of public GET payloads.

    Entries are keyed by ``(path, variant)`` so that :meth:`invalidate` can
    drop every variant of a path at once.  A ``ttl_seconds`` of ``0``
    disables expiry; entries then live until invalidated.

    Each path carries a generation number that :meth:`invalidate` bumps.
    A reader captures it with :meth:`generation` before loading and passes
    it back to :meth:`set`; a payload loaded across an invalidation is
    then discarded instead of being stored.
    """

    def __init__(
        self,
        ttl_seconds: int = 300,
        enabled: bool = True,
        max_variants: int = DEFAULT_CACHE_MAX_VARIANTS,
    ) -> None:
        self._ttl = ttl_seconds
        self._enabled = enabled
        self._max_variants = max(1, max_variants)
        # path -> variant -> (stored_at monotonic, payload), oldest first
        self._entries: dict[str, dict[str, tuple[float, Any]]] = {}
        self._generations: dict[str, int] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _expired(self, stored_at: float, now: float) -> bool:
        return bool(self._ttl) and now - stored_at > self._ttl

    def get(self, path: str, variant: str = "") -> Optional[Any]:
        if not self._enabled:
            return None
        variants = self._entries.get(path)
        if not variants or variant not in variants:
            return None
        stored_at, payload = variants[variant]
        if self._expired(stored_at, time.monotonic()):
            variants.pop(variant, None)
            return None
        return payload

    def generation(self, path: str) -> int:
        return self._generations.get(path, 0)

    def set(
        self,
        path: str,
        payload: Any,
        variant: str = "",
        generation: Optional[int] = None,
    ) -> bool:
        """Store *payload*; return ``False`` when it was not stored."""
        if not self._enabled:
            return False
        if generation is not None and generation != self.generation(path):
            logger.debug("Cache store skipped, %s was invalidated during load", path)
            return False

        variants = self._entries.setdefault(path, {})
        now = time.monotonic()
        for key in [k for k, (stored_at, _) in variants.items() if self._expired(stored_at, now)]:
            del variants[key]
        variants.pop(variant, None)
        while len(variants) >= self._max_variants:
            del variants[next(iter(variants))]
        variants[variant] = (now, payload)
        return True

    async def invalidate(self, path: str) -> None:
        self._generations[path] = self.generation(path) + 1
        removed = self._entries.pop(path, None)
        if removed:
            logger.debug("Cache invalidated: %s (%d variant(s))", path, len(removed))

    def clear(self) -> None:
        self._entries.clear()

    def variant_count(self, path: str) -> int:
        return len(self._entries.get(path, {}))

    def __contains__(self, path: str) -> bool:
        return bool(self._entries.get(path))
