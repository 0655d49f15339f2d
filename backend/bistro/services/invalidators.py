"""Cache-invalidation collaborators used by the revalidation dispatcher.

Every invalidator exposes ``async invalidate(path)`` and raises on failure;
the dispatcher decides what a failure means.
"""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Sequence

import aiohttp

from bistro.core.exceptions import InvalidationError
from bistro.core.logging import get_logger

logger = get_logger(__name__)

_USER_AGENT: str = "Bistro/1.0"


class CacheInvalidator(Protocol):
    async def invalidate(self, path: str) -> None: ...


class CdnPurgeInvalidator:
    """Asks an external CDN / edge cache to purge a path.

    Sends ``POST <purge_url>`` with ``{"path": ...}``.  Any non-2xx status or
    transport error raises :class:`InvalidationError`.  Retries are left to
    the purge endpoint.
    """

    def __init__(
        self,
        purge_url: str,
        *,
        timeout_seconds: int = 10,
        token: str = "",
    ) -> None:
        self._purge_url = purge_url
        self._timeout_seconds = timeout_seconds
        self._token = token
        self._session: Optional[aiohttp.ClientSession] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._session is not None and not self._session.closed:
            return
        timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
        headers = {"User-Agent": _USER_AGENT, "Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._session = aiohttp.ClientSession(timeout=timeout, headers=headers)
        logger.info("CDN purge client started (%s)", self._purge_url)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            # Allow the SSL transport to settle (aiohttp recommendation)
            await asyncio.sleep(0.25)
            logger.info("CDN purge client closed")
        self._session = None

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    async def invalidate(self, path: str) -> None:
        if self._session is None or self._session.closed:
            await self.start()
        assert self._session is not None

        try:
            async with self._session.post(self._purge_url, json={"path": path}) as resp:
                if resp.status >= 400:
                    body = await resp.text()
                    raise InvalidationError(
                        path, f"purge returned HTTP {resp.status}: {body[:200]}"
                    )
        except aiohttp.ClientError as exc:
            raise InvalidationError(path, f"purge request failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise InvalidationError(path, "purge request timed out") from exc


class CompositeInvalidator:
    """Fans one path out to several invalidators.

    All invalidators are attempted; if any failed, the first error is
    re-raised afterwards so the path is reported as failed.
    """

    def __init__(self, invalidators: Sequence[CacheInvalidator]) -> None:
        self._invalidators = list(invalidators)

    async def invalidate(self, path: str) -> None:
        first_error: Optional[Exception] = None
        for invalidator in self._invalidators:
            try:
                await invalidator.invalidate(path)
            except Exception as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
