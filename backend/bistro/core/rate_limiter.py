from __future__ import annotations

from typing import Iterator, Optional, Protocol

from starlette.requests import Request

from bistro.core.config import AuthConfig, WebSecurityConfig
from bistro.core.crypto import Clock, SystemClock
from bistro.core.logging import get_logger
from bistro.core.network import get_client_identifier
from bistro.models.rate_limit import RateLimitRecord, RateLimitStatus

logger = get_logger(__name__)


class AttemptStore(Protocol):
    """Storage capability behind :class:`LoginRateLimiter`.

    The in-memory implementation is process-local; a multi-instance
    deployment plugs a shared TTL store in here.
    """

    def get(self, identifier: str) -> Optional[RateLimitRecord]: ...

    def put(self, identifier: str, record: RateLimitRecord) -> None: ...

    def delete(self, identifier: str) -> None: ...

    def items(self) -> Iterator[tuple[str, RateLimitRecord]]: ...


class InMemoryAttemptStore:
    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}

    def get(self, identifier: str) -> Optional[RateLimitRecord]:
        return self._records.get(identifier)

    def put(self, identifier: str, record: RateLimitRecord) -> None:
        self._records[identifier] = record

    def delete(self, identifier: str) -> None:
        self._records.pop(identifier, None)

    def items(self) -> Iterator[tuple[str, RateLimitRecord]]:
        # Snapshot so callers may delete while iterating.
        return iter(list(self._records.items()))

    def __len__(self) -> int:
        return len(self._records)


class LoginRateLimiter:
    """Tracks failed admin logins per client identifier.

    * A record opens on the first failure and lives for one tracking window.
    * Reaching ``max_login_attempts`` failures inside the window blocks the
      identifier for ``lockout_minutes``.
    * A successful login resets the record.

    ``check`` followed by ``record_failure`` is not atomic across concurrent
    requests; the worst case is one extra attempt.
    """

    def __init__(
        self,
        config: AuthConfig,
        store: AttemptStore | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._store: AttemptStore = store if store is not None else InMemoryAttemptStore()
        self._clock = clock or SystemClock()

    @property
    def max_attempts(self) -> int:
        return self._config.max_login_attempts

    @staticmethod
    def identify(request: Request, web_security: WebSecurityConfig) -> str:
        """Key under which *request*'s login failures are counted."""
        return get_client_identifier(
            request,
            trusted_proxies=web_security.trusted_proxies,
            preview_host_suffix=web_security.preview_host_suffix,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def check(self, identifier: str) -> RateLimitStatus:
        now = self._clock.now_ms()
        record = self._current_record(identifier, now)

        if record is None:
            return RateLimitStatus(
                allowed=True,
                remaining_attempts=self.max_attempts,
                reset_at=now + self._config.attempt_window_ms,
            )

        if record.blocked_until is not None:
            return RateLimitStatus(
                allowed=False,
                remaining_attempts=0,
                reset_at=record.blocked_until,
                blocked_until=record.blocked_until,
            )

        return RateLimitStatus(
            allowed=True,
            remaining_attempts=max(0, self.max_attempts - record.failure_count),
            reset_at=record.window_start + self._config.attempt_window_ms,
        )

    def record_failure(self, identifier: str) -> RateLimitStatus:
        now = self._clock.now_ms()
        record = self._current_record(identifier, now)
        if record is None:
            record = RateLimitRecord(failure_count=0, window_start=now)

        record.failure_count += 1
        if record.blocked_until is None and record.failure_count >= self.max_attempts:
            record.blocked_until = now + self._config.lockout_ms
            logger.warning(
                "Login locked out: id=%s failures=%d lockout=%dmin",
                identifier,
                record.failure_count,
                self._config.lockout_minutes,
            )
        self._store.put(identifier, record)
        return self.check(identifier)

    def reset(self, identifier: str) -> None:
        self._store.delete(identifier)

    def cleanup_expired(self) -> int:
        """Evict records whose window and block have both elapsed."""
        now = self._clock.now_ms()
        removed = 0
        for identifier, record in self._store.items():
            if self._is_stale(record, now):
                self._store.delete(identifier)
                removed += 1
        if removed:
            logger.debug("Evicted %d stale login-attempt records", removed)
        return removed

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _current_record(self, identifier: str, now: int) -> Optional[RateLimitRecord]:
        """Return the live record for *identifier*, dropping a stale one."""
        record = self._store.get(identifier)
        if record is None:
            return None
        if self._is_stale(record, now):
            self._store.delete(identifier)
            return None
        return record

    def _is_stale(self, record: RateLimitRecord, now: int) -> bool:
        if record.blocked_until is not None:
            return now >= record.blocked_until
        return now - record.window_start > self._config.attempt_window_ms
