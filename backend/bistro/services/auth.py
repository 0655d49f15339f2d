from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bistro.core.config import Config
from bistro.core.constants import ErrorKind
from bistro.core.crypto import Clock, HmacSha256Signer, SystemClock
from bistro.core.logging import get_logger
from bistro.core.rate_limiter import AttemptStore, LoginRateLimiter
from bistro.models.auth import SessionData
from bistro.services.credentials import CredentialVerifier
from bistro.services.session_codec import SessionTokenCodec

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoginOutcome:
    success: bool
    token: Optional[str] = None
    error: Optional[ErrorKind] = None
    remaining_attempts: Optional[int] = None
    retry_after_ms: Optional[int] = None
    reset_at: Optional[int] = None


class AuthService:
    """Admin login flow: rate-limit gate, credential check, token issue.

    There are no user accounts; a single admin credential unlocks the back
    office.  Sessions are stateless signed tokens, so logout only needs the
    client to drop its cookie.
    """

    def __init__(
        self,
        verifier: CredentialVerifier,
        codec: SessionTokenCodec,
        limiter: LoginRateLimiter,
        clock: Clock | None = None,
    ) -> None:
        self._verifier = verifier
        self._codec = codec
        self._limiter = limiter
        self._clock = clock or SystemClock()

    @classmethod
    def from_config(
        cls,
        config: Config,
        clock: Clock | None = None,
        store: AttemptStore | None = None,
    ) -> AuthService:
        clock = clock or SystemClock()
        verifier = CredentialVerifier(
            secret=config.env.admin_secret,
            password_hash=config.env.admin_password_hash,
        )
        codec = SessionTokenCodec(
            signer=HmacSha256Signer(config.env.signing_secret),
            session_duration_ms=config.auth.session_timeout_ms,
            expiring_soon_ms=config.auth.expiring_soon_ms,
            clock=clock,
        )
        limiter = LoginRateLimiter(config.auth, store=store, clock=clock)
        return cls(verifier, codec, limiter, clock=clock)

    @property
    def codec(self) -> SessionTokenCodec:
        return self._codec

    @property
    def limiter(self) -> LoginRateLimiter:
        return self._limiter

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, identifier: str, password: Optional[str]) -> LoginOutcome:
        status = self._limiter.check(identifier)
        if not status.allowed:
            retry_after = max(0, (status.blocked_until or status.reset_at) - self._clock.now_ms())
            logger.warning(
                "Login attempt while locked out: id=%s",
                identifier,
                extra={"event": "login_blocked", "client_id": identifier},
            )
            return LoginOutcome(
                success=False,
                error=ErrorKind.RATE_LIMITED,
                retry_after_ms=retry_after,
                reset_at=status.reset_at,
            )

        if not password:
            status = self._limiter.record_failure(identifier)
            return LoginOutcome(
                success=False,
                error=ErrorKind.VALIDATION_ERROR,
                remaining_attempts=status.remaining_attempts,
            )

        if not self._verifier.verify(password):
            status = self._limiter.record_failure(identifier)
            logger.warning(
                "Failed login attempt: id=%s remaining=%d",
                identifier,
                status.remaining_attempts,
                extra={"event": "login_failed", "client_id": identifier},
            )
            return LoginOutcome(
                success=False,
                error=ErrorKind.INVALID_CREDENTIALS,
                remaining_attempts=status.remaining_attempts,
            )

        self._limiter.reset(identifier)
        logger.info(
            "Successful login: id=%s",
            identifier,
            extra={"event": "login_succeeded", "client_id": identifier},
        )
        return LoginOutcome(success=True, token=self._codec.issue())

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def validate_session(self, token: Optional[str]) -> Optional[SessionData]:
        return self._codec.validate(token)

    def is_expiring_soon(self, session: SessionData) -> bool:
        return self._codec.is_expiring_soon(session)

    def cleanup_expired_attempts(self) -> int:
        return self._limiter.cleanup_expired()
