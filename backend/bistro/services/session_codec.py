from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from bistro.core.constants import ErrorKind, MAX_SESSION_TOKEN_LENGTH, SESSION_NONCE_BYTES
from bistro.core.crypto import Clock, RandomSource, Signer, SystemClock, SystemRandom
from bistro.core.exceptions import (
    TokenError,
    TokenExpired,
    TokenMalformed,
    TokenSignatureMismatch,
)
from bistro.core.logging import get_logger
from bistro.models.auth import SessionData

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenCheck:
    """Outcome of inspecting a token.

    ``session`` is set only for a valid token.  ``reason`` records why a
    token was rejected and must not leave the server.
    """

    session: Optional[SessionData] = None
    reason: Optional[ErrorKind] = None

    @property
    def valid(self) -> bool:
        return self.session is not None


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(token: str) -> bytes:
    padded = token + "=" * (-len(token) % 4)
    raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    # Reject non-canonical encodings so every character of the token matters.
    if _b64encode(raw) != token:
        raise ValueError("non-canonical base64")
    return raw


class SessionTokenCodec:
    """Issues and validates self-contained, HMAC-signed session tokens.

    A token is ``base64url(JSON({"data": SessionData, "signature": hex}))``
    where the signature is computed over the canonical JSON of ``data``.
    No server-side state is kept; validity is a pure function of the token,
    the signing key and the clock.

    A token is rejected from its ``expiresAt`` instant onwards.
    """

    def __init__(
        self,
        signer: Signer,
        session_duration_ms: int,
        expiring_soon_ms: int,
        clock: Clock | None = None,
        random_source: RandomSource | None = None,
    ) -> None:
        self._signer = signer
        self._duration_ms = session_duration_ms
        self._expiring_soon_ms = expiring_soon_ms
        self._clock = clock or SystemClock()
        self._random = random_source or SystemRandom()

    @property
    def session_duration_ms(self) -> int:
        return self._duration_ms

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def issue(self) -> str:
        now = self._clock.now_ms()
        data = SessionData(
            issued_at=now,
            expires_at=now + self._duration_ms,
            nonce=self._random.random_bytes(SESSION_NONCE_BYTES).hex(),
        )
        payload = data.canonical_json()
        envelope = {
            "data": json.loads(payload),
            "signature": self._signer.sign(payload.encode("utf-8")),
        }
        return _b64encode(json.dumps(envelope, separators=(",", ":")).encode("utf-8"))

    def validate(self, token: str | None) -> Optional[SessionData]:
        """Return the session for a valid token, ``None`` otherwise."""
        return self.check(token).session

    def check(self, token: str | None) -> TokenCheck:
        try:
            session = self.decode(token)
        except TokenError as exc:
            logger.debug("Session token rejected: %s", exc.kind.value)
            return TokenCheck(reason=exc.kind)
        return TokenCheck(session=session)

    def decode(self, token: str | None) -> SessionData:
        """Decode and verify *token*, raising a :class:`TokenError` subclass."""
        if not token or not isinstance(token, str):
            raise TokenMalformed("empty token")
        if len(token) > MAX_SESSION_TOKEN_LENGTH:
            raise TokenMalformed("token too long")

        try:
            envelope: Any = json.loads(_b64decode(token).decode("utf-8"))
        except (ValueError, binascii.Error, UnicodeDecodeError, RecursionError) as exc:
            raise TokenMalformed("undecodable token") from exc

        if not isinstance(envelope, dict):
            raise TokenMalformed("token envelope is not an object")
        signature = envelope.get("signature")
        if not isinstance(signature, str):
            raise TokenMalformed("missing signature")

        try:
            data = SessionData.model_validate(envelope.get("data"))
        except ValidationError as exc:
            raise TokenMalformed("invalid session data") from exc

        if not self._signer.verify(data.canonical_json().encode("utf-8"), signature):
            raise TokenSignatureMismatch("signature mismatch")

        if self._clock.now_ms() >= data.expires_at:
            raise TokenExpired("session expired")

        return data

    def is_expiring_soon(self, session: SessionData) -> bool:
        return session.expires_at - self._clock.now_ms() < self._expiring_soon_ms
