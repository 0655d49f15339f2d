"""Cryptographic and time primitives consumed by the auth components.

The session codec and rate limiter only talk to these small interfaces, so a
host can swap in another primitive provider (or a fake clock in tests)
without touching the token or lockout logic.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int:
        """Current wall-clock time in epoch milliseconds."""
        ...


class Signer(Protocol):
    def sign(self, payload: bytes) -> str:
        """Return the hex MAC of *payload*."""
        ...

    def verify(self, payload: bytes, signature: str) -> bool:
        """Constant-time check of *signature* against *payload*."""
        ...


class RandomSource(Protocol):
    def random_bytes(self, n: int) -> bytes:
        ...


class SystemClock:
    """Wall clock backed by :func:`time.time`."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class HmacSha256Signer:
    """HMAC-SHA256 signer keyed with a server-held secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("HMAC secret must not be empty")
        self._key = secret.encode("utf-8")

    def sign(self, payload: bytes) -> str:
        return hmac.new(self._key, payload, hashlib.sha256).hexdigest()

    def verify(self, payload: bytes, signature: str) -> bool:
        expected = self.sign(payload)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


class SystemRandom:
    """Cryptographically secure randomness from the OS."""

    def random_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)
