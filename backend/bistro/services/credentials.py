from __future__ import annotations

import hashlib
import hmac
import os

from bistro.core.constants import PASSWORD_HASH_ALGORITHM, PASSWORD_HASH_ITERATIONS
from bistro.core.logging import get_logger

logger = get_logger(__name__)

_SALT_LENGTH = 32
# Both sides are digested under this key so the comparison always runs over
# equal-length inputs, whatever the password lengths are.
_DIGEST_KEY = b"admin-check"


def hash_password(password: str, salt: bytes | None = None) -> str:
    """Return ``salt_hex:hash_hex`` using PBKDF2-HMAC-SHA256."""
    if salt is None:
        salt = os.urandom(_SALT_LENGTH)
    dk = hashlib.pbkdf2_hmac(
        PASSWORD_HASH_ALGORITHM,
        password.encode("utf-8"),
        salt,
        PASSWORD_HASH_ITERATIONS,
    )
    return f"{salt.hex()}:{dk.hex()}"


class CredentialVerifier:
    """Checks a submitted password against the single admin credential.

    The credential is either a plaintext secret or a PBKDF2 ``salt:hash``
    string; the hash wins when both are configured.  Verification never
    raises: anything unusable yields ``False``.
    """

    def __init__(self, secret: str = "", password_hash: str = "") -> None:
        self._secret = secret
        self._password_hash = password_hash

    def verify(self, password: str | None) -> bool:
        if not password or not isinstance(password, str):
            return False
        if self._password_hash:
            return self._verify_hash(password, self._password_hash)
        if not self._secret:
            return False
        expected = hmac.new(_DIGEST_KEY, self._secret.encode("utf-8"), hashlib.sha256).digest()
        provided = hmac.new(_DIGEST_KEY, password.encode("utf-8"), hashlib.sha256).digest()
        return hmac.compare_digest(expected, provided)

    @staticmethod
    def _verify_hash(password: str, stored_hash: str) -> bool:
        try:
            salt_hex, expected_hex = stored_hash.split(":", 1)
            salt = bytes.fromhex(salt_hex)
            expected = bytes.fromhex(expected_hex)
        except (ValueError, IndexError):
            logger.error("Configured admin password hash is malformed")
            return False
        dk = hashlib.pbkdf2_hmac(
            PASSWORD_HASH_ALGORITHM,
            password.encode("utf-8"),
            salt,
            PASSWORD_HASH_ITERATIONS,
        )
        return hmac.compare_digest(dk, expected)
