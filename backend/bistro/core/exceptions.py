from __future__ import annotations

from typing import Any, Optional

from bistro.core.constants import ErrorKind


class BistroError(Exception):
    """Base exception for the bistro project."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(self.message)


class ConfigError(BistroError):
    """Raised when configuration loading or validation fails."""


class DatabaseError(BistroError):
    """Raised when a database operation fails."""


class NotFoundError(BistroError):
    """Raised when a requested record does not exist."""

    def __init__(self, resource: str, identifier: Any = None) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ConflictError(BistroError):
    """Raised when a write would violate a uniqueness or reference rule."""

    def __init__(self, message: str = "", field: Optional[str] = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidationError(BistroError):
    """Raised by a cache invalidator when a single path could not be purged."""

    def __init__(self, path: str, message: str = "") -> None:
        self.path = path
        super().__init__(message or f"Failed to invalidate {path}")


class TokenError(BistroError):
    """Base class for session-token rejections.

    The concrete subclass is diagnostic only: callers outside the codec see
    a single ``invalid`` outcome.
    """

    kind: ErrorKind = ErrorKind.TOKEN_MALFORMED


class TokenMalformed(TokenError):
    kind = ErrorKind.TOKEN_MALFORMED


class TokenSignatureMismatch(TokenError):
    kind = ErrorKind.TOKEN_SIGNATURE_MISMATCH


class TokenExpired(TokenError):
    kind = ErrorKind.TOKEN_EXPIRED
