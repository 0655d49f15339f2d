from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    RATE_LIMITED = "RATE_LIMITED"
    TOKEN_MALFORMED = "TOKEN_MALFORMED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_SIGNATURE_MISMATCH = "TOKEN_SIGNATURE_MISMATCH"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALIDATION_FAILED = "INVALIDATION_FAILED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    SERVER_ERROR = "SERVER_ERROR"


class EntityType(str, Enum):
    DISH = "dish"
    CATEGORY = "category"
    BUNDLE = "bundle"
    SETTINGS = "settings"


class DishType(str, Enum):
    RESTAURANT = "RESTAURANT"
    CATERING = "CATERING"
    EVENT = "EVENT"


class DishStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    SCHEDULED = "SCHEDULED"


class Availability(str, Enum):
    AVAILABLE = "AVAILABLE"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    SEASONAL = "SEASONAL"


# ── Security: Session ────────────────────────────────────────────────
SESSION_COOKIE_NAME: str = "admin_session"
DEFAULT_SESSION_TIMEOUT_HOURS: int = 12
DEFAULT_EXPIRING_SOON_MINUTES: int = 30
SESSION_NONCE_BYTES: int = 16
MAX_SESSION_TOKEN_LENGTH: int = 1024

# ── Security: Login rate limiting ────────────────────────────────────
DEFAULT_MAX_LOGIN_ATTEMPTS: int = 5
DEFAULT_ATTEMPT_WINDOW_MINUTES: int = 10
DEFAULT_LOCKOUT_MINUTES: int = 15
RATE_LIMIT_CLEANUP_INTERVAL_SECONDS: int = 300  # 5 minutes
DEFAULT_PREVIEW_HOST_SUFFIX: str = "vercel.app"

# ── Security: Password hashing ───────────────────────────────────────
PASSWORD_HASH_ALGORITHM: str = "sha256"
PASSWORD_HASH_ITERATIONS: int = 600_000

# ── Security: CORS ────────────────────────────────────────────────────
DEFAULT_CORS_ORIGINS: list[str] = ["http://localhost:3000"]

# ── Routing ───────────────────────────────────────────────────────────
LOGIN_PAGE_PATH: str = "/admin/login"
PROTECTED_PREFIXES: tuple[str, ...] = ("/admin", "/api/admin")
ADMIN_API_PREFIX: str = "/api/admin"
AUTH_API_PREFIX: str = "/api/admin/auth"

# ── Public cache ──────────────────────────────────────────────────────
DEFAULT_CACHE_TTL_SECONDS: int = 300  # 5 minutes
DEFAULT_PURGE_TIMEOUT_SECONDS: int = 10
DEFAULT_CACHE_MAX_VARIANTS: int = 32

# ── Database ──────────────────────────────────────────────────────────
DEFAULT_DB_PATH: str = "bistro.db"
DEFAULT_BUSY_TIMEOUT_MS: int = 5000

# ── Content ───────────────────────────────────────────────────────────
SLUG_MAX_LENGTH: int = 100
DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100
DEFAULT_BUNDLE_MIN_PERSONS: int = 10
SETTINGS_SECTIONS: tuple[str, ...] = ("brand", "contact", "location", "hours", "legal", "ui")

# Logging
LOG_MAX_SIZE_BYTES: int = 50 * 1024 * 1024  # 50 MB
LOG_BACKUP_COUNT: int = 10
