from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from bistro.core.constants import (
    DEFAULT_ATTEMPT_WINDOW_MINUTES,
    DEFAULT_CACHE_MAX_VARIANTS,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CORS_ORIGINS,
    DEFAULT_DB_PATH,
    DEFAULT_EXPIRING_SOON_MINUTES,
    DEFAULT_LOCKOUT_MINUTES,
    DEFAULT_MAX_LOGIN_ATTEMPTS,
    DEFAULT_PREVIEW_HOST_SUFFIX,
    DEFAULT_PURGE_TIMEOUT_SECONDS,
    DEFAULT_SESSION_TIMEOUT_HOURS,
)
from bistro.core.exceptions import ConfigError


class AuthConfig(BaseModel):
    session_timeout_hours: int = Field(default=DEFAULT_SESSION_TIMEOUT_HOURS, gt=0)
    expiring_soon_minutes: int = Field(default=DEFAULT_EXPIRING_SOON_MINUTES, ge=0)
    max_login_attempts: int = Field(default=DEFAULT_MAX_LOGIN_ATTEMPTS, gt=0)
    attempt_window_minutes: int = Field(default=DEFAULT_ATTEMPT_WINDOW_MINUTES, gt=0)
    lockout_minutes: int = Field(default=DEFAULT_LOCKOUT_MINUTES, gt=0)

    @property
    def session_timeout_ms(self) -> int:
        return self.session_timeout_hours * 3600 * 1000

    @property
    def expiring_soon_ms(self) -> int:
        return self.expiring_soon_minutes * 60 * 1000

    @property
    def attempt_window_ms(self) -> int:
        return self.attempt_window_minutes * 60 * 1000

    @property
    def lockout_ms(self) -> int:
        return self.lockout_minutes * 60 * 1000


class WebSecurityConfig(BaseModel):
    https_enabled: bool = True
    trusted_proxies: list[str] = Field(default_factory=list)
    preview_host_suffix: str = DEFAULT_PREVIEW_HOST_SUFFIX
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS)
    )


class CacheConfig(BaseModel):
    enabled: bool = True
    ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS, ge=0)
    max_variants: int = Field(default=DEFAULT_CACHE_MAX_VARIANTS, ge=1)
    purge_url: str = ""
    purge_timeout_seconds: int = DEFAULT_PURGE_TIMEOUT_SECONDS


class SiteConfig(BaseModel):
    locale: str = "he"


class EnvSettings(BaseSettings):
    """Loads secrets from .env file or environment variables."""

    admin_secret: str = ""
    admin_password_hash: str = ""
    session_secret: str = ""
    app_env: str = "production"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def signing_secret(self) -> str:
        """Secret used to sign session tokens.

        Falls back to the admin secret when no dedicated one is configured.
        """
        return self.session_secret or self.admin_secret

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() in ("development", "dev", "local")


class Config:
    """Application configuration loaded from config.json + .env."""

    _instance: Optional[Config] = None

    def __init__(
        self,
        auth: Optional[AuthConfig] = None,
        web_security: Optional[WebSecurityConfig] = None,
        cache: Optional[CacheConfig] = None,
        site: Optional[SiteConfig] = None,
        env: Optional[EnvSettings] = None,
        config_path: Optional[Path] = None,
        db_path: str = DEFAULT_DB_PATH,
    ) -> None:
        self.auth = auth or AuthConfig()
        self.web_security = web_security or WebSecurityConfig()
        self.cache = cache or CacheConfig()
        self.site = site or SiteConfig()
        self.env = env if env is not None else EnvSettings()
        self.config_path = config_path
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Singleton access
    # ------------------------------------------------------------------

    @classmethod
    def get_instance(cls) -> Config:
        if cls._instance is None:
            raise ConfigError("Config has not been loaded. Call Config.from_file() first.")
        return cls._instance

    @classmethod
    def from_file(
        cls,
        config_path: Path | str = "config.json",
        env_path: Path | str = ".env",
    ) -> Config:
        config_path = Path(config_path)
        env_path = Path(env_path)

        load_dotenv(dotenv_path=env_path, override=True)
        env = EnvSettings()

        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc

        try:
            instance = cls(
                auth=AuthConfig(**raw.get("auth", {})),
                web_security=WebSecurityConfig(**raw.get("web_security", {})),
                cache=CacheConfig(**raw.get("cache", {})),
                site=SiteConfig(**raw.get("site", {})),
                env=env,
                config_path=config_path,
                db_path=raw.get("db_path", DEFAULT_DB_PATH),
            )
        except Exception as exc:
            raise ConfigError(f"Config validation failed: {exc}") from exc

        cls._instance = instance
        return instance

    def require_secrets(self) -> None:
        """Fail fast when the admin gate cannot work."""
        if not (self.env.admin_secret or self.env.admin_password_hash):
            raise ConfigError("ADMIN_SECRET or ADMIN_PASSWORD_HASH must be configured.")
        if not self.env.signing_secret:
            raise ConfigError("SESSION_SECRET (or ADMIN_SECRET) must be configured.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "auth": self.auth.model_dump(),
            "web_security": self.web_security.model_dump(),
            "cache": self.cache.model_dump(),
            "site": self.site.model_dump(),
            "db_path": self.db_path,
        }
