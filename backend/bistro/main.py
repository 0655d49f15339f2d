from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bistro.api.middleware import register_middleware
from bistro.api.responses import register_exception_handlers
from bistro.api.routes.admin_bundles import router as admin_bundles_router
from bistro.api.routes.admin_categories import router as admin_categories_router
from bistro.api.routes.admin_dishes import router as admin_dishes_router
from bistro.api.routes.admin_settings import router as admin_settings_router
from bistro.api.routes.auth import router as auth_router
from bistro.api.routes.public import router as public_router
from bistro.core.cache import ResponseCache
from bistro.core.config import Config
from bistro.core.constants import DEFAULT_CORS_ORIGINS, RATE_LIMIT_CLEANUP_INTERVAL_SECONDS
from bistro.core.crypto import Clock
from bistro.core.database import Database
from bistro.core.logging import get_logger, setup_logging
from bistro.services.auth import AuthService
from bistro.services.invalidators import CacheInvalidator, CdnPurgeInvalidator, CompositeInvalidator
from bistro.services.revalidation import RevalidationDispatcher

logger = get_logger(__name__)


async def _sweep_login_attempts(auth_service: AuthService, interval_seconds: int) -> None:
    """Periodically drop rate-limit records whose window and block have passed."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = auth_service.cleanup_expired_attempts()
        except Exception:
            logger.exception("Login attempt cleanup failed")
            continue
        if removed:
            logger.debug("Login attempt cleanup removed %d record(s)", removed)


def _cors_origins(config: Optional[Config]) -> list[str]:
    """CORS must be configured before the lifespan runs, so read it early."""
    if config is not None:
        return config.web_security.cors_allowed_origins
    cfg_path = Path("config.json")
    if not cfg_path.exists():
        return list(DEFAULT_CORS_ORIGINS)
    try:
        raw = json.loads(cfg_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read CORS origins from %s: %s", cfg_path, exc)
        return list(DEFAULT_CORS_ORIGINS)
    return raw.get("web_security", {}).get("cors_allowed_origins") or list(DEFAULT_CORS_ORIGINS)


def create_app(
    config: Optional[Config] = None,
    *,
    clock: Optional[Clock] = None,
    log_dir: Optional[str] = "logs",
) -> FastAPI:
    """Build the application.

    *config* and *clock* are injectable for tests; when *config* is omitted
    it is loaded from ``config.json`` and ``.env`` at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # -- Startup ---------------------------------------------------------
        setup_logging(log_dir)
        logger.info("Starting bistro backend")

        cfg = config if config is not None else Config.from_file()
        cfg.require_secrets()

        db = await Database.connect(cfg.db_path)
        applied = await db.run_migrations()
        if applied:
            logger.info("Applied %d migration(s)", applied)

        auth_service = AuthService.from_config(cfg, clock=clock)

        # -- Cache invalidation ----------------------------------------------
        response_cache = ResponseCache(
            ttl_seconds=cfg.cache.ttl_seconds,
            max_variants=cfg.cache.max_variants,
            enabled=cfg.cache.enabled,
        )
        invalidators: list[CacheInvalidator] = [response_cache]
        cdn_purge: Optional[CdnPurgeInvalidator] = None
        if cfg.cache.purge_url:
            cdn_purge = CdnPurgeInvalidator(
                cfg.cache.purge_url, timeout_seconds=cfg.cache.purge_timeout_seconds
            )
            await cdn_purge.start()
            invalidators.append(cdn_purge)
        revalidation = RevalidationDispatcher(CompositeInvalidator(invalidators))

        # -- Bind to app.state -----------------------------------------------
        app.state.config = cfg
        app.state.db = db
        app.state.auth_service = auth_service
        app.state.response_cache = response_cache
        app.state.revalidation = revalidation

        sweeper = asyncio.create_task(
            _sweep_login_attempts(auth_service, RATE_LIMIT_CLEANUP_INTERVAL_SECONDS)
        )

        logger.info("Startup complete")
        yield

        # -- Shutdown --------------------------------------------------------
        logger.info("Shutting down bistro backend")
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        if cdn_purge is not None:
            await cdn_purge.close()
        await db.close()
        logger.info("Shutdown complete")

    app = FastAPI(title="bistro", version="0.1.0", lifespan=lifespan)

    register_exception_handlers(app)

    # Custom middleware (all resolve dependencies lazily from app.state)
    register_middleware(app)

    # CORS last so it wraps everything else
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(config),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # -- Health endpoint (ungated) -------------------------------------------

    @app.get("/api/health")
    async def health_check() -> JSONResponse:
        return JSONResponse(
            content={
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    # -- Routers -------------------------------------------------------------
    app.include_router(auth_router)
    app.include_router(admin_dishes_router)
    app.include_router(admin_categories_router)
    app.include_router(admin_bundles_router)
    app.include_router(admin_settings_router)
    app.include_router(public_router)

    return app


app = create_app()
