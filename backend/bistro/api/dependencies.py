from __future__ import annotations

from fastapi import Request
from starlette.exceptions import HTTPException

from bistro.core.cache import ResponseCache
from bistro.core.config import Config
from bistro.core.database import Database
from bistro.models.auth import SessionData
from bistro.repositories.bundle import BundleRepository
from bistro.repositories.category import CategoryRepository
from bistro.repositories.dish import DishRepository
from bistro.repositories.settings import SettingsRepository
from bistro.services.auth import AuthService
from bistro.services.revalidation import RevalidationDispatcher


def get_config(request: Request) -> Config:
    """Provide the application ``Config`` instance."""
    return request.app.state.config


def get_locale(request: Request) -> str:
    return request.app.state.config.site.locale


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_current_session(request: Request) -> SessionData:
    """Return the session admitted by ``AuthGateMiddleware`` or raise 401."""
    session: SessionData | None = getattr(request.state, "session", None)
    if session is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


def get_response_cache(request: Request) -> ResponseCache:
    return request.app.state.response_cache


def get_dispatcher(request: Request) -> RevalidationDispatcher:
    """Provide the ``RevalidationDispatcher`` used after committed writes."""
    return request.app.state.revalidation


def get_dish_repo(request: Request) -> DishRepository:
    return DishRepository(request.app.state.db)


def get_category_repo(request: Request) -> CategoryRepository:
    return CategoryRepository(request.app.state.db)


def get_bundle_repo(request: Request) -> BundleRepository:
    return BundleRepository(request.app.state.db)


def get_settings_repo(request: Request) -> SettingsRepository:
    return SettingsRepository(request.app.state.db)
