"""Read-only public API served through the in-process response cache.

Every successful payload is stored under its path and a variant built from
the query parameters the route recognizes, so unknown parameters never
create new entries.  Admin writes invalidate those paths and the next read
repopulates from storage.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from bistro.api.dependencies import (
    get_bundle_repo,
    get_category_repo,
    get_dish_repo,
    get_locale,
    get_response_cache,
    get_settings_repo,
)
from bistro.api.responses import not_found_response
from bistro.core.cache import ResponseCache
from bistro.core.constants import MAX_PAGE_SIZE, DishStatus, DishType
from bistro.repositories.bundle import BundleRepository
from bistro.repositories.category import CategoryRepository
from bistro.repositories.dish import DishRepository
from bistro.repositories.settings import SettingsRepository

router = APIRouter(prefix="/api/public", tags=["public"])


def cache_variant(**params: Any) -> str:
    """Canonical cache variant for the recognized, non-empty *params*."""
    parts = [
        f"{key}={getattr(value, 'value', value)}"
        for key, value in sorted(params.items())
        if value is not None
    ]
    return "&".join(parts)


async def _cached(
    request: Request,
    cache: ResponseCache,
    load: Callable[[], Awaitable[Optional[Any]]],
    variant: str = "",
) -> Optional[JSONResponse]:
    """Serve from *cache* or call *load*; ``None`` means *load* found nothing."""
    path = request.url.path
    payload = cache.get(path, variant)
    if payload is not None:
        return JSONResponse(content=payload, headers={"X-Cache": "HIT"})

    generation = cache.generation(path)
    data = await load()
    if data is None:
        return None
    payload = {"success": True, "data": jsonable_encoder(data)}
    cache.set(path, payload, variant, generation=generation)
    return JSONResponse(content=payload, headers={"X-Cache": "MISS"})


@router.get("/dishes")
async def list_dishes(
    request: Request,
    type: Optional[DishType] = None,
    category_id: Optional[int] = None,
    repo: DishRepository = Depends(get_dish_repo),
    cache: ResponseCache = Depends(get_response_cache),
) -> JSONResponse:
    """Published dishes only."""

    async def load() -> list[Any]:
        dishes, _ = await repo.list_filtered(
            status=DishStatus.PUBLISHED.value,
            dish_type=type.value if type else None,
            category_id=category_id,
            limit=MAX_PAGE_SIZE,
        )
        return dishes

    variant = cache_variant(type=type, category_id=category_id)
    response = await _cached(request, cache, load, variant)
    assert response is not None
    return response


@router.get("/dishes/{slug}")
async def get_dish(
    slug: str,
    request: Request,
    repo: DishRepository = Depends(get_dish_repo),
    cache: ResponseCache = Depends(get_response_cache),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    response = await _cached(
        request, cache, lambda: repo.get_by_slug(slug, published_only=True)
    )
    return response or not_found_response("dish", locale)


@router.get("/bundles")
async def list_bundles(
    request: Request,
    repo: BundleRepository = Depends(get_bundle_repo),
    cache: ResponseCache = Depends(get_response_cache),
) -> JSONResponse:
    """Published catering bundles, newest first."""

    async def load() -> list[Any]:
        bundles, _ = await repo.list_filtered(
            status=DishStatus.PUBLISHED.value, limit=MAX_PAGE_SIZE
        )
        return bundles

    response = await _cached(request, cache, load)
    assert response is not None
    return response


@router.get("/bundles/{slug}")
async def get_bundle(
    slug: str,
    request: Request,
    repo: BundleRepository = Depends(get_bundle_repo),
    cache: ResponseCache = Depends(get_response_cache),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    response = await _cached(
        request, cache, lambda: repo.get_by_slug(slug, published_only=True)
    )
    return response or not_found_response("bundle", locale)


@router.get("/categories")
async def list_categories(
    request: Request,
    repo: CategoryRepository = Depends(get_category_repo),
    cache: ResponseCache = Depends(get_response_cache),
) -> JSONResponse:
    response = await _cached(request, cache, repo.list_all)
    assert response is not None
    return response


@router.get("/settings")
async def get_settings(
    request: Request,
    repo: SettingsRepository = Depends(get_settings_repo),
    cache: ResponseCache = Depends(get_response_cache),
) -> JSONResponse:
    response = await _cached(request, cache, repo.get)
    assert response is not None
    return response
