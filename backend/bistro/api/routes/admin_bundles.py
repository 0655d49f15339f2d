"""Catering bundles: fixed-price packages built from existing dishes."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from bistro.api.dependencies import (
    get_bundle_repo,
    get_current_session,
    get_dish_repo,
    get_dispatcher,
    get_locale,
)
from bistro.api.responses import error_response, not_found_response, success_response
from bistro.core.constants import (
    ADMIN_API_PREFIX,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DishStatus,
    EntityType,
    ErrorKind,
)
from bistro.core.exceptions import ConflictError
from bistro.core.logging import get_logger
from bistro.core.messages import message
from bistro.core.slugify import slugify, unique_slug
from bistro.models.bundle import BundleCreate, BundleUpdate, check_persons
from bistro.repositories.bundle import BundleRepository
from bistro.repositories.dish import DishRepository
from bistro.services.revalidation import RevalidationDispatcher

logger = get_logger(__name__)

router = APIRouter(
    prefix=f"{ADMIN_API_PREFIX}/bundles",
    tags=["admin-bundles"],
    dependencies=[Depends(get_current_session)],
)

_FALLBACK_SLUG = "bundle"
_NULLABLE_FIELDS = frozenset({"max_persons", "publish_at"})


async def _unknown_dishes(dish_ids: list[int], dishes: DishRepository) -> list[int]:
    found = {dish.id for dish in await dishes.get_many(dish_ids)}
    return [d for d in dish_ids if d not in found]


def _invalid(locale: str, field: str, text: str) -> JSONResponse:
    return error_response(
        ErrorKind.VALIDATION_ERROR,
        message("validation_error", locale),
        status_code=400,
        details={field: text},
    )


async def _resolve_slug(
    repo: BundleRepository,
    *,
    requested: Optional[str],
    title: str,
    locale: str,
    exclude_id: Optional[int] = None,
) -> str:
    if requested:
        if await repo.slug_exists(requested, exclude_id=exclude_id):
            raise ConflictError(message("slug_taken", locale), field="slug")
        return requested
    base = slugify(title) or _FALLBACK_SLUG
    return await unique_slug(base, lambda s: repo.slug_exists(s, exclude_id=exclude_id))


async def _apply_update(
    bundle_id: int,
    body: BundleUpdate,
    repo: BundleRepository,
    dishes: DishRepository,
    dispatcher: RevalidationDispatcher,
    locale: str,
) -> JSONResponse:
    existing = await repo.get_by_id(bundle_id)
    if existing is None:
        return not_found_response("bundle", locale)

    values: dict[str, Any] = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key in _NULLABLE_FIELDS
    }

    try:
        check_persons(
            values.get("min_persons", existing.min_persons),
            values.get("max_persons", existing.max_persons),
        )
    except ValueError:
        return _invalid(locale, "max_persons", message("persons_range", locale))

    missing = await _unknown_dishes(values.get("dish_ids", []), dishes)
    if missing:
        return _invalid(locale, "dish_ids", message("unknown_dishes", locale, ids=missing))

    if values.get("slug") and values["slug"] != existing.slug:
        values["slug"] = await _resolve_slug(
            repo, requested=values["slug"], title=existing.title, locale=locale, exclude_id=bundle_id
        )
    elif values.get("title") and values["title"] != existing.title and "slug" not in values:
        values["slug"] = await _resolve_slug(
            repo, requested=None, title=values["title"], locale=locale, exclude_id=bundle_id
        )

    updated = await repo.update(bundle_id, values)
    await dispatcher.revalidate_many(EntityType.BUNDLE, [existing, updated])
    return success_response(updated)


@router.get("")
async def list_bundles(
    status: Optional[DishStatus] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    repo: BundleRepository = Depends(get_bundle_repo),
) -> JSONResponse:
    bundles, total = await repo.list_filtered(
        status=status.value if status else None,
        search=search,
        limit=limit,
        offset=(page - 1) * limit,
    )
    meta = {"total": total, "page": page, "limit": limit, "hasMore": page * limit < total}
    return success_response(bundles, meta=meta)


@router.post("")
async def create_bundle(
    body: BundleCreate,
    repo: BundleRepository = Depends(get_bundle_repo),
    dishes: DishRepository = Depends(get_dish_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    missing = await _unknown_dishes(body.dish_ids, dishes)
    if missing:
        return _invalid(locale, "dish_ids", message("unknown_dishes", locale, ids=missing))

    slug = await _resolve_slug(repo, requested=body.slug, title=body.title, locale=locale)
    bundle = await repo.add(body, slug)
    logger.info("Bundle created: id=%d slug=%s", bundle.id, bundle.slug)

    await dispatcher.revalidate_many(EntityType.BUNDLE, [bundle])
    return success_response(bundle, status_code=201)


@router.get("/{bundle_id}")
async def get_bundle(
    bundle_id: int,
    repo: BundleRepository = Depends(get_bundle_repo),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    bundle = await repo.get_by_id(bundle_id)
    if bundle is None:
        return not_found_response("bundle", locale)
    return success_response(bundle)


@router.put("/{bundle_id}")
async def replace_bundle(
    bundle_id: int,
    body: BundleUpdate,
    repo: BundleRepository = Depends(get_bundle_repo),
    dishes: DishRepository = Depends(get_dish_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    return await _apply_update(bundle_id, body, repo, dishes, dispatcher, locale)


@router.patch("/{bundle_id}")
async def patch_bundle(
    bundle_id: int,
    body: BundleUpdate,
    repo: BundleRepository = Depends(get_bundle_repo),
    dishes: DishRepository = Depends(get_dish_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    return await _apply_update(bundle_id, body, repo, dishes, dispatcher, locale)


@router.delete("/{bundle_id}")
async def delete_bundle(
    bundle_id: int,
    repo: BundleRepository = Depends(get_bundle_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    bundle = await repo.get_by_id(bundle_id)
    if bundle is None:
        return not_found_response("bundle", locale)

    await repo.delete(bundle_id)
    logger.info("Bundle deleted: id=%d slug=%s", bundle.id, bundle.slug)

    await dispatcher.revalidate_many(EntityType.BUNDLE, [bundle])
    return success_response({"id": bundle_id, "deleted": True})
