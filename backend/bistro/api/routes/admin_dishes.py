from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from bistro.api.dependencies import (
    get_bundle_repo,
    get_category_repo,
    get_current_session,
    get_dish_repo,
    get_dispatcher,
    get_locale,
)
from bistro.api.responses import (
    error_response,
    not_found_message,
    not_found_response,
    success_response,
)
from bistro.core.constants import (
    ADMIN_API_PREFIX,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    DishStatus,
    DishType,
    EntityType,
    ErrorKind,
)
from bistro.core.exceptions import ConflictError
from bistro.core.logging import get_logger
from bistro.core.messages import message
from bistro.core.slugify import slugify, unique_slug
from bistro.models.dish import BulkDishAction, BulkDishDelete, DishCreate, DishUpdate
from bistro.repositories.bundle import BundleRepository
from bistro.repositories.category import CategoryRepository
from bistro.repositories.dish import DishRepository
from bistro.services.revalidation import RevalidationDispatcher

logger = get_logger(__name__)

router = APIRouter(
    prefix=f"{ADMIN_API_PREFIX}/dishes",
    tags=["admin-dishes"],
    dependencies=[Depends(get_current_session)],
)

_FALLBACK_SLUG = "dish"
# Columns that may be cleared with an explicit null.
_NULLABLE_FIELDS = frozenset({"category_id", "publish_at"})


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


async def _category_missing(
    category_id: Optional[int], categories: CategoryRepository
) -> bool:
    return category_id is not None and await categories.get_by_id(category_id) is None


def _unknown_category(locale: str) -> JSONResponse:
    return error_response(
        ErrorKind.VALIDATION_ERROR,
        message("validation_error", locale),
        status_code=400,
        details={"category_id": not_found_message("category", locale)},
    )


async def _resolve_slug(
    repo: DishRepository,
    *,
    requested: Optional[str],
    title: str,
    locale: str,
    exclude_id: Optional[int] = None,
) -> str:
    """Use an explicit slug if it is free; otherwise derive a unique one from *title*."""
    if requested:
        if await repo.slug_exists(requested, exclude_id=exclude_id):
            raise ConflictError(message("slug_taken", locale), field="slug")
        return requested
    base = slugify(title) or _FALLBACK_SLUG
    return await unique_slug(base, lambda s: repo.slug_exists(s, exclude_id=exclude_id))


async def _apply_update(
    dish_id: int,
    body: DishUpdate,
    repo: DishRepository,
    categories: CategoryRepository,
    dispatcher: RevalidationDispatcher,
    locale: str,
) -> JSONResponse:
    existing = await repo.get_by_id(dish_id)
    if existing is None:
        return not_found_response("dish", locale)

    values: dict[str, Any] = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key in _NULLABLE_FIELDS
    }
    if await _category_missing(values.get("category_id"), categories):
        return _unknown_category(locale)

    if values.get("slug") and values["slug"] != existing.slug:
        values["slug"] = await _resolve_slug(
            repo, requested=values["slug"], title=existing.title, locale=locale, exclude_id=dish_id
        )
    elif values.get("title") and values["title"] != existing.title and "slug" not in values:
        values["slug"] = await _resolve_slug(
            repo, requested=None, title=values["title"], locale=locale, exclude_id=dish_id
        )

    updated = await repo.update(dish_id, values)
    await dispatcher.revalidate_many(EntityType.DISH, [existing, updated])
    return success_response(updated)


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------


@router.get("")
async def list_dishes(
    status: Optional[DishStatus] = None,
    type: Optional[DishType] = None,
    category_id: Optional[int] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    repo: DishRepository = Depends(get_dish_repo),
) -> JSONResponse:
    """All dishes, drafts included, newest first."""
    dishes, total = await repo.list_filtered(
        status=status.value if status else None,
        dish_type=type.value if type else None,
        category_id=category_id,
        search=search,
        limit=limit,
        offset=(page - 1) * limit,
    )
    meta = {"total": total, "page": page, "limit": limit, "hasMore": page * limit < total}
    return success_response(dishes, meta=meta)


@router.post("")
async def create_dish(
    body: DishCreate,
    repo: DishRepository = Depends(get_dish_repo),
    categories: CategoryRepository = Depends(get_category_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    if await _category_missing(body.category_id, categories):
        return _unknown_category(locale)

    slug = await _resolve_slug(repo, requested=body.slug, title=body.title, locale=locale)
    dish = await repo.add(body, slug)
    logger.info("Dish created: id=%d slug=%s", dish.id, dish.slug)

    await dispatcher.revalidate_many(EntityType.DISH, [dish])
    return success_response(dish, status_code=201)


@router.post("/bulk")
async def bulk_update_dishes(
    body: BulkDishAction,
    repo: DishRepository = Depends(get_dish_repo),
    categories: CategoryRepository = Depends(get_category_repo),
    bundles: BundleRepository = Depends(get_bundle_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Move several dishes into one category, or add them to several bundles."""
    before = await repo.get_many(body.dish_ids)
    dish_ids = [dish.id for dish in before]

    if body.action == "assign_category":
        assert body.category_id is not None
        if await _category_missing(body.category_id, categories):
            return _unknown_category(locale)
        count = await repo.assign_category(dish_ids, body.category_id)
        after = await repo.get_many(dish_ids)
        logger.info("Bulk category assign: %d dish(es) -> category %d", count, body.category_id)
        await dispatcher.revalidate_many(EntityType.DISH, [*before, *after])
        return success_response(
            {"updatedCount": count},
            message_text=message("bulk_category_assigned", locale, count=count),
        )

    changed = await bundles.add_dishes(body.bundle_ids, dish_ids)
    logger.info("Bulk bundle add: %d dish(es) -> %d bundle(s)", len(dish_ids), len(changed))
    await dispatcher.revalidate_many(EntityType.BUNDLE, changed)
    return success_response(
        {"updatedCount": len(changed)},
        message_text=message(
            "bulk_added_to_bundles", locale, dishes=len(dish_ids), bundles=len(changed)
        ),
    )


@router.delete("/bulk")
async def bulk_delete_dishes(
    body: BulkDishDelete,
    repo: DishRepository = Depends(get_dish_repo),
    bundles: BundleRepository = Depends(get_bundle_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Delete several dishes and drop them from every bundle that lists them."""
    doomed = await repo.get_many(body.dish_ids)
    dish_ids = [dish.id for dish in doomed]
    count = await repo.delete_many(dish_ids)
    detached = await bundles.detach_dishes(dish_ids)
    logger.info("Bulk delete: %d dish(es), %d bundle(s) updated", count, len(detached))

    await dispatcher.revalidate_many(EntityType.DISH, doomed)
    await dispatcher.revalidate_many(EntityType.BUNDLE, detached)
    return success_response(
        {"deletedCount": count},
        message_text=message("bulk_deleted", locale, count=count),
    )


@router.get("/{dish_id}")
async def get_dish(
    dish_id: int,
    repo: DishRepository = Depends(get_dish_repo),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    dish = await repo.get_by_id(dish_id)
    if dish is None:
        return not_found_response("dish", locale)
    return success_response(dish)


@router.put("/{dish_id}")
async def replace_dish(
    dish_id: int,
    body: DishUpdate,
    repo: DishRepository = Depends(get_dish_repo),
    categories: CategoryRepository = Depends(get_category_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    return await _apply_update(dish_id, body, repo, categories, dispatcher, locale)


@router.patch("/{dish_id}")
async def patch_dish(
    dish_id: int,
    body: DishUpdate,
    repo: DishRepository = Depends(get_dish_repo),
    categories: CategoryRepository = Depends(get_category_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    return await _apply_update(dish_id, body, repo, categories, dispatcher, locale)


@router.delete("/{dish_id}")
async def delete_dish(
    dish_id: int,
    repo: DishRepository = Depends(get_dish_repo),
    bundles: BundleRepository = Depends(get_bundle_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    dish = await repo.get_by_id(dish_id)
    if dish is None:
        return not_found_response("dish", locale)

    await repo.delete(dish_id)
    detached = await bundles.detach_dishes([dish_id])
    logger.info("Dish deleted: id=%d slug=%s", dish.id, dish.slug)

    await dispatcher.revalidate_many(EntityType.DISH, [dish])
    await dispatcher.revalidate_many(EntityType.BUNDLE, detached)
    return success_response({"id": dish_id})


@router.post("/{dish_id}/publish")
async def publish_dish(
    dish_id: int,
    repo: DishRepository = Depends(get_dish_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Move a draft or scheduled dish to ``PUBLISHED`` immediately."""
    dish = await repo.get_by_id(dish_id)
    if dish is None:
        return not_found_response("dish", locale)

    if dish.status is DishStatus.PUBLISHED:
        return error_response(
            ErrorKind.CONFLICT, message("already_published", locale), status_code=409
        )
    if not dish.title or dish.category_id is None or dish.price <= 0:
        return error_response(
            ErrorKind.VALIDATION_ERROR, message("publish_incomplete", locale), status_code=400
        )

    published = await repo.update(
        dish_id,
        {"status": DishStatus.PUBLISHED, "publish_at": datetime.now(timezone.utc)},
    )
    logger.info("Dish published: id=%d slug=%s", dish.id, dish.slug)

    await dispatcher.revalidate_many(EntityType.DISH, [published])
    return success_response(published)
