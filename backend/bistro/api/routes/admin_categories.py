from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from bistro.api.dependencies import (
    get_category_repo,
    get_current_session,
    get_dish_repo,
    get_dispatcher,
    get_locale,
)
from bistro.api.responses import error_response, not_found_response, success_response
from bistro.core.constants import ADMIN_API_PREFIX, EntityType, ErrorKind
from bistro.core.exceptions import ConflictError
from bistro.core.logging import get_logger
from bistro.core.messages import message
from bistro.core.slugify import slugify, unique_slug
from bistro.models.category import CategoryCreate, CategoryUpdate, ReorderRequest
from bistro.repositories.category import CategoryRepository
from bistro.repositories.dish import DishRepository
from bistro.services.revalidation import RevalidationDispatcher

logger = get_logger(__name__)

router = APIRouter(
    prefix=f"{ADMIN_API_PREFIX}/categories",
    tags=["admin-categories"],
    dependencies=[Depends(get_current_session)],
)


@router.get("")
async def list_categories(
    repo: CategoryRepository = Depends(get_category_repo),
) -> JSONResponse:
    return success_response(await repo.list_all())


@router.post("")
async def create_category(
    body: CategoryCreate,
    repo: CategoryRepository = Depends(get_category_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    if body.slug:
        if await repo.slug_exists(body.slug):
            raise ConflictError(message("slug_taken", locale), field="slug")
        slug = body.slug
    else:
        slug = await unique_slug(slugify(body.name, max_length=50) or "category", repo.slug_exists)

    category = await repo.add(body, slug)
    logger.info("Category created: id=%d slug=%s", category.id, category.slug)

    await dispatcher.revalidate_many(EntityType.CATEGORY, [category])
    return success_response(category, status_code=201)


@router.post("/reorder")
async def reorder_categories(
    body: ReorderRequest,
    repo: CategoryRepository = Depends(get_category_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Rewrite the display order of several categories in one transaction."""
    for item in body.categories:
        if await repo.get_by_id(item.id) is None:
            return not_found_response("category", locale)

    categories = await repo.reorder(body.categories)
    await dispatcher.revalidate_many(EntityType.CATEGORY, categories)
    return success_response(categories)


@router.put("/{category_id}")
async def update_category(
    category_id: int,
    body: CategoryUpdate,
    repo: CategoryRepository = Depends(get_category_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    existing = await repo.get_by_id(category_id)
    if existing is None:
        return not_found_response("category", locale)

    values: dict[str, Any] = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key == "type_scope"
    }
    new_slug = values.get("slug")
    if new_slug and new_slug != existing.slug:
        if await repo.slug_exists(new_slug, exclude_id=category_id):
            raise ConflictError(message("slug_taken", locale), field="slug")

    updated = await repo.update(category_id, values)
    await dispatcher.revalidate_many(EntityType.CATEGORY, [existing, updated])
    return success_response(updated)


@router.delete("/{category_id}")
async def delete_category(
    category_id: int,
    repo: CategoryRepository = Depends(get_category_repo),
    dishes: DishRepository = Depends(get_dish_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    category = await repo.get_by_id(category_id)
    if category is None:
        return not_found_response("category", locale)

    in_use = await dishes.count_by_category(category_id)
    if in_use:
        return error_response(
            ErrorKind.CONFLICT,
            message("category_in_use", locale, count=in_use),
            status_code=409,
            details={"dishCount": in_use},
        )

    await repo.delete(category_id)
    logger.info("Category deleted: id=%d slug=%s", category.id, category.slug)

    await dispatcher.revalidate_many(EntityType.CATEGORY, [category])
    return success_response({"id": category_id})
