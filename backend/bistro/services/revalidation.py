from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from bistro.core.constants import DishType, EntityType, ErrorKind
from bistro.core.logging import get_logger
from bistro.models.revalidation import RevalidationResult
from bistro.services.invalidators import CacheInvalidator

logger = get_logger(__name__)

DISHES_ENDPOINT = "/api/public/dishes"
CATEGORIES_ENDPOINT = "/api/public/categories"
BUNDLES_ENDPOINT = "/api/public/bundles"
SETTINGS_ENDPOINT = "/api/public/settings"

# Public page that lists each dish type.
_TYPE_PAGES: dict[str, str] = {
    DishType.RESTAURANT.value: "/menu",
    DishType.CATERING.value: "/catering",
    DishType.EVENT.value: "/events",
}

_SETTINGS_PATHS: tuple[str, ...] = (
    "/",
    "/menu",
    "/restaurant",
    "/catering",
    "/events",
    "/about",
    SETTINGS_ENDPOINT,
)


def _field(entity: Any, name: str) -> Any:
    """Read *name* from a mapping or an attribute-style record."""
    if entity is None:
        return None
    if isinstance(entity, Mapping):
        value = entity.get(name)
    else:
        value = getattr(entity, name, None)
    return getattr(value, "value", value)


def _type_page(value: Any) -> list[str]:
    page = _TYPE_PAGES.get(value) if isinstance(value, str) else None
    return [page] if page else []


def _dish_paths(dish: Any) -> list[str]:
    paths = [DISHES_ENDPOINT]
    slug = _field(dish, "slug")
    if slug:
        paths.append(f"{DISHES_ENDPOINT}/{slug}")
    paths.extend(_type_page(_field(dish, "type")))
    return paths


def _category_paths(category: Any) -> list[str]:
    return [CATEGORIES_ENDPOINT, DISHES_ENDPOINT, *_type_page(_field(category, "type_scope"))]


def _bundle_paths(bundle: Any) -> list[str]:
    paths = [BUNDLES_ENDPOINT, "/catering", "/events"]
    slug = _field(bundle, "slug")
    if slug:
        paths.append(f"{BUNDLES_ENDPOINT}/{slug}")
    return paths


def _settings_paths(_: Any) -> list[str]:
    return list(_SETTINGS_PATHS)


_PATH_TABLE: dict[EntityType, Callable[[Any], list[str]]] = {
    EntityType.DISH: _dish_paths,
    EntityType.CATEGORY: _category_paths,
    EntityType.BUNDLE: _bundle_paths,
    EntityType.SETTINGS: _settings_paths,
}


def paths_for(entity_type: EntityType | str, entity: Any = None) -> list[str]:
    """Return the public paths made stale by a change to *entity*.

    Always non-empty: an entity type that is unknown falls back to the dish
    list, which every public page reads.
    """
    try:
        kind = EntityType(entity_type)
    except ValueError:
        logger.warning("No revalidation mapping for entity type %r", entity_type)
        return [DISHES_ENDPOINT]
    return _PATH_TABLE[kind](entity)


class RevalidationDispatcher:
    """Invalidates cached public responses after a committed admin write.

    Invalidation is best effort: a failing path is logged and reported in
    the results, and never raised to the caller.
    """

    def __init__(self, invalidator: CacheInvalidator) -> None:
        self._invalidator = invalidator

    async def invalidate(self, paths: Iterable[str]) -> list[RevalidationResult]:
        results: list[RevalidationResult] = []
        for path in paths:
            try:
                await self._invalidator.invalidate(path)
            except Exception as exc:
                logger.error(
                    "%s: failed to revalidate path %s: %s",
                    ErrorKind.INVALIDATION_FAILED.value,
                    path,
                    exc,
                )
                results.append(RevalidationResult(path=path, success=False, error=str(exc)))
            else:
                results.append(RevalidationResult(path=path, success=True))
        return results

    async def revalidate(
        self, entity_type: EntityType | str, entity: Any = None
    ) -> list[RevalidationResult]:
        """Compute the stale paths for *entity* and invalidate each one."""
        paths = paths_for(entity_type, entity)
        results = await self.invalidate(paths)
        failed = sum(1 for r in results if not r.success)
        logger.info(
            "Revalidated %s: %d path(s), %d failed",
            getattr(entity_type, "value", entity_type),
            len(results),
            failed,
        )
        return results

    async def revalidate_many(
        self, entity_type: EntityType | str, entities: Iterable[Any]
    ) -> list[RevalidationResult]:
        """Revalidate several states at once, such as the before and after of an edit.

        ``None`` entries are skipped and each stale path is invalidated once.
        """
        paths: list[str] = []
        for entity in entities:
            if entity is None:
                continue
            for path in paths_for(entity_type, entity):
                if path not in paths:
                    paths.append(path)
        if not paths:
            return []
        return await self.invalidate(paths)
