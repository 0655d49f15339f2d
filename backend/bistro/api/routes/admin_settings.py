from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from bistro.api.dependencies import (
    get_current_session,
    get_dispatcher,
    get_locale,
    get_settings_repo,
)
from bistro.api.responses import error_response, success_response
from bistro.core.constants import ADMIN_API_PREFIX, SETTINGS_SECTIONS, EntityType, ErrorKind
from bistro.core.messages import message
from bistro.models.settings import SiteSettings
from bistro.repositories.settings import SettingsRepository
from bistro.services.revalidation import RevalidationDispatcher

router = APIRouter(
    prefix=f"{ADMIN_API_PREFIX}/settings",
    tags=["admin-settings"],
    dependencies=[Depends(get_current_session)],
)


@router.get("")
async def get_settings(
    repo: SettingsRepository = Depends(get_settings_repo),
) -> JSONResponse:
    return success_response(await repo.get())


async def _save(
    patch: dict[str, Any],
    repo: SettingsRepository,
    dispatcher: RevalidationDispatcher,
    locale: str,
) -> JSONResponse:
    invalid = [s for s in SETTINGS_SECTIONS if s in patch and not isinstance(patch[s], dict)]
    if invalid:
        return error_response(
            ErrorKind.VALIDATION_ERROR,
            message("validation_error", locale),
            status_code=400,
            details={section: "expected an object" for section in invalid},
        )

    settings = await repo.merge(patch)
    await dispatcher.revalidate(EntityType.SETTINGS, settings)
    return success_response(settings, message_text=message("settings_updated", locale))


@router.put("")
async def replace_settings(
    body: SiteSettings,
    repo: SettingsRepository = Depends(get_settings_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Merge every section of *body* into the stored document."""
    patch = body.model_dump(exclude={"updated_at"}, exclude_unset=True)
    return await _save(patch, repo, dispatcher, locale)


@router.patch("")
async def patch_settings(
    body: dict[str, Any] = Body(...),
    repo: SettingsRepository = Depends(get_settings_repo),
    dispatcher: RevalidationDispatcher = Depends(get_dispatcher),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Merge only the sections present in *body*; unknown keys are ignored."""
    return await _save(body, repo, dispatcher, locale)
