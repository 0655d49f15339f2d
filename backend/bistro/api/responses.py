"""JSON envelopes shared by every route and the app-level error handlers."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bistro.core.constants import ErrorKind
from bistro.core.exceptions import BistroError, ConflictError, NotFoundError
from bistro.core.logging import get_logger
from bistro.core.messages import DEFAULT_LOCALE, message

logger = get_logger(__name__)

_RESOURCE_NAMES: dict[str, dict[str, str]] = {
    "he": {
        "dish": "המנה",
        "category": "הקטגוריה",
        "bundle": "המגש",
        "settings": "ההגדרות",
    },
    "en": {"dish": "Dish", "category": "Category", "bundle": "Bundle", "settings": "Settings"},
}


def request_locale(request: Request) -> str:
    config = getattr(request.app.state, "config", None)
    return config.site.locale if config is not None else DEFAULT_LOCALE


def success_response(
    data: Any = None,
    *,
    meta: Optional[dict[str, Any]] = None,
    message_text: Optional[str] = None,
    status_code: int = 200,
) -> JSONResponse:
    body: dict[str, Any] = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data)
    if meta is not None:
        body["meta"] = meta
    if message_text is not None:
        body["message"] = message_text
    return JSONResponse(status_code=status_code, content=body)


def error_response(
    kind: ErrorKind,
    message_text: str,
    status_code: int = 400,
    details: Any = None,
    **extra: Any,
) -> JSONResponse:
    body: dict[str, Any] = {"error": kind.value, "message": message_text}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


def not_found_message(resource: str, locale: str = DEFAULT_LOCALE) -> str:
    """Localized "<resource> not found" text."""
    names = _RESOURCE_NAMES.get(locale, _RESOURCE_NAMES[DEFAULT_LOCALE])
    return message("not_found", locale, resource=names.get(resource, resource))


def not_found_response(resource: str, locale: str = DEFAULT_LOCALE) -> JSONResponse:
    return error_response(
        ErrorKind.NOT_FOUND,
        not_found_message(resource, locale),
        status_code=404,
    )


def _validation_details(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in errors
    ]


# ------------------------------------------------------------------
# App-level handlers
# ------------------------------------------------------------------


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain and framework errors to JSON error envelopes."""

    @app.exception_handler(RequestValidationError)
    async def _on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(
            ErrorKind.VALIDATION_ERROR,
            message("validation_error", request_locale(request)),
            status_code=400,
            details=_validation_details(list(exc.errors())),
        )

    @app.exception_handler(NotFoundError)
    async def _on_not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return not_found_response(exc.resource, request_locale(request))

    @app.exception_handler(ConflictError)
    async def _on_conflict(request: Request, exc: ConflictError) -> JSONResponse:
        details = {exc.field: exc.message} if exc.field else None
        return error_response(ErrorKind.CONFLICT, exc.message, status_code=409, details=details)

    @app.exception_handler(StarletteHTTPException)
    async def _on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 401:
            kind = ErrorKind.UNAUTHENTICATED
        elif exc.status_code == 404:
            kind = ErrorKind.NOT_FOUND
        elif exc.status_code < 500:
            kind = ErrorKind.VALIDATION_ERROR
        else:
            kind = ErrorKind.SERVER_ERROR
        return error_response(kind, str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(BistroError)
    async def _on_domain_error(request: Request, exc: BistroError) -> JSONResponse:
        logger.error("Unhandled domain error on %s: %s", request.url.path, exc)
        return error_response(
            ErrorKind.SERVER_ERROR,
            message("server_error", request_locale(request)),
            status_code=500,
        )

    @app.exception_handler(Exception)
    async def _on_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return error_response(
            ErrorKind.SERVER_ERROR,
            message("server_error", request_locale(request)),
            status_code=500,
        )
