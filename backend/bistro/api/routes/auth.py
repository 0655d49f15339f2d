from __future__ import annotations

import math
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from bistro.api.dependencies import get_auth_service, get_config, get_locale
from bistro.api.responses import error_response
from bistro.core.config import Config
from bistro.core.constants import AUTH_API_PREFIX, SESSION_COOKIE_NAME, ErrorKind
from bistro.core.logging import get_logger
from bistro.core.messages import format_time_remaining, message
from bistro.core.rate_limiter import LoginRateLimiter
from bistro.models.auth import LoginResponse, VerifyResponse
from bistro.services.auth import AuthService

logger = get_logger(__name__)

router = APIRouter(prefix=AUTH_API_PREFIX, tags=["auth"])


# ------------------------------------------------------------------
# Cookie helpers
# ------------------------------------------------------------------


def _set_session_cookie(response: JSONResponse, token: str, config: Config) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=config.auth.session_timeout_hours * 3600,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.web_security.https_enabled,
    )


def _clear_session_cookie(response: JSONResponse, config: Config) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.web_security.https_enabled,
    )


async def _read_password(request: Request) -> Optional[str]:
    """Pull ``password`` out of the JSON body; anything unusable is ``None``."""
    try:
        body: Any = await request.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    password = body.get("password")
    return password if isinstance(password, str) else None


# ------------------------------------------------------------------
# Routes
# ------------------------------------------------------------------


@router.post("/login")
async def login(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    config: Config = Depends(get_config),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Exchange the admin password for a session cookie."""
    identifier = LoginRateLimiter.identify(request, config.web_security)
    password = await _read_password(request)
    outcome = auth_service.login(identifier, password)

    if outcome.error is ErrorKind.RATE_LIMITED:
        retry_after_ms = outcome.retry_after_ms or 0
        response = error_response(
            ErrorKind.RATE_LIMITED,
            message(
                "rate_limited",
                locale,
                time_remaining=format_time_remaining(retry_after_ms, locale),
            ),
            status_code=429,
        )
        response.headers["Retry-After"] = str(max(1, math.ceil(retry_after_ms / 1000)))
        return response

    if outcome.error is ErrorKind.VALIDATION_ERROR:
        return error_response(
            ErrorKind.VALIDATION_ERROR,
            message("password_required", locale),
            status_code=400,
            remainingAttempts=outcome.remaining_attempts,
        )

    if not outcome.success or outcome.token is None:
        remaining = outcome.remaining_attempts or 0
        text = (
            message("invalid_password", locale, remaining=remaining)
            if remaining > 0
            else message("invalid_password_locked", locale)
        )
        return error_response(
            ErrorKind.INVALID_CREDENTIALS,
            text,
            status_code=401,
            remainingAttempts=remaining,
        )

    body = LoginResponse(success=True, message=message("login_success", locale))
    response = JSONResponse(content=body.model_dump())
    _set_session_cookie(response, outcome.token, config)
    return response


@router.post("/logout")
async def logout(
    config: Config = Depends(get_config),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Clear the session cookie.  Succeeds with or without a session."""
    body = LoginResponse(success=True, message=message("logout_success", locale))
    response = JSONResponse(content=body.model_dump())
    _clear_session_cookie(response, config)
    return response


@router.get("/verify")
async def verify(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    locale: str = Depends(get_locale),
) -> JSONResponse:
    """Report whether the caller's cookie holds a live session."""
    session = auth_service.validate_session(request.cookies.get(SESSION_COOKIE_NAME))
    if session is None:
        return error_response(
            ErrorKind.UNAUTHENTICATED,
            message("session_missing", locale),
            status_code=401,
            authenticated=False,
        )

    body = VerifyResponse(
        authenticated=True,
        message=message("session_active", locale),
        expires_at=session.expires_at,
        expiring_soon=auth_service.is_expiring_soon(session),
    )
    return JSONResponse(content=body.model_dump(by_alias=True))
