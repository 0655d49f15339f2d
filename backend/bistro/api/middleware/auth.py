from __future__ import annotations

from typing import Callable
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from bistro.api.responses import error_response, request_locale
from bistro.core.constants import (
    AUTH_API_PREFIX,
    LOGIN_PAGE_PATH,
    PROTECTED_PREFIXES,
    SESSION_COOKIE_NAME,
    ErrorKind,
)
from bistro.core.logging import get_logger, token_prefix
from bistro.core.messages import message

logger = get_logger(__name__)

# Reachable without a session even though they sit under a protected prefix.
_EXEMPT_PATHS: tuple[str, ...] = (
    LOGIN_PAGE_PATH,
    AUTH_API_PREFIX,
)


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix + "/")


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Admits requests under ``/admin`` and ``/api/admin`` only with a valid session.

    The session token is read from the ``admin_session`` cookie and checked
    with ``AuthService.validate_session``.  Denied API requests get a ``401``
    JSON envelope; denied page requests are redirected to the login page with
    the original path in ``?redirect=``.  An admitted request carries the
    decoded session on ``request.state.session``.

    The ``AuthService`` is resolved lazily from ``request.app.state`` so the
    middleware can be registered before the lifespan context has run.
    """

    async def dispatch(self, request: Request, call_next: Callable[..., Response]) -> Response:
        path = request.url.path

        if not self.is_protected(path):
            return await call_next(request)

        auth_service = getattr(request.app.state, "auth_service", None)
        if auth_service is None:
            return JSONResponse(status_code=503, content={"detail": "Service initializing"})

        token = request.cookies.get(SESSION_COOKIE_NAME)
        session = auth_service.validate_session(token) if token else None
        if session is None:
            logger.debug(
                "Auth gate denied %s (token=%s)",
                path,
                token_prefix(token),
                extra={"event": "gate_denied", "path": path},
            )
            return self._deny(request, path)

        request.state.session = session
        return await call_next(request)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def is_protected(path: str) -> bool:
        if any(_matches(path, exempt) for exempt in _EXEMPT_PATHS):
            return False
        return any(_matches(path, prefix) for prefix in PROTECTED_PREFIXES)

    @staticmethod
    def _deny(request: Request, path: str) -> Response:
        if path.startswith("/api/"):
            return error_response(
                ErrorKind.UNAUTHENTICATED,
                message("unauthenticated", request_locale(request)),
                status_code=401,
            )
        target = f"{LOGIN_PAGE_PATH}?redirect={quote(path, safe='/')}"
        return RedirectResponse(url=target, status_code=307)
