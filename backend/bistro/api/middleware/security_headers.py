"""Security-related HTTP response headers."""

from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_STATIC_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds hardening headers; admin responses are additionally marked uncacheable."""

    async def dispatch(self, request: Request, call_next: Callable[..., Response]) -> Response:
        response = await call_next(request)

        for name, value in _STATIC_HEADERS.items():
            response.headers[name] = value

        path = request.url.path
        if path.startswith("/admin") or path.startswith("/api/admin"):
            response.headers["Cache-Control"] = "no-store"

        config = getattr(request.app.state, "config", None)
        if config and config.web_security.https_enabled:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response
