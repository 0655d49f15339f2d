from __future__ import annotations

from fastapi import FastAPI

from bistro.api.middleware.auth import AuthGateMiddleware
from bistro.api.middleware.request_log import RequestLoggingMiddleware
from bistro.api.middleware.security_headers import SecurityHeadersMiddleware


def register_middleware(app: FastAPI) -> None:
    """Register the custom middleware on *app*, innermost first.

    Starlette wraps in reverse registration order, and ``create_app`` adds
    CORS after this returns, so the resulting onion is:

        CORS (outermost)
          -> SecurityHeaders
            -> RequestLogging
              -> AuthGate (innermost)
    """
    app.add_middleware(AuthGateMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
