from __future__ import annotations

import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bistro.core.logging import get_logger

logger = get_logger("api.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log: method, path, status code and duration of each request.

    Query strings are left out since admin redirects may carry paths the
    operator typed.
    """

    async def dispatch(self, request: Request, call_next: Callable[..., Response]) -> Response:
        started = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 1),
            },
        )
        return response
