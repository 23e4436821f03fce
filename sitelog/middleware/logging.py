"""
SiteLog Backend: Access Log Middleware
========================================

One line per API request:

    POST /api/reports 201 38.2ms [a1b2c3d4] user=7 from 10.0.0.5

The caller id is whatever the Token Guard stored on `request.state` while
the route ran; unauthenticated requests log `user=-`. Bodies, uploads and
Authorization headers are never logged.
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from sitelog.middleware.request_id import request_id_var

logger = logging.getLogger("sitelog.access")

# Liveness probes hit this every few seconds
UNLOGGED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Writes the access log, tagged with request id and caller id."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        # request.state shares the ASGI scope with the route, so the id set
        # by get_current_user is visible here once call_next returns
        user_id: Optional[int] = getattr(request.state, "user_id", None)
        client_ip = request.client.host if request.client else "unknown"

        logger.log(
            _level_for(response.status_code),
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id_var.get(""),
            "-" if user_id is None else user_id,
            client_ip,
            extra={
                "request_id": request_id_var.get(""),
                "user_id": user_id,
                "status": response.status_code,
                "duration_ms": elapsed_ms,
            },
        )
        return response
