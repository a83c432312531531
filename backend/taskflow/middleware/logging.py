"""Structured request logging."""

import time
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from taskflow.middleware.request_id import get_request_id

logger = structlog.get_logger()

WORKSPACE_HEADER = "X-Workspace-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Binds request context to structlog and logs each request's outcome."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        context = {
            "request_id": get_request_id(request),
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }
        workspace_id = request.headers.get(WORKSPACE_HEADER)
        if workspace_id:
            context["workspace_id"] = workspace_id
        structlog.contextvars.bind_contextvars(**context)
        logger.info("request_started")

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.exception(
                "request_failed",
                error=str(exc),
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.info("request_completed", status_code=response.status_code, duration_ms=duration_ms)
        response.headers["X-Process-Time"] = str(duration_ms)
        return response
