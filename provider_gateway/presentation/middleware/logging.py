"""Request/response logging middleware with timing."""

import time
from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from provider_gateway.core.metrics import record_http_request

logger = structlog.get_logger(__name__)


def _endpoint(request: Request) -> str:
    # Use the route template so path parameters do not explode label cardinality
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs request completion and duration, and records HTTP metrics."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        method = request.method
        log = logger.bind(method=method, path=request.url.path)

        log.info("request_started")

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            record_http_request(method, _endpoint(request), 500, duration)
            log.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(duration * 1000, 2),
            )
            raise

        duration = time.perf_counter() - start_time
        record_http_request(method, _endpoint(request), response.status_code, duration)
        log.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        return response
