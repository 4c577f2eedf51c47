"""Request context middleware for tracing."""

import uuid
from contextvars import ContextVar
from typing import Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Context variable for request ID
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_var.get()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that sets up request context.

    Generates or extracts a request ID, binds it into structlog's context
    so every log line of the request carries it, and echoes it in the
    response headers.
    """

    HEADER_NAME = "X-Request-ID"
    MAX_LENGTH = 128

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(self.HEADER_NAME)
        # Oversized ids are replaced, not logged
        if not request_id or len(request_id) > self.MAX_LENGTH:
            request_id = str(uuid.uuid4())

        token = request_id_var.set(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)

        try:
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
            request_id_var.reset(token)
