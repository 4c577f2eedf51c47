"""Error handling middleware and exception handlers."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from provider_gateway.domain.exceptions import (
    DomainException,
    HealthStoreUnavailableException,
    InvalidWebhookSignatureException,
    OperationTimeoutException,
    ProviderUnavailableException,
    WebhookNotConfiguredException,
)
from .request_context import get_request_id

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": code,
            "message": message,
            "request_id": get_request_id(),
        },
    )


def error_handler_middleware(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI app.

    Maps domain exceptions to appropriate HTTP responses.
    """

    @app.exception_handler(InvalidWebhookSignatureException)
    async def invalid_signature_handler(
        request: Request,
        exc: InvalidWebhookSignatureException,
    ) -> JSONResponse:
        """Handle webhook deliveries that failed verification."""
        return _error_response(401, exc.code, "Webhook verification failed")

    @app.exception_handler(WebhookNotConfiguredException)
    async def webhook_not_configured_handler(
        request: Request,
        exc: WebhookNotConfiguredException,
    ) -> JSONResponse:
        """Handle webhooks for providers without a shared secret."""
        return _error_response(404, exc.code, exc.message)

    @app.exception_handler(ProviderUnavailableException)
    async def provider_unavailable_handler(
        request: Request,
        exc: ProviderUnavailableException,
    ) -> JSONResponse:
        """Handle calls rejected by an open circuit."""
        return _error_response(503, exc.code, exc.message)

    @app.exception_handler(HealthStoreUnavailableException)
    async def health_store_unavailable_handler(
        request: Request,
        exc: HealthStoreUnavailableException,
    ) -> JSONResponse:
        """Handle an unreachable provider health store."""
        logger.error("health_store_unavailable", message=exc.message)
        return _error_response(
            503,
            exc.code,
            "Service temporarily unavailable. Please try again.",
        )

    @app.exception_handler(OperationTimeoutException)
    async def timeout_handler(
        request: Request,
        exc: OperationTimeoutException,
    ) -> JSONResponse:
        """Handle operations that exceeded their deadline."""
        logger.error(
            "operation_timeout",
            operation_name=exc.operation_name,
            timeout_ms=exc.timeout_ms,
        )
        return _error_response(504, exc.code, exc.message)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(
        request: Request,
        exc: DomainException,
    ) -> JSONResponse:
        """Handle generic domain exceptions."""
        logger.warning(
            "domain_exception",
            code=exc.code,
            message=exc.message,
        )
        return _error_response(400, exc.code, exc.message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(
            "unhandled_exception",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return _error_response(500, "INTERNAL_ERROR", "An unexpected error occurred.")
