"""
Provider Gateway - Main Application Entry Point

Resilience layer in front of personal-finance data providers: circuit
breaking per provider and region, deadline enforcement, and authenticated,
idempotent webhook intake.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Response
from fastapi.responses import RedirectResponse

from provider_gateway import __version__
from provider_gateway.core.config import settings
from provider_gateway.core.dependencies import get_idempotency_store
from provider_gateway.core.logging import setup_logging
from provider_gateway.core.metrics import get_metrics, get_metrics_content_type
from provider_gateway.infrastructure.database import db_manager
from provider_gateway.presentation.api import api_router
from provider_gateway.presentation.middleware import (
    LoggingMiddleware,
    RequestContextMiddleware,
    error_handler_middleware,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Set up logging
    - Initialize the health store connection pool
    - Release the idempotency store and pool on shutdown
    """
    setup_logging(settings.log_level, settings.log_format)
    if not db_manager.is_initialized:
        db_manager.init()

    logger = structlog.get_logger(__name__)
    logger.info("application_started", version=__version__)

    yield

    await get_idempotency_store().close()
    await db_manager.close()
    logger.info("application_stopped")


app = FastAPI(
    title="Provider Gateway",
    description="Circuit breaking, deadlines and webhook intake for financial data providers",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestContextMiddleware)

error_handler_middleware(app)

app.include_router(api_router)


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type(),
    )


@app.get("/", include_in_schema=False)
async def root():
    """Redirect to API documentation."""

    return RedirectResponse(url="/docs")


def serve() -> None:
    """Run the service with uvicorn (``provider-gateway`` console script)."""
    import uvicorn

    uvicorn.run(
        "provider_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,  # Use our structured logging
    )


if __name__ == "__main__":
    serve()
