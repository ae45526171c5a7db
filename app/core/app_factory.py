"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
rate limiter) so tests can build an app around an injected limiter.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.adapters.rate_limit.factory import create_rate_limiter
from app.api.routes import health_router, rate_limit_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.rate_limiter import RateLimiter


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Shutdown: release the limiter's Redis client."""
    yield
    await app.state.rate_limiter.close()


def create_app(rate_limiter: RateLimiter | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to use; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so the backend selection below is logged as configured
    configure_logging(settings.log)

    app = FastAPI(
        title="Content API",
        description=(
            "Public content API of the CMS. Every endpoint is rate limited per "
            "client IP; workspace-scoped routes get a higher ceiling. Throttled "
            "requests receive HTTP 429 with X-RateLimit-* and Retry-After headers."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.rate_limiter = rate_limiter or create_rate_limiter(settings)

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(rate_limit_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
