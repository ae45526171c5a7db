"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- RateLimitExceededError → 429 with the rate limit body and headers
- Unexpected Exception → generic 500 (safety net)

Store failures never reach a handler: the limiter fails open instead.
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import RateLimitExceededError
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    """Render an over-limit caller as HTTP 429.

    Body: ``{"error", "limit", "remaining", "reset"}``. Headers carry the
    same numbers as ``X-RateLimit-*`` plus ``Retry-After``.

    Args:
        request: FastAPI request object.
        exc: RateLimitExceededError carrying limit/remaining/reset details.

    Returns:
        JSONResponse with status 429.
    """
    details = exc.details or {}
    limit = details.get("limit", 0)
    remaining = details.get("remaining", 0)
    reset = details.get("reset", 0)

    headers = {"Retry-After": str(int(details.get("retry_after", 0)))}
    if settings.app.rate_limit_include_headers:
        headers["X-RateLimit-Limit"] = str(limit)
        headers["X-RateLimit-Remaining"] = str(remaining)
        headers["X-RateLimit-Reset"] = str(reset)

    return JSONResponse(
        status_code=429,
        content={
            "error": exc.message,
            "limit": limit,
            "remaining": remaining,
            "reset": reset,
        },
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Specific handlers are registered before the general fallback.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(RateLimitExceededError)(rate_limit_exceeded_handler)
    app.exception_handler(Exception)(general_exception_handler)
