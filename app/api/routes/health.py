from __future__ import annotations

from fastapi import APIRouter, Request

from app.core.rate_limit import get_rate_limiter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems. Reports which window store
    the rate limiter is running on, since a "memory" backend means limits are
    enforced per process only.

    Returns:
        dict: ``status`` ("ok") and ``rate_limit_backend`` ("redis" or "memory").
    """

    return {"status": "ok", "rate_limit_backend": get_rate_limiter(request).backend}


@router.get("/status")
def status() -> dict:
    """Liveness probe kept for clients of the public content API."""

    return {"status": "ok"}
