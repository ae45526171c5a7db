from fastapi import APIRouter, Depends, Request

from app.core.config import settings
from app.core.openapi import RATE_LIMIT_TAG
from app.core.rate_limit import enforce_rate_limit, get_rate_limiter
from app.schemas.rate_limit import RateLimitStatusResponse

router = APIRouter(tags=[RATE_LIMIT_TAG])


def _status(request: Request, policy: str) -> RateLimitStatusResponse:
    decision = getattr(request.state, "rate_limit", None)
    return RateLimitStatusResponse(
        enabled=settings.app.rate_limit_enabled,
        backend=get_rate_limiter(request).backend,
        policy=policy,
        limit=decision.limit if decision else None,
        remaining=decision.remaining if decision else None,
        reset=decision.reset_at if decision else None,
    )


@router.get(
    "/rate-limit",
    response_model=RateLimitStatusResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def anonymous_rate_limit(request: Request) -> RateLimitStatusResponse:
    """Report the anonymous (IP-keyed) decision for this request.

    The call itself counts against the caller's budget.
    """
    return _status(request, "anonymous")


@router.get(
    "/{workspace_id}/rate-limit",
    response_model=RateLimitStatusResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def workspace_rate_limit(workspace_id: str, request: Request) -> RateLimitStatusResponse:
    """Report the workspace-scoped decision for this request.

    Args:
        workspace_id: Tenant identifier; raises the ceiling for this caller.
    """
    return _status(request, "workspace")
