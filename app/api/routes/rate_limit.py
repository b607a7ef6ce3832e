from __future__ import annotations

from fastapi import APIRouter, Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.schemas.rate_limit import RateLimitStatusResponse

router = APIRouter(tags=["Rate Limit"])


@router.get("/rate-limit", response_model=RateLimitStatusResponse)
def rate_limit_status(request: Request) -> RateLimitStatusResponse:
    """Report the active limiter configuration and how many clients it tracks.

    Returns:
        RateLimitStatusResponse: ``enabled=False`` when no limiter is installed.
    """

    limiter: AbstractRateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return RateLimitStatusResponse(enabled=False)

    return RateLimitStatusResponse(
        enabled=True,
        strategy=limiter.strategy,
        limit=limiter.limit,
        window_seconds=limiter.window_seconds,
        tracked_keys=limiter.key_count(),
    )
