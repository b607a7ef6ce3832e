from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers and monitoring.

    Exempt from rate limiting by default (see APP_RATE_LIMIT_EXEMPT_PATHS).

    Returns:
        dict: ``{"status": "ok"}``.
    """

    return {"status": "ok"}
