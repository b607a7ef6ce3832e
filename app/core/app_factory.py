"""Application factory for FastAPI app.

Centralizes app construction (limiter, middleware, handlers, routers) so the
rate limiter is an object owned by the app instance and handed explicitly to
the middleware, rather than a module-level global.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.factory import create_rate_limiter_from_settings
from app.api.routes import health_router, rate_limit_router
from app.core.config import AppSettings, settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import (
    create_rate_limit_middleware,
    request_id_middleware,
    request_logging_middleware,
)
from app.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


def _build_lifespan(limiter: AbstractRateLimiter | None):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if limiter is not None and not limiter.closed:
            limiter.close()

    return lifespan


def create_app(
    app_settings: AppSettings | None = None,
    *,
    limiter: AbstractRateLimiter | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings override; defaults to the global settings.
        limiter: Pre-built limiter (tests inject one with a fake clock).
            Ignored when rate limiting is disabled.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    cfg = app_settings or settings.app

    if cfg.rate_limit_enabled:
        if limiter is None:
            limiter = create_rate_limiter_from_settings(cfg)
    else:
        limiter = None
        logger.info("rate_limit.disabled")

    app = FastAPI(
        title="Request Throttle API",
        description=(
            "HTTP service guarded by a per-client in-memory rate limiter "
            "(sliding window or token bucket). Throttled requests receive "
            "HTTP 429 with error code RATE_LIMIT_EXCEEDED."
        ),
        version="0.1.0",
        debug=cfg.debug,
        lifespan=_build_lifespan(limiter),
    )
    app.state.rate_limiter = limiter

    # Middleware: the last registered runs first, so request ids are set
    # before access logging and rate limiting see the request.
    if limiter is not None:
        app.middleware("http")(
            create_rate_limit_middleware(
                limiter,
                trust_proxy_headers=cfg.rate_limit_trust_proxy_headers,
                exempt_paths=cfg.rate_limit_exempt_paths,
                request_timeout_seconds=cfg.request_timeout_seconds,
            )
        )
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limit_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(
        app,
        rate_limited=limiter is not None,
        exempt_paths=cfg.rate_limit_exempt_paths,
    )

    return app
