"""HTTP middleware: request correlation, access logging and rate limiting.

Every middleware here is a plain ``async (request, call_next)`` callable
registered with ``app.middleware("http")``. Collaborators such as the rate
limiter are passed in when the middleware is built, never read from module
globals.

Usage:
    app.middleware("http")(create_rate_limit_middleware(limiter))
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from typing import Awaitable, Callable, Iterable

from fastapi import Request, Response

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.core.config import settings
from app.core.context import RequestContext
from app.core.errors import RateLimitAppError
from app.core.exception_handlers import app_error_handler
from app.core.logging import clear_request_id, get_request_id, set_request_id

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]
HttpMiddleware = Callable[[Request, CallNext], Awaitable[Response]]

RATE_LIMIT_EXCEEDED_CODE = "RATE_LIMIT_EXCEEDED"
RATE_LIMIT_EXCEEDED_MESSAGE = "Too many requests. Please try again later."


async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides an X-Request-ID header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID is
    generated. The ID is stored in contextvars for log correlation and echoed
    back in the response headers together with the total duration.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with X-Request-ID and
            X-Request-Duration-ms headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def request_logging_middleware(request: Request, call_next: CallNext) -> Response:
    """Emit one ``http_request`` log record per request/response pair."""

    start = time.perf_counter()
    response: Response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000

    logger.info(
        "http_request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "remote_ip": request.client.host if request.client else None,
            "duration_ms": round(duration_ms, 2),
            "request_id": get_request_id(),
        },
    )
    return response


def resolve_client_ip(request: Request, *, trust_proxy_headers: bool = False) -> str:
    """Resolve the caller's IP address used as the rate limit key.

    Args:
        request: Incoming request.
        trust_proxy_headers: Honour X-Forwarded-For / X-Real-IP. Enable only
            behind a proxy that overwrites these headers.

    Returns:
        str: Client IP, or ``"unknown"`` when no address is available.
    """

    if trust_proxy_headers:
        forwarded_for = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _is_exempt(path: str, exempt_paths: tuple[str, ...]) -> bool:
    return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in exempt_paths)


def create_rate_limit_middleware(
    limiter: AbstractRateLimiter,
    *,
    trust_proxy_headers: bool = False,
    exempt_paths: Iterable[str] = (),
    request_timeout_seconds: float | None = None,
) -> HttpMiddleware:
    """Build an HTTP middleware enforcing ``limiter`` per client IP.

    Denied requests are short-circuited with HTTP 429 and the
    ``RATE_LIMIT_EXCEEDED`` error body; downstream handlers are not invoked.
    Admitted requests pass through unmodified.

    Args:
        limiter: Limiter instance owned by the application.
        trust_proxy_headers: Forwarded to ``resolve_client_ip``.
        exempt_paths: Path prefixes that bypass the limiter.
        request_timeout_seconds: Deadline attached to each request context.

    Returns:
        Middleware callable for ``app.middleware("http")``.
    """

    exempt = tuple(exempt_paths)

    async def rate_limit_middleware(request: Request, call_next: CallNext) -> Response:
        if _is_exempt(request.url.path, exempt):
            return await call_next(request)

        ctx = RequestContext.with_timeout(request_timeout_seconds)
        request.state.context = ctx

        key = resolve_client_ip(request, trust_proxy_headers=trust_proxy_headers)
        if limiter.allow_context(ctx, key):
            return await call_next(request)

        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_hash": _hash_limiter_key(key),
                "strategy": limiter.strategy,
                "limit": limiter.limit,
                "window_s": limiter.window_seconds,
                "context_cancelled": ctx.is_cancelled(),
                "request_path": request.url.path,
            },
        )
        return await app_error_handler(
            request,
            RateLimitAppError(
                code=RATE_LIMIT_EXCEEDED_CODE,
                message=RATE_LIMIT_EXCEEDED_MESSAGE,
            ),
        )

    return rate_limit_middleware
