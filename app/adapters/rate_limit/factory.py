"""Factory for selecting a rate limiter strategy once, at startup."""

from __future__ import annotations

from enum import Enum

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.sliding_window import InMemorySlidingWindowRateLimiter
from app.adapters.rate_limit.token_bucket import InMemoryTokenBucketRateLimiter
from app.core.config import AppSettings
from app.core.errors import ValidationAppError


class RateLimitStrategy(str, Enum):
    TOKEN_BUCKET = "token-bucket"
    SLIDING_WINDOW = "sliding-window"


_STRATEGIES: dict[RateLimitStrategy, type[AbstractRateLimiter]] = {
    RateLimitStrategy.TOKEN_BUCKET: InMemoryTokenBucketRateLimiter,
    RateLimitStrategy.SLIDING_WINDOW: InMemorySlidingWindowRateLimiter,
}


def create_rate_limiter(
    strategy: str | RateLimitStrategy,
    *,
    limit: int,
    window_seconds: float,
    **kwargs,
) -> AbstractRateLimiter:
    """Instantiate the limiter implementing ``strategy``.

    Args:
        strategy: ``"token-bucket"`` or ``"sliding-window"``.
        limit: Maximum admitted requests per window.
        window_seconds: Window (and background tick) length in seconds.
        **kwargs: Forwarded to the concrete limiter (e.g. ``clock``, ``autostart``).

    Returns:
        AbstractRateLimiter: Started limiter instance.

    Raises:
        ValidationAppError: If the strategy is unknown.
        ValueError: If limit or window_seconds are invalid.
    """
    try:
        resolved = RateLimitStrategy(str(getattr(strategy, "value", strategy)).strip().lower())
    except ValueError:
        supported = ", ".join(s.value for s in RateLimitStrategy)
        raise ValidationAppError(
            code="rate_limit_unknown_strategy",
            message=f"Unknown rate limit strategy: '{strategy}'. Supported strategies: {supported}",
            details={"strategy": str(strategy)},
        ) from None

    limiter_cls = _STRATEGIES[resolved]
    return limiter_cls(limit=limit, window_seconds=window_seconds, **kwargs)


def create_rate_limiter_from_settings(app_settings: AppSettings, **kwargs) -> AbstractRateLimiter:
    """Build the limiter described by the ``APP_RATE_LIMIT_*`` settings."""
    return create_rate_limiter(
        app_settings.rate_limit_strategy,
        limit=app_settings.rate_limit_requests_per_min,
        window_seconds=app_settings.rate_limit_window_seconds,
        **kwargs,
    )
