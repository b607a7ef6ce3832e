"""Rate limiting adapters.

This package provides a small abstraction layer so the HTTP layer can depend
on one four-operation contract (allow / allow_context / reset / close) while
the strategy, token bucket or sliding window, is picked from configuration.
"""

from app.adapters.rate_limit.base import AbstractRateLimiter, CancellationSignal
from app.adapters.rate_limit.factory import (
    RateLimitStrategy,
    create_rate_limiter,
    create_rate_limiter_from_settings,
)
from app.adapters.rate_limit.sliding_window import InMemorySlidingWindowRateLimiter
from app.adapters.rate_limit.token_bucket import InMemoryTokenBucketRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "CancellationSignal",
    "InMemorySlidingWindowRateLimiter",
    "InMemoryTokenBucketRateLimiter",
    "RateLimitStrategy",
    "create_rate_limiter",
    "create_rate_limiter_from_settings",
]
