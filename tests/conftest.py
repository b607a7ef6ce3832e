"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV=testing before settings are imported so developer .env
files never leak into test runs.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_RATE_LIMIT_STRATEGY", "sliding-window")
os.environ.setdefault("APP_RATE_LIMIT_REQUESTS_PER_MIN", "60")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.sliding_window import InMemorySlidingWindowRateLimiter
from app.adapters.rate_limit.token_bucket import InMemoryTokenBucketRateLimiter


@pytest.fixture
def clock() -> Mock:
    """Manually driven monotonic clock starting at t=1000s."""
    return Mock(return_value=1000.0)


@pytest.fixture
def sliding_limiter(clock: Mock):
    """Sliding window limiter (3 per 60s) without a background thread."""
    limiter = InMemorySlidingWindowRateLimiter(
        limit=3, window_seconds=60, clock=clock, autostart=False
    )
    yield limiter
    if not limiter.closed:
        limiter.close()


@pytest.fixture
def token_limiter(clock: Mock):
    """Token bucket limiter (3 per 60s) without a background thread."""
    limiter = InMemoryTokenBucketRateLimiter(
        limit=3, window_seconds=60, clock=clock, autostart=False
    )
    yield limiter
    if not limiter.closed:
        limiter.close()
