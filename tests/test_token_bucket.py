"""Unit tests for the in-memory token bucket limiter."""

from __future__ import annotations

import threading
import time
from unittest.mock import Mock

import pytest

from app.adapters.rate_limit.token_bucket import InMemoryTokenBucketRateLimiter
from app.core.context import RequestContext
from app.core.errors import RateLimiterClosedError


def test_first_contact_costs_one_token(token_limiter) -> None:
    assert token_limiter.tokens_left("k") is None

    assert token_limiter.allow("k") is True
    assert token_limiter.tokens_left("k") == 2


def test_new_key_admits_exactly_rate_calls(token_limiter) -> None:
    assert [token_limiter.allow("k") for _ in range(3)] == [True, True, True]
    assert token_limiter.allow("k") is False
    assert token_limiter.allow("k") is False
    assert token_limiter.tokens_left("k") == 0


def test_elapsed_time_alone_does_not_refill(token_limiter, clock: Mock) -> None:
    for _ in range(3):
        token_limiter.allow("k")

    clock.return_value = 5000.0
    assert token_limiter.allow("k") is False


def test_refill_restores_exhausted_key(token_limiter, clock: Mock) -> None:
    for _ in range(3):
        token_limiter.allow("k")
    assert token_limiter.allow("k") is False

    clock.return_value = 1060.0
    token_limiter.refill()

    assert token_limiter.tokens_left("k") == 3
    assert token_limiter.allow("k") is True
    assert token_limiter.tokens_left("k") == 2


def test_refill_is_synchronized_across_keys(token_limiter) -> None:
    token_limiter.allow("early")
    token_limiter.allow("early")
    token_limiter.allow("late")

    token_limiter.refill()

    assert token_limiter.tokens_left("early") == 3
    assert token_limiter.tokens_left("late") == 3


def test_refill_keeps_keys(token_limiter) -> None:
    token_limiter.allow("a")
    token_limiter.allow("b")

    token_limiter.refill()

    assert token_limiter.key_count() == 2


def test_isolated_by_key(token_limiter) -> None:
    for _ in range(3):
        token_limiter.allow("k1")
    assert token_limiter.allow("k1") is False

    assert token_limiter.allow("k2") is True


def test_cancelled_context_leaves_state_unchanged(token_limiter) -> None:
    token_limiter.allow("k")
    token_limiter.allow("k")

    ctx = RequestContext()
    ctx.cancel()
    assert token_limiter.allow_context(ctx, "k") is False
    assert token_limiter.allow_context(ctx, "new") is False
    assert token_limiter.tokens_left("k") == 1
    assert token_limiter.tokens_left("new") is None

    assert token_limiter.allow_context(RequestContext(), "k") is True
    assert token_limiter.allow_context(RequestContext(), "k") is False


def test_reset_makes_exhausted_keys_new(token_limiter) -> None:
    for _ in range(3):
        token_limiter.allow("k")
    assert token_limiter.allow("k") is False

    token_limiter.reset()

    assert token_limiter.key_count() == 0
    assert token_limiter.tokens_left("k") is None
    assert [token_limiter.allow("k") for _ in range(3)] == [True, True, True]
    assert token_limiter.allow("k") is False


def test_limit_of_one(clock: Mock) -> None:
    limiter = InMemoryTokenBucketRateLimiter(limit=1, window_seconds=60, clock=clock, autostart=False)

    assert limiter.allow("k") is True
    assert limiter.allow("k") is False


def test_concurrent_callers_admit_exactly_rate() -> None:
    rate = 5
    callers = 32
    limiter = InMemoryTokenBucketRateLimiter(limit=rate, window_seconds=60, autostart=False)
    barrier = threading.Barrier(callers)
    results: list[bool] = []
    results_lock = threading.Lock()

    def _call() -> None:
        barrier.wait()
        allowed = limiter.allow("shared")
        with results_lock:
            results.append(allowed)

    threads = [threading.Thread(target=_call) for _ in range(callers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == rate
    assert limiter.tokens_left("shared") == 0
    limiter.close()


def test_background_tick_refills() -> None:
    limiter = InMemoryTokenBucketRateLimiter(limit=1, window_seconds=0.05)
    try:
        limiter.allow("k")

        deadline = time.monotonic() + 3.0
        while limiter.tokens_left("k") == 0 and time.monotonic() < deadline:
            time.sleep(0.01)

        assert limiter.tokens_left("k") == 1
    finally:
        limiter.close()


def test_double_close_raises() -> None:
    limiter = InMemoryTokenBucketRateLimiter(limit=1, window_seconds=60)
    limiter.close()

    assert limiter.background_running is False
    with pytest.raises(RateLimiterClosedError):
        limiter.close()


def test_start_after_close_raises(clock: Mock) -> None:
    limiter = InMemoryTokenBucketRateLimiter(limit=1, window_seconds=60, clock=clock, autostart=False)
    limiter.close()

    with pytest.raises(RateLimiterClosedError):
        limiter.start()


def test_reports_configuration(token_limiter) -> None:
    assert token_limiter.strategy == "token-bucket"
    assert token_limiter.limit == 3
    assert token_limiter.window_seconds == 60.0
