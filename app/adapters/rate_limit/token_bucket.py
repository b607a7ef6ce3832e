"""In-memory token bucket limiter with a synchronized global refill.

Every key owns an integer allowance capped at ``limit``. A single background
tick fires every ``window_seconds`` and resets *all* buckets to ``limit`` at
once. Buckets are therefore not refilled per key from elapsed time: a key
first seen just before a tick gets a full allowance again almost
immediately. This is a cheaper, coarser approximation of a token bucket;
prefer the sliding window when bursts right after a refill matter.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.in_memory import InMemoryRateLimiter

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    tokens: int
    last_refill: float


class InMemoryTokenBucketRateLimiter(InMemoryRateLimiter):
    """Token bucket limiter refilled in lockstep for every key.

    Buckets are created on first contact (which costs one token) and are only
    dropped by ``reset()``.
    """

    strategy = "token-bucket"

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        autostart: bool = True,
    ) -> None:
        self._buckets: dict[str, _Bucket] = {}
        super().__init__(
            limit=limit,
            window_seconds=window_seconds,
            clock=clock,
            autostart=autostart,
        )

    def allow(self, key: str) -> bool:
        self._validate_key(key)

        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                self._buckets[key] = _Bucket(tokens=self._limit - 1, last_refill=self._clock())
                return True

            if bucket.tokens > 0:
                bucket.tokens -= 1
                return True

            return False

    def refill(self) -> None:
        """Reset every bucket to a full allowance."""
        now = self._clock()
        with self._lock:
            for bucket in self._buckets.values():
                bucket.tokens = self._limit
                bucket.last_refill = now
            refilled = len(self._buckets)

        logger.debug("rate_limiter.refilled", extra={"strategy": self.strategy, "keys": refilled})

    def reset(self) -> None:
        with self._lock:
            self._buckets = {}

    def key_count(self) -> int:
        with self._lock:
            return len(self._buckets)

    def tokens_left(self, key: str) -> int | None:
        """Remaining tokens for ``key``, or None if the key was never seen."""
        with self._lock:
            bucket = self._buckets.get(key)
            return bucket.tokens if bucket is not None else None

    def _tick(self) -> None:
        self.refill()
