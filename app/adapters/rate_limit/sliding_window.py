"""In-memory sliding window limiter.

Each key keeps the instants of its admitted requests. A request is admitted
only if fewer than ``limit`` of them fall strictly inside the trailing
``window_seconds``, which gives exact rolling-window semantics. A background
sweep every ``window_seconds`` prunes expired instants and forgets idle keys
so memory does not grow with the number of clients ever seen.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable

from app.adapters.rate_limit.in_memory import InMemoryRateLimiter

logger = logging.getLogger(__name__)


class InMemorySlidingWindowRateLimiter(InMemoryRateLimiter):
    """Rolling-window limiter backed by a deque of timestamps per key."""

    strategy = "sliding-window"

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        autostart: bool = True,
    ) -> None:
        self._windows: dict[str, deque[float]] = {}
        super().__init__(
            limit=limit,
            window_seconds=window_seconds,
            clock=clock,
            autostart=autostart,
        )

    @staticmethod
    def _prune(timestamps: deque[float], window_start: float) -> None:
        # Appends happen under the lock with a monotonic clock, so the deque
        # is sorted and expired entries are always at the left.
        while timestamps and timestamps[0] <= window_start:
            timestamps.popleft()

    def allow(self, key: str) -> bool:
        self._validate_key(key)

        with self._lock:
            now = self._clock()
            timestamps = self._windows.get(key)
            if timestamps is None:
                timestamps = deque()
                self._windows[key] = timestamps

            self._prune(timestamps, now - self._window_seconds)

            if len(timestamps) >= self._limit:
                return False

            timestamps.append(now)
            return True

    def cleanup(self) -> int:
        """Prune every key and drop the ones left without timestamps.

        Returns:
            Number of keys removed.
        """
        with self._lock:
            window_start = self._clock() - self._window_seconds
            idle: list[str] = []
            for key, timestamps in self._windows.items():
                self._prune(timestamps, window_start)
                if not timestamps:
                    idle.append(key)
            for key in idle:
                del self._windows[key]
            remaining = len(self._windows)

        if idle:
            logger.debug(
                "rate_limiter.cleanup",
                extra={"strategy": self.strategy, "removed": len(idle), "remaining": remaining},
            )
        return len(idle)

    def reset(self) -> None:
        with self._lock:
            self._windows = {}

    def key_count(self) -> int:
        with self._lock:
            return len(self._windows)

    def request_count(self, key: str) -> int:
        """Stored timestamps for ``key`` (not pruned; 0 for unknown keys)."""
        with self._lock:
            timestamps = self._windows.get(key)
            return len(timestamps) if timestamps is not None else 0

    def _tick(self) -> None:
        self.cleanup()
