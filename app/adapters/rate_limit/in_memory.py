"""Shared scaffolding for in-memory rate limiters.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: one lock guards the whole key -> record map, including the
  cross-key pass made by the background tick.
- State is never persisted; a restart forgets every client.
"""

from __future__ import annotations

import logging
import threading
import time
from abc import abstractmethod
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.periodic import PeriodicTask
from app.core.errors import RateLimiterClosedError

logger = logging.getLogger(__name__)


class InMemoryRateLimiter(AbstractRateLimiter):
    """Base for limiters whose state lives in a dict guarded by one lock.

    Subclasses implement ``allow``, ``reset``, ``key_count`` and ``_tick``;
    ``_tick`` runs every ``window_seconds`` on a background thread started at
    construction (unless ``autostart=False``).
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        autostart: bool = True,
    ) -> None:
        super().__init__(limit=limit, window_seconds=window_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._closed = False
        self._task = PeriodicTask(
            self._window_seconds,
            self._tick,
            name=f"rate-limiter-{self.strategy}",
        )
        if autostart:
            self.start()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def background_running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        """Start the background task (construction does this by default)."""
        if self._closed:
            raise RateLimiterClosedError(
                code="rate_limiter_closed",
                message="Cannot start a rate limiter that has been closed",
            )
        self._task.start()
        logger.info(
            "rate_limiter.started",
            extra={
                "strategy": self.strategy,
                "limit": self._limit,
                "window_s": self._window_seconds,
            },
        )

    def close(self) -> None:
        """Stop the background task and release all per-key state.

        Raises:
            RateLimiterClosedError: On a second call.
        """
        with self._close_lock:
            if self._closed:
                raise RateLimiterClosedError(
                    code="rate_limiter_closed",
                    message="Rate limiter is already closed",
                    details={"strategy": self.strategy},
                )
            self._closed = True

        # Never hold self._lock here: an in-flight tick needs it to finish.
        self._task.stop()
        self.reset()
        logger.info("rate_limiter.closed", extra={"strategy": self.strategy})

    @abstractmethod
    def _tick(self) -> None:
        """Periodic maintenance pass (refill or prune)."""
        raise NotImplementedError
