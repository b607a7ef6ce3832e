"""Per-request cancellation signal.

A ``RequestContext`` is the object the HTTP layer hands to
``AbstractRateLimiter.allow_context``. It is cancelled either explicitly
(``cancel()``) or implicitly once its optional deadline has passed.
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class RequestContext:
    """Thread-safe cancellation flag with an optional monotonic deadline."""

    def __init__(
        self,
        *,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cancelled = threading.Event()
        self._deadline = deadline
        self._clock = clock

    @classmethod
    def with_timeout(
        cls,
        seconds: float | None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> "RequestContext":
        """Build a context that expires ``seconds`` from now.

        Args:
            seconds: Time budget; ``None`` means the context never expires.
            clock: Monotonic time source.

        Raises:
            ValueError: If seconds is not positive.
        """
        if seconds is None:
            return cls(clock=clock)
        if seconds <= 0:
            raise ValueError("seconds must be > 0")
        return cls(deadline=clock() + seconds, clock=clock)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self) -> None:
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        """Return True once cancelled or past the deadline."""
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and self._clock() >= self._deadline
