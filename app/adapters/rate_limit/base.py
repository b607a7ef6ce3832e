"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not a concrete implementation),
so the strategy is chosen once at startup and never branched on per request.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable


@runtime_checkable
class CancellationSignal(Protocol):
    """Anything that can report whether the caller gave up on the request."""

    def is_cancelled(self) -> bool: ...


class AbstractRateLimiter(ABC):
    """Interface for per-key in-memory rate limiters.

    Implementations must be safe to call from many threads at once and own
    one background task that is stopped by ``close()``.
    """

    strategy: str = ""

    def __init__(self, *, limit: int, window_seconds: float) -> None:
        """Validate and store the quota shared by every strategy.

        Args:
            limit: Maximum number of admitted requests per window.
            window_seconds: Window length in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._limit = limit
        self._window_seconds = float(window_seconds)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    @property
    @abstractmethod
    def closed(self) -> bool:
        """Whether ``close()`` has already been called."""
        raise NotImplementedError

    @abstractmethod
    def allow(self, key: str) -> bool:
        """Decide whether a request for ``key`` is admitted right now.

        Admission is recorded as a side effect; a denial never is.

        Args:
            key: Client identifier (e.g., source IP address).

        Returns:
            True when admitted, False when the quota is exhausted.

        Raises:
            ValueError: If key is empty.
        """
        raise NotImplementedError

    def allow_context(self, ctx: CancellationSignal, key: str) -> bool:
        """Same as ``allow`` but fails closed for a cancelled/expired context.

        The context is checked once, before any state for ``key`` is read or
        mutated; cancellation arriving later has no effect on this call.
        """
        if ctx.is_cancelled():
            return False
        return self.allow(key)

    @abstractmethod
    def reset(self) -> None:
        """Drop all per-key state; every key behaves as never seen."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Stop the background task permanently.

        Raises:
            RateLimiterClosedError: If the limiter was already closed.
        """
        raise NotImplementedError

    @abstractmethod
    def key_count(self) -> int:
        """Number of keys currently tracked."""
        raise NotImplementedError

    @staticmethod
    def _validate_key(key: str) -> None:
        if not key:
            raise ValueError("key must be a non-empty string")
