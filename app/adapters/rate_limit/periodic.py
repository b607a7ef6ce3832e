"""Fixed-interval background task owned by a limiter instance."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run ``callback`` every ``interval_seconds`` on a daemon thread.

    The wait between ticks is an ``Event.wait`` so ``stop()`` wakes the
    thread immediately instead of sleeping out the interval. ``stop()`` joins
    the thread, therefore a tick already in progress finishes before it
    returns.
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], object],
        *,
        name: str = "periodic-task",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")

        self._interval = interval_seconds
        self._callback = callback
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the background thread (no-op if already started)."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug(
            "periodic_task.started",
            extra={"task": self._name, "interval_s": self._interval},
        )

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit and wait for an in-flight tick to drain."""
        self._stop_event.set()
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning(
                "periodic_task.stop_timeout",
                extra={"task": self._name, "timeout_s": timeout},
            )
            return
        logger.debug("periodic_task.stopped", extra={"task": self._name})

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._callback()
            except Exception:
                logger.exception("periodic_task.tick_failed", extra={"task": self._name})
