"""Minimum-interval pacing shared by every outbound registry call."""

from __future__ import annotations

import time
from contextlib import contextmanager
from threading import Lock
from typing import Callable, Iterator


class MinIntervalRateLimiter:
    """Leaky bucket of size one.

    A call may start only once ``min_interval`` seconds have elapsed since the
    previous call *completed*. The slot is held for the duration of the call so
    no two calls overlap. Clock and sleep are injectable for unit tests.

    Example:
        >>> limiter = MinIntervalRateLimiter(1.2)
        >>> with limiter.slot():
        ...     session.get(url)
    """

    def __init__(
        self,
        min_interval: float,
        now: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = float(min_interval)
        self._now = now
        self._sleep = sleep
        self._lock = Lock()
        self._last_completed: float | None = None

    def wait(self) -> float:
        """Block until the next call may start.

        Returns:
            Seconds slept (0.0 when no wait was needed)
        """
        if self._last_completed is None:
            return 0.0
        elapsed = self._now() - self._last_completed
        remaining = self.min_interval - elapsed
        if remaining <= 0:
            return 0.0
        self._sleep(remaining)
        return remaining

    def mark_completed(self) -> None:
        self._last_completed = self._now()

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold the pacing slot for one outbound call."""
        with self._lock:
            self.wait()
            try:
                yield
            finally:
                self.mark_completed()
