"""Fixed-window rate limiter shared by dispatcher workers."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class FixedWindowRateLimiter:
    """Allow at most ``max_events`` acquisitions per ``window_seconds``.

    A denied acquisition is a deferral: the caller leaves the work queued and
    tries again once :meth:`seconds_until_reset` has elapsed.
    """

    def __init__(
        self,
        max_events: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_events <= 0:
            raise ValueError("max_events must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_events = max_events
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._window_start = clock()
        self._count = 0

    def _roll_window(self, now: float) -> None:
        elapsed = now - self._window_start
        if elapsed >= self.window_seconds:
            windows = int(elapsed // self.window_seconds)
            self._window_start += windows * self.window_seconds
            self._count = 0

    def try_acquire(self) -> bool:
        with self._lock:
            self._roll_window(self._clock())
            if self._count >= self.max_events:
                return False
            self._count += 1
            return True

    def release(self) -> None:
        """Return an unused permit to the current window."""

        with self._lock:
            if self._count > 0:
                self._count -= 1

    def seconds_until_reset(self) -> float:
        with self._lock:
            now = self._clock()
            self._roll_window(now)
            return max(0.0, self._window_start + self.window_seconds - now)

    @property
    def remaining(self) -> int:
        with self._lock:
            self._roll_window(self._clock())
            return self.max_events - self._count


__all__ = ["FixedWindowRateLimiter"]
