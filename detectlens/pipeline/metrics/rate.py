"""Sliding-window frame rate estimation."""

from __future__ import annotations

import time
from collections import deque
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Callable


def monotonic_ms() -> float:
    """Return a monotonic timestamp in milliseconds."""
    return time.monotonic() * 1000.0


class RateTracker:
    """Count processed frames inside a fixed time window.

    ``fps`` is ``events_in_window * 1000 / window_size_ms``. Old timestamps are
    evicted lazily on each new event.
    """

    def __init__(
        self,
        window_size_ms: float = 1000.0,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the tracker with a window span and a millisecond clock."""
        if window_size_ms <= 0:
            message = "window_size_ms must be positive"
            raise ValueError(message)
        self.window_size_ms = float(window_size_ms)
        self._clock = clock or monotonic_ms
        self._timestamps: deque[float] = deque()
        self.fps = 0.0

    @property
    def timestamps(self) -> tuple[float, ...]:
        return tuple(self._timestamps)

    def record_event(self, now: float | None = None) -> float:
        """Record a processed frame and return the updated fps."""
        now = self._clock() if now is None else float(now)
        self._timestamps.append(now)
        while self._timestamps and now - self._timestamps[0] > self.window_size_ms:
            self._timestamps.popleft()
        self.fps = len(self._timestamps) * 1000.0 / self.window_size_ms
        return self.fps

    def reset(self) -> None:
        """Drop all timestamps and report zero fps."""
        self._timestamps.clear()
        self.fps = 0.0
