"""Per-tool sliding-window rate limiting for the dispatcher."""

from __future__ import annotations

import math
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque

DEFAULT_MAX_CALLS = 10
DEFAULT_WINDOW_SECONDS = 60.0


@dataclass
class RateWindow:
    """Sliding window of call timestamps for one tool.

    A call is accepted while fewer than ``max_calls`` timestamps fall inside
    the last ``window_seconds``; only accepted calls are recorded.

    Args:
        max_calls: Maximum calls per window
        window_seconds: Window length in seconds
        clock: Monotonic time source, injectable for tests

    Example:
        >>> window = RateWindow(max_calls=1, window_seconds=60)
        >>> window.try_acquire()
        True
        >>> window.try_acquire()
        False
    """

    max_calls: int = DEFAULT_MAX_CALLS
    window_seconds: float = DEFAULT_WINDOW_SECONDS
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    _timestamps: Deque[float] = field(default_factory=deque, repr=False)

    def __post_init__(self) -> None:
        if self.max_calls < 1:
            raise ValueError(f"max_calls must be at least 1, got {self.max_calls}")
        if self.window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive, got {self.window_seconds}")

    def _evict(self, now: float) -> None:
        cutoff = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def try_acquire(self) -> bool:
        """Record a call and return True, or return False when the window is full."""
        now = self.clock()
        self._evict(now)
        if len(self._timestamps) >= self.max_calls:
            return False
        self._timestamps.append(now)
        return True

    def retry_after(self) -> int:
        """Whole seconds until the oldest recorded call leaves the window."""
        if not self._timestamps:
            return 0
        now = self.clock()
        wait = self._timestamps[0] + self.window_seconds - now
        return max(0, math.ceil(wait))

    @property
    def in_window(self) -> int:
        self._evict(self.clock())
        return len(self._timestamps)

    def reset(self) -> None:
        self._timestamps.clear()


__all__ = ["RateWindow", "DEFAULT_MAX_CALLS", "DEFAULT_WINDOW_SECONDS"]
