"""Interval Limiter: minimum spacing between upstream attempts.

Tracks the start time of the last completion attempt and reports how long
the next attempt must wait so that consecutive attempt starts are at least
``min_interval`` seconds apart. The first attempt never waits.

Not locked: the scheduler's single worker is its only caller.
"""

from __future__ import annotations

import time
from collections.abc import Callable


class IntervalLimiter:
    """Minimum-interval limiter keyed on attempt start times.

    Usage:
        limiter = IntervalLimiter(min_interval=1.0)

        wait = limiter.wait_time()
        if wait > 0:
            await asyncio.sleep(wait)
        limiter.record_attempt()
    """

    def __init__(self, min_interval: float = 1.0, clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval
        self._clock = clock
        self.last_request_time: float | None = None

    def wait_time(self, now: float | None = None) -> float:
        """Seconds to wait before the next attempt may start. 0 means go now."""
        if self.last_request_time is None:
            return 0.0
        now = self._clock() if now is None else now
        return max(0.0, self.min_interval - (now - self.last_request_time))

    def record_attempt(self, now: float | None = None) -> float:
        """Mark the start of an attempt. Returns the recorded timestamp."""
        self.last_request_time = self._clock() if now is None else now
        return self.last_request_time

    def get_stats(self) -> dict:
        age = None
        if self.last_request_time is not None:
            age = round(self._clock() - self.last_request_time, 3)
        return {
            "min_interval_s": self.min_interval,
            "last_request_age_s": age,
        }
