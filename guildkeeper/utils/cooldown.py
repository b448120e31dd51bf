"""
Rate Limiter for GuildKeeper
Sliding-window limit on command invocations per actor
"""

import time
from collections import deque
from typing import Callable, Deque, Dict, Hashable


class RateLimiter:
    """Allows at most ``max_requests`` acquisitions per actor inside any ``window_seconds`` span.

    Each actor keeps a deque of acquisition timestamps, oldest first. Expired
    entries are evicted from the front before the count check. All methods are
    synchronous so a check-and-record runs without yielding to the event loop.
    """

    def __init__(
        self,
        max_requests: int = 5,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[Hashable, Deque[float]] = {}

    def _evict(self, timestamps: Deque[float], now: float):
        while timestamps and now - timestamps[0] >= self.window_seconds:
            timestamps.popleft()

    def try_acquire(self, actor_id: Hashable) -> bool:
        now = self._clock()
        timestamps = self._requests.setdefault(actor_id, deque())
        self._evict(timestamps, now)

        if len(timestamps) >= self.max_requests:
            return False

        timestamps.append(now)
        return True

    def retry_after(self, actor_id: Hashable) -> float:
        timestamps = self._requests.get(actor_id)
        if not timestamps:
            return 0.0

        now = self._clock()
        self._evict(timestamps, now)
        if len(timestamps) < self.max_requests:
            return 0.0
        return max(0.0, self.window_seconds - (now - timestamps[0]))

    def cleanup(self):
        now = self._clock()
        for key in list(self._requests.keys()):
            self._evict(self._requests[key], now)
            if not self._requests[key]:
                del self._requests[key]