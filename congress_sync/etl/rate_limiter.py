"""
Minimum-interval rate limiting for one external source.
"""

import time
import threading
from typing import Callable


class RateLimiter:
    """
    Blocks callers until at least `min_interval_ms` has passed since the previous call.

    Each source client owns its own limiter, so independent sources proceed
    concurrently while requests to one source stay serial. Use it as a context
    manager around the request to keep the source single-flight, or call
    `wait()` when only the spacing matters.
    """

    def __init__(self, min_interval_ms: int,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.min_interval = min_interval_ms / 1000.0
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request_time = None
        self.request_count = 0

    def _throttle(self):
        if self._last_request_time is not None:
            elapsed = self._clock() - self._last_request_time
            if elapsed < self.min_interval:
                self._sleep(self.min_interval - elapsed)
        self._last_request_time = self._clock()
        self.request_count += 1

    def wait(self):
        """Wait out the remainder of the interval, then record this request."""
        with self._lock:
            self._throttle()

    def __enter__(self):
        self._lock.acquire()
        try:
            self._throttle()
        except BaseException:
            self._lock.release()
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        self._lock.release()
        return False
