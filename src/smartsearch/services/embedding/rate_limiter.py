"""Blocking rate limiter for outbound embedding calls."""

import threading
import time
from typing import Callable


class RateLimiter:
    """Smooth token-spacing limiter: at most ``permits_per_second`` acquisitions per second.

    acquire() blocks the calling thread until its slot comes up. Slots are
    reserved under a lock and the sleep happens outside it, so waiting
    threads queue up in arrival order without holding each other up.
    """

    def __init__(
        self,
        permits_per_second: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if permits_per_second <= 0:
            raise ValueError("permits_per_second must be positive")

        self.permits_per_second = permits_per_second
        self._interval = 1.0 / permits_per_second
        self._clock = clock
        self._sleep = sleep
        self._next_free = clock()
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Take one permit, sleeping if necessary.

        Returns:
            Seconds spent waiting
        """
        with self._lock:
            now = self._clock()
            wait = max(0.0, self._next_free - now)
            self._next_free = max(now, self._next_free) + self._interval

        if wait > 0:
            self._sleep(wait)
        return wait
