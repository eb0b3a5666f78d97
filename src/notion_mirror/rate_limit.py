"""Uniform-spacing rate limiter shared by all outbound calls.

Hands out one slot every ``period / requests`` seconds. Slots are assigned in
arrival order under a lock, and callers sleep outside the lock until their
slot comes up, so N concurrent callers are released one interval apart rather
than in a burst.
"""

import asyncio
import time


class RateLimiter:
    """Token gate releasing at most ``requests`` callers per ``period`` seconds, evenly spaced."""

    def __init__(self, requests: int = 3, period: float = 1.0):
        if requests <= 0 or period < 0:
            raise ValueError("requests must be positive and period non-negative")
        self._interval = period / requests
        self._next_slot = 0.0
        self._lock = asyncio.Lock()

    @property
    def interval(self) -> float:
        """Seconds between two consecutive slots."""
        return self._interval

    async def acquire(self) -> None:
        """Wait until the caller's slot arrives. Never raises, never times out."""
        async with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self._interval
        delay = slot - now
        if delay > 0:
            await asyncio.sleep(delay)
