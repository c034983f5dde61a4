"""Fixed-window rate limiting for outbound Productive.io API calls.

Productive allows a fixed number of requests per window for each API token.
The limiter counts calls inside the current window and, once the quota is used
up, suspends the caller until the window rolls over.

The window is reset lazily: only ``wait_for_rate_limit()`` resets it.
``get_status()`` reports an elapsed window as empty without touching state.

Note: this is a fixed window, not a sliding log. Up to twice the quota can be
sent in a span that straddles a reset point.
"""
import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

logger = logging.getLogger("productive-mcp.rate_limiter")

RATE_LIMIT_REQUESTS = 100
RATE_LIMIT_WINDOW_MS = 10_000


@dataclass
class RateWindow:
    """Request count inside the window that started at ``window_start``."""

    count: int
    window_start: float


class RateLimiter:
    """Allow at most ``max_requests`` calls per ``window_seconds``.

    ``clock`` must be monotonic. ``clock`` and ``sleep`` can be replaced to drive
    the limiter from a simulated clock.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW_MS / 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._window = RateWindow(count=0, window_start=clock())
        self._lock = asyncio.Lock()

    @property
    def window(self) -> RateWindow:
        return self._window

    async def wait_for_rate_limit(self) -> None:
        """Return once a request may be sent, sleeping out the window if needed."""
        now = self._clock()
        elapsed = now - self._window.window_start

        if elapsed >= self.window_seconds:
            self._reset(now)
            return

        if self._window.count < self.max_requests:
            return

        wait_time = self.window_seconds - elapsed
        logger.warning(f"Rate limit reached. Waiting {math.ceil(wait_time)} seconds...")
        await self._sleep(wait_time)
        self._reset(self._clock())

    def record_request(self) -> None:
        """Charge one dispatched request against the current window."""
        self._window.count += 1

    async def acquire(self) -> None:
        """Wait for a slot and charge it, as one step.

        Concurrent tasks queue on the lock, so no task can inspect the window
        between another task's wait and its charge.
        """
        async with self._lock:
            await self.wait_for_rate_limit()
            self.record_request()

    def get_status(self) -> dict:
        """Snapshot of the window; never resets it."""
        elapsed = self._clock() - self._window.window_start
        window_ms = int(self.window_seconds * 1000)

        if elapsed >= self.window_seconds:
            return {
                "count": 0,
                "limit": self.max_requests,
                "window_ms": window_ms,
                "remaining": self.max_requests,
            }

        return {
            "count": self._window.count,
            "limit": self.max_requests,
            "window_ms": window_ms,
            "remaining": max(0, self.max_requests - self._window.count),
        }

    def _reset(self, now: float) -> None:
        self._window.count = 0
        self._window.window_start = now
