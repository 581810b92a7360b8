"""Implementation of the shared rate-limit pause.

The remote service tells us, through response metadata, when we must stop
sending requests. Every fetch waits here first. A single instance is shared
by all fetchers and resolvers in the process.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Callable

logger = logging.getLogger(__name__)

# Below this many remaining quota units we pause pre-emptively
LOW_QUOTA_THRESHOLD = 2


class RateLimiter:
    """Pause-until deadline plus a broadcast wake signal.

    ``pause_until`` is a Unix timestamp (seconds). 0.0 means "not paused".
    It only moves forward through :meth:`note_pause_until` and is reset to
    zero by :meth:`clear`.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initializes the rate limiter.

        Args:
            clock: Returns the current Unix time in seconds.
        """
        self._clock = clock
        self._pause_until = 0.0
        self._lock = asyncio.Lock()
        # One-shot signal, replaced by a fresh Event every time it fires
        self._wake_signal = asyncio.Event()
        self._generation = 0
        logger.info("RateLimiter initialized (not paused)")

    @property
    def pause_until(self) -> float:
        return self._pause_until

    @property
    def generation(self) -> int:
        """Number of times the wake signal has fired."""
        return self._generation

    def is_paused(self) -> bool:
        return self._clock() < self._pause_until

    def remaining_pause(self) -> float:
        """Seconds until the pause elapses (0.0 when not paused)."""
        return max(0.0, self._pause_until - self._clock())

    async def wait_if_paused(self) -> None:
        """Suspends until the pause deadline has passed or :meth:`clear` is called.

        The deadline is re-read after every wake because another response
        may have extended it while we were sleeping.
        """
        while True:
            async with self._lock:
                remaining = self._pause_until - self._clock()
                signal = self._wake_signal
            if remaining <= 0:
                return

            logger.debug(f"Pausing {remaining:.1f}s for rate limit")
            try:
                await asyncio.wait_for(signal.wait(), timeout=remaining)
            except asyncio.TimeoutError:
                pass

    async def note_pause_until(self, timestamp: float) -> None:
        """Extends the pause to ``timestamp``. Never moves the deadline backward."""
        async with self._lock:
            if timestamp > self._pause_until:
                self._pause_until = timestamp
                logger.debug(f"Rate limit pause extended until {self._format_time(timestamp)}")

    async def note_response(self, remaining: float, reset_seconds: int, throttled: bool = False) -> bool:
        """Applies the response-derived pause policy.

        Args:
            remaining: Quota units the service says are left.
            reset_seconds: Seconds until the quota resets.
            throttled: Whether the response was an explicit "too many requests".

        Returns:
            True if the pause was (re)computed from this response.
        """
        if not throttled and remaining >= LOW_QUOTA_THRESHOLD:
            return False
        if throttled:
            logger.debug(f"429 received, pausing {reset_seconds}s")
        else:
            logger.debug(f"Rate limit low ({remaining} remaining), pausing {reset_seconds}s")
        await self.note_pause_until(self._clock() + reset_seconds)
        return True

    async def clear(self) -> None:
        """Drops the pause and wakes every current waiter immediately.

        The fired signal is swapped for a fresh one so that callers arriving
        later are not woken by this stale resolution.
        """
        async with self._lock:
            self._pause_until = 0.0
            fired = self._wake_signal
            self._wake_signal = asyncio.Event()
            self._generation += 1
        fired.set()
        logger.info("Rate limit pause cleared")

    def describe_state(self) -> str:
        """Returns a human-readable description used as a loading tooltip."""
        if self.is_paused():
            return (
                f"Rate limited, data available at {self._format_time(self._pause_until)} "
                f"(retry to fetch now)"
            )
        return "Loading..."

    @staticmethod
    def _format_time(timestamp: float) -> str:
        return datetime.fromtimestamp(timestamp).strftime("%H:%M:%S")
