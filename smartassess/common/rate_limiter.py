"""
Rate Limiter Module

This module provides the throttle used in front of the external answer
scorer. It bounds how many calls may be in flight at once and enforces a
minimum spacing between consecutive calls, so a slow or rate-limited
scoring service is not overwhelmed by batch evaluation.
"""

import time
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from smartassess.common.logger import app_logger

logger = app_logger.getChild("rate_limiter")


class RateLimiter:
    """
    Concurrency and spacing limiter for outbound calls.

    With ``max_concurrent=1`` calls run strictly one after another, and each
    call starts no sooner than ``min_interval`` seconds after the previous
    one finished. The first call is never delayed.

    Examples:
        limiter = RateLimiter(max_concurrent=1, min_interval=0.5)

        async with limiter.slot():
            await call_external_service()
    """

    def __init__(
        self,
        max_concurrent: int = 1,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        """
        Initialize the rate limiter.

        Args:
            max_concurrent: Maximum number of calls allowed in flight
            min_interval: Minimum seconds between the end of one call and the start of the next
            clock: Monotonic clock, replaceable in tests
            sleep: Sleep coroutine, replaceable in tests
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_interval < 0:
            raise ValueError("min_interval cannot be negative")

        self.max_concurrent = max_concurrent
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._last_release: Optional[float] = None

    def _get_semaphore(self) -> asyncio.Semaphore:
        # Created lazily so the limiter can be built outside a running loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        return self._semaphore

    async def _wait_for_interval(self) -> None:
        if self._last_release is None or self.min_interval <= 0:
            return
        remaining = self.min_interval - (self._clock() - self._last_release)
        if remaining > 0:
            logger.debug(f"Throttling outbound call for {remaining:.3f}s")
            await self._sleep(remaining)

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold one call slot for the duration of the ``async with`` block."""
        async with self._get_semaphore():
            await self._wait_for_interval()
            try:
                yield
            finally:
                self._last_release = self._clock()

    async def run(self, func: Callable[[], Awaitable]):
        """Run ``func`` inside a slot and return its result."""
        async with self.slot():
            return await func()
