"""Periodic garbage collection for rate limit counters.

The key space is unbounded (arbitrary IPs and user IDs), so expired
entries are removed on a fixed interval by a background task owned by
the application lifespan.
"""

import asyncio
from typing import Optional

from foliovault.app.core.logging import get_logger
from foliovault.app.middleware.rate_limit.backends import RateLimitBackend

logger = get_logger(__name__)


class RateLimitSweeper:
    """Runs ``backend.sweep()`` every ``interval_seconds``.

    Usage:
        sweeper = RateLimitSweeper(store, interval_seconds=60.0)
        await sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, backend: RateLimitBackend, interval_seconds: float = 60.0):
        self._backend = backend
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(self) -> int:
        """Run a single sweep, logging instead of raising on failure."""
        try:
            removed = self._backend.sweep()
        except Exception as e:
            logger.error(f"Rate limit sweep failed: {e}")
            return 0
        if removed:
            logger.debug(f"Rate limit sweep removed {removed} expired entries")
        return removed

    async def start(self) -> None:
        if self._task is not None:
            logger.debug("Rate limit sweeper already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started rate limit sweeper (interval: {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return

        self._stop_event.set()

        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Rate limit sweeper did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            logger.info("Stopped rate limit sweeper")

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                # Interval elapsed
                self.sweep_once()
