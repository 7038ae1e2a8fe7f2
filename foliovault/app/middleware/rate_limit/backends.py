"""Rate limit storage backends.

Only a process-local backend ships. Counters are per instance; a
horizontally scaled deployment gets one independent counter space per
process.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict

from foliovault.app.middleware.rate_limit.models import RateLimitEntry, RateLimitResult


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimitBackend(ABC):
    """Abstract base class for rate limit backends."""

    @abstractmethod
    def check_limit(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        """Check and record one request for ``key``.

        Args:
            key: Rate limit key
            max_requests: Maximum requests admitted per window
            window_ms: Window length in milliseconds

        Returns:
            RateLimitResult with allowed status and metadata
        """

    @abstractmethod
    def sweep(self) -> int:
        """Remove expired entries and return how many were removed."""


class InMemoryRateLimitStore(RateLimitBackend):
    """Fixed-window counter store kept in a dict.

    A window for a key opens on its first request and lasts ``window_ms``.
    A request at ``now > reset_at`` (strictly greater) starts a fresh
    window, so a request landing exactly on ``reset_at`` still counts
    against the old one. Bursts of up to ``2 * max_requests`` across a
    window boundary are admitted.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms):
        """Initialize the store.

        Args:
            clock: Callable returning the current time in epoch milliseconds
        """
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        # Handlers may run on the event loop or in the threadpool.
        self._lock = threading.Lock()

    def check_limit(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or now > entry.reset_at:
                reset_at = now + window_ms
                self._entries[key] = RateLimitEntry(count=1, reset_at=reset_at)
                return RateLimitResult(
                    allowed=True,
                    remaining=max_requests - 1,
                    reset_at=reset_at,
                    retry_after_ms=0,
                )

            if entry.count >= max_requests:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_at=entry.reset_at,
                    retry_after_ms=entry.reset_at - now,
                )

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=max_requests - entry.count,
                reset_at=entry.reset_at,
                retry_after_ms=0,
            )

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
