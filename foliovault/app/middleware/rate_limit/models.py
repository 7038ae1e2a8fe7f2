"""Rate limiting data models.

This module contains dataclasses for rate limit state, results and policies.
All timestamps are epoch milliseconds.
"""

import math
from dataclasses import dataclass


@dataclass
class RateLimitEntry:
    """Counter state for one key inside its current fixed window."""
    count: int
    reset_at: int


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    remaining: int
    reset_at: int
    retry_after_ms: int = 0

    @property
    def retry_after_seconds(self) -> int:
        """Value for the Retry-After header."""
        return math.ceil(self.retry_after_ms / 1000)


@dataclass(frozen=True)
class RateLimitPolicy:
    """A fixed (max_requests, window_ms) pair over its own key namespace."""
    name: str
    max_requests: int
    window_ms: int

    def key_for(self, identifier: str) -> str:
        return f"{self.name}:{identifier}"
