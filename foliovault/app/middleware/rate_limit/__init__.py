"""Rate limiting for the exchange proxy and account endpoints.

This module provides fixed-window admission control. The limiter never
raises; request handlers call ``raise_if_limited`` to turn a rejected
result into an HTTP 429.
"""

from typing import Optional

from fastapi import Request

from foliovault.app.core.config import settings
from foliovault.app.core.logging import get_logger
from foliovault.app.exceptions import RateLimitExceededError

# Re-export models
from foliovault.app.middleware.rate_limit.models import (
    RateLimitEntry,
    RateLimitPolicy,
    RateLimitResult,
)

# Re-export backends
from foliovault.app.middleware.rate_limit.backends import (
    InMemoryRateLimitStore,
    RateLimitBackend,
)
from foliovault.app.middleware.rate_limit import policies
from foliovault.app.middleware.rate_limit.sweeper import RateLimitSweeper

logger = get_logger(__name__)

__all__ = [
    # Models
    "RateLimitEntry",
    "RateLimitPolicy",
    "RateLimitResult",
    # Backends
    "RateLimitBackend",
    "InMemoryRateLimitStore",
    "RateLimitSweeper",
    "policies",
    # Main classes
    "RateLimiter",
    "get_rate_limiter",
    "set_rate_limiter",
    "get_client_ip",
    "raise_if_limited",
]


class RateLimiter:
    """Facade over a rate limit backend with the preset policies."""

    def __init__(self, backend: Optional[RateLimitBackend] = None):
        """Initialize the limiter.

        Args:
            backend: Counter store; a fresh in-memory store when omitted
        """
        self._backend: RateLimitBackend = backend or InMemoryRateLimitStore()

    @property
    def backend(self) -> RateLimitBackend:
        return self._backend

    def check_limit(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        return self._backend.check_limit(key, max_requests, window_ms)

    def check(self, policy: RateLimitPolicy, identifier: str) -> RateLimitResult:
        """Check ``identifier`` against ``policy`` in its own namespace."""
        result = self._backend.check_limit(
            policy.key_for(identifier), policy.max_requests, policy.window_ms
        )
        if not result.allowed:
            logger.info(
                f"Rate limit hit for {policy.name}",
                extra={"policy": policy.name, "retry_after_ms": result.retry_after_ms},
            )
        return result

    def check_public(self, ip: str) -> RateLimitResult:
        return self.check(policies.BINANCE_PUBLIC, ip)

    def check_user(self, user_id: str) -> RateLimitResult:
        return self.check(policies.BINANCE_USER, user_id)

    def check_order(self, user_id: str) -> RateLimitResult:
        return self.check(policies.BINANCE_ORDER, user_id)

    def sweep(self) -> int:
        return self._backend.sweep()


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the application rate limiter, creating it on first use."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter


def set_rate_limiter(limiter: Optional[RateLimiter]) -> None:
    """Replace the application rate limiter (None resets it)."""
    global _rate_limiter
    _rate_limiter = limiter


def get_client_ip(request: Request) -> str:
    """Best-effort client IP for per-IP policies.

    Order: first X-Forwarded-For entry, X-Real-IP, socket peer, "unknown".
    Proxy headers are ignored when rate_limit_trust_forwarded_for is off.
    """
    if settings.rate_limit_trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("X-Real-IP")
        if real_ip and real_ip.strip():
            return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def raise_if_limited(
    result: RateLimitResult,
    message: str = "Rate limit exceeded. Please try again later.",
) -> RateLimitResult:
    """Raise RateLimitExceededError for a rejected result, else return it."""
    if not result.allowed:
        raise RateLimitExceededError(
            retry_after_seconds=result.retry_after_seconds,
            reset_at=result.reset_at,
            message=message,
        )
    return result
