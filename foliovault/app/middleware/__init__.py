"""Middleware package for FolioVault."""

from foliovault.app.middleware.auth import require_user
from foliovault.app.middleware.rate_limit import RateLimiter, get_rate_limiter
from foliovault.app.middleware.request_id import RequestIdMiddleware, get_request_id

__all__ = [
    "require_user",
    "RateLimiter",
    "get_rate_limiter",
    "RequestIdMiddleware",
    "get_request_id",
]
