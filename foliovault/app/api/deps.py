"""Shared FastAPI dependencies for the API routers."""

from typing import Annotated, Optional

import httpx
from fastapi import Depends

from foliovault.app.core.http_client import get_http_client_or_none
from foliovault.app.db.models import User
from foliovault.app.exchange.client import BinanceClient
from foliovault.app.middleware.auth import require_user
from foliovault.app.middleware.rate_limit import (
    RateLimiter,
    get_client_ip,
    get_rate_limiter,
    raise_if_limited,
)

RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
ClientIpDep = Annotated[str, Depends(get_client_ip)]
CurrentUser = Annotated[User, Depends(require_user)]


def get_exchange_http_client() -> Optional[httpx.AsyncClient]:
    """Shared pooled client while the app is running, else None."""
    return get_http_client_or_none()


ExchangeHttpClient = Annotated[Optional[httpx.AsyncClient], Depends(get_exchange_http_client)]


def public_rate_limited(ip: ClientIpDep, limiter: RateLimiterDep) -> str:
    """Apply the per-IP public policy; returns the client IP."""
    raise_if_limited(limiter.check_public(ip))
    return ip


def user_rate_limited(user: CurrentUser, limiter: RateLimiterDep) -> User:
    """Authenticate, then apply the per-user policy."""
    raise_if_limited(limiter.check_user(user.id))
    return user


PublicCaller = Annotated[str, Depends(public_rate_limited)]
RateLimitedUser = Annotated[User, Depends(user_rate_limited)]


def public_client(http_client: ExchangeHttpClient) -> BinanceClient:
    return BinanceClient(http_client=http_client)


PublicClientDep = Annotated[BinanceClient, Depends(public_client)]