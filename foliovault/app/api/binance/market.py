"""Public market data proxied from Binance, limited per client IP."""

from typing import Any, Optional

from fastapi import APIRouter, Query

from foliovault.app.api.deps import PublicCaller, PublicClientDep
from foliovault.app.exceptions import ValidationFailedError
from foliovault.app.exchange.client import KLINE_INTERVALS

router = APIRouter(prefix="/v1/binance/market", tags=["market"])

VALID_DEPTH_LIMITS = (5, 10, 20, 50, 100, 500, 1000, 5000)
MAX_LIST_LIMIT = 1000


def _require_symbol(symbol: Optional[str]) -> str:
    if not symbol or not symbol.strip():
        raise ValidationFailedError("symbol parameter is required")
    return symbol.strip().upper()


def _clamp_limit(limit: Optional[int], default: int = 500) -> int:
    if limit is None:
        return default
    return min(max(1, limit), MAX_LIST_LIMIT)


@router.get("/depth")
async def get_depth(
    _ip: PublicCaller,
    client: PublicClientDep,
    symbol: Optional[str] = Query(None),
    limit: int = Query(100),
) -> Any:
    symbol = _require_symbol(symbol)
    if limit not in VALID_DEPTH_LIMITS:
        raise ValidationFailedError(
            f"limit must be one of: {', '.join(str(v) for v in VALID_DEPTH_LIMITS)}"
        )
    return await client.get_order_book(symbol, limit)


@router.get("/klines")
async def get_klines(
    _ip: PublicCaller,
    client: PublicClientDep,
    symbol: Optional[str] = Query(None),
    interval: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
) -> Any:
    symbol = _require_symbol(symbol)
    # 1s is accepted by Binance but not exposed here
    allowed = KLINE_INTERVALS[1:]
    if interval not in allowed:
        raise ValidationFailedError(f"interval must be one of: {', '.join(allowed)}")
    return await client.get_klines(symbol, interval, _clamp_limit(limit))


@router.get("/trades")
async def get_trades(
    _ip: PublicCaller,
    client: PublicClientDep,
    symbol: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
) -> Any:
    symbol = _require_symbol(symbol)
    return await client.get_recent_trades(symbol, _clamp_limit(limit))


@router.get("/exchange-info")
async def get_exchange_info(
    _ip: PublicCaller,
    client: PublicClientDep,
    symbol: Optional[str] = Query(None),
) -> Any:
    return await client.get_exchange_info(symbol.strip().upper() if symbol else None)


@router.get("/ticker")
async def get_ticker(
    _ip: PublicCaller,
    client: PublicClientDep,
    symbol: Optional[str] = Query(None),
) -> Any:
    return await client.get_ticker_24hr(symbol.strip().upper() if symbol else None)
