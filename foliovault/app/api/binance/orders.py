"""Order placement, cancellation and history."""

from typing import Any, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from foliovault.app.api.deps import ExchangeHttpClient, RateLimitedUser, RateLimiterDep
from foliovault.app.core.logging import get_logger
from foliovault.app.db.dependencies import SessionDep
from foliovault.app.exceptions import NoCredentialsConfiguredError, ValidationFailedError
from foliovault.app.exchange.client import BinanceClient
from foliovault.app.exchange.validators import (
    sanitize_input,
    validate_oco_order,
    validate_order_params,
)
from foliovault.app.middleware.rate_limit import raise_if_limited
from foliovault.app.services.credentials import acquire_credentials

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/binance", tags=["orders"])

ORDER_LIMIT_MESSAGE = "Order rate limit exceeded. Maximum 10 orders per minute."

# Binance sends numbers as strings; both shapes are accepted on input.
Number = Optional[str | int | float]


class NewOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: Optional[str] = None
    side: Optional[str] = None
    type: Optional[str] = None
    quantity: Number = None
    price: Number = None
    stop_price: Number = Field(None, alias="stopPrice")
    time_in_force: Optional[str] = Field(None, alias="timeInForce")


class OcoOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: Optional[str] = None
    side: Optional[str] = None
    quantity: Number = None
    price: Number = None
    stop_price: Number = Field(None, alias="stopPrice")
    stop_limit_price: Number = Field(None, alias="stopLimitPrice")
    stop_limit_time_in_force: Optional[str] = Field("GTC", alias="stopLimitTimeInForce")


def _as_param(value: Number) -> Optional[str]:
    return None if value is None else str(value)


@router.post("/order")
async def place_order(
    data: NewOrderRequest,
    user: RateLimitedUser,
    limiter: RateLimiterDep,
    session: SessionDep,
    http_client: ExchangeHttpClient,
) -> Any:
    raise_if_limited(limiter.check_order(user.id), ORDER_LIMIT_MESSAGE)

    validation = validate_order_params(
        symbol=data.symbol,
        side=data.side,
        type=data.type,
        quantity=data.quantity,
        price=data.price,
        stop_price=data.stop_price,
    )
    if not validation.valid:
        raise ValidationFailedError("Validation failed", validation.errors)

    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        result = await client.new_order(
            symbol=sanitize_input(data.symbol).upper(),
            side=data.side,
            type=data.type,
            quantity=_as_param(data.quantity),
            price=_as_param(data.price),
            stop_price=_as_param(data.stop_price),
            time_in_force=data.time_in_force,
        )

    logger.info(
        f"Order placed: {data.side} {data.type} {data.symbol}",
        extra={"user_id": user.id},
    )
    return result


@router.post("/order/oco")
async def place_oco_order(
    data: OcoOrderRequest,
    user: RateLimitedUser,
    limiter: RateLimiterDep,
    session: SessionDep,
    http_client: ExchangeHttpClient,
) -> Any:
    raise_if_limited(limiter.check_order(user.id), ORDER_LIMIT_MESSAGE)

    validation = validate_oco_order(
        data.symbol, data.side, data.quantity, data.price, data.stop_price, data.stop_limit_price
    )
    if not validation.valid:
        raise ValidationFailedError(validation.error or "Validation failed", validation.errors)

    async with acquire_credentials(session, user.id, trading=True) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        return await client.new_oco_order(
            symbol=data.symbol,
            side=data.side,
            quantity=_as_param(data.quantity),
            price=_as_param(data.price),
            stop_price=_as_param(data.stop_price),
            stop_limit_price=_as_param(data.stop_limit_price),
            stop_limit_time_in_force=data.stop_limit_time_in_force,
        )


@router.delete("/order")
async def cancel_order(
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
    symbol: Optional[str] = Query(None),
    order_id: Optional[int] = Query(None, alias="orderId"),
) -> Any:
    if not symbol:
        raise ValidationFailedError("symbol parameter is required")
    if order_id is None:
        raise ValidationFailedError("orderId parameter is required")

    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        return await client.cancel_order(symbol=symbol.upper(), order_id=order_id)


@router.delete("/order/cancel-all")
async def cancel_all_orders(
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
    symbol: Optional[str] = Query(None),
) -> Any:
    """Cancel every open order on one symbol."""
    if not symbol:
        raise ValidationFailedError("symbol parameter is required")

    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        return await client.cancel_all_orders(symbol.upper())


@router.get("/orders/open")
async def get_open_orders(
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
    symbol: Optional[str] = Query(None),
) -> Any:
    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        return await client.get_open_orders(symbol.upper() if symbol else None)


@router.get("/orders/history")
async def get_order_history(
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
    symbol: Optional[str] = Query(None),
    limit: int = Query(500, ge=1, le=1000),
) -> Any:
    if not symbol:
        raise ValidationFailedError("symbol parameter is required")

    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        return await client.get_all_orders(symbol.upper(), limit)


@router.get("/trades/history")
async def get_trade_history(
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
    symbol: Optional[str] = Query(None),
    limit: int = Query(500, ge=1, le=1000),
) -> Any:
    if not symbol:
        raise ValidationFailedError("symbol parameter is required")

    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        return await client.get_my_trades(symbol.upper(), limit)
