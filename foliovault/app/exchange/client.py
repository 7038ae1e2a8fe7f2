"""Binance spot REST client.

Public market data is sent unsigned. Account and order endpoints are
signed with the user's secret and carry the API key in X-MBX-APIKEY.
"""

import json
from typing import Any, Dict, Mapping, Optional

import httpx

from foliovault.app.core.config import settings
from foliovault.app.core.http_client import create_http_client, get_http_client_or_none
from foliovault.app.core.logging import get_logger
from foliovault.app.exceptions import ExchangeClientError
from foliovault.app.exchange.retry import RetryPolicy, call_with_retry
from foliovault.app.exchange.signer import build_query_string, sign_request

logger = get_logger(__name__)

BINANCE_ERROR_MESSAGES: Dict[int, str] = {
    -1000: "Unknown error from Binance",
    -1001: "Binance is temporarily unavailable (disconnected)",
    -1002: "Unauthorized - invalid API key",
    -1003: "Rate limit exceeded on Binance side",
    -1006: "Unexpected response from Binance",
    -1007: "Request timeout",
    -1013: "Invalid quantity for this symbol",
    -1014: "Unsupported order combination",
    -1015: "Too many new orders",
    -1016: "Unsupported function",
    -1020: "Unsupported operation",
    -1021: "Timestamp outside recvWindow",
    -1022: "Invalid signature",
    -1100: "Illegal characters in parameter",
    -1101: "Too many parameters",
    -1102: "Required parameter missing",
    -1103: "Unknown parameter",
    -1104: "Unread parameters",
    -1105: "Parameter is empty",
    -1106: "Parameter not required",
    -1111: "Invalid precision",
    -1112: "No open orders",
    -1114: "Invalid timeInForce",
    -1115: "Invalid orderType",
    -1116: "Invalid side",
    -1117: "Empty recvWindow",
    -1118: "Trigger price type invalid",
    -1119: "Invalid parameter",
    -2010: "New order rejected",
    -2011: "Cancel rejected",
    -2013: "Order does not exist",
    -2014: "Invalid API key format",
    -2015: "Invalid API key, IP, or permissions",
}

KLINE_INTERVALS = (
    "1s", "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
)


def _raise_for_retryable_status(response: httpx.Response) -> None:
    if response.status_code == 429 or response.status_code >= 500:
        response.raise_for_status()


def parse_response(response: httpx.Response) -> Any:
    """Decode a Binance response, mapping error payloads to ExchangeClientError."""
    text = response.text
    try:
        data = json.loads(text)
    except ValueError:
        raise ExchangeClientError(-1006, "Failed to parse Binance response", text)

    if not response.is_success:
        payload = data if isinstance(data, dict) else {}
        code = payload.get("code", response.status_code)
        original = payload.get("msg") or text
        message = BINANCE_ERROR_MESSAGES.get(code) or payload.get("msg") or f"HTTP {response.status_code}"
        logger.warning(f"Binance error {code}: {message}")
        raise ExchangeClientError(code, message, original)

    return data


class BinanceClient:
    """Async client for the Binance spot REST API.

    Usage:
        client = BinanceClient(api_key=creds.api_key, secret_key=creds.secret_key)
        account = await client.get_account_info()
    """

    def __init__(
        self,
        api_key: str = "",
        secret_key: str = "",
        base_url: Optional[str] = None,
        recv_window: Optional[int] = None,
        max_retries: Optional[int] = None,
        retry_policy: Optional[RetryPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._secret_key = secret_key
        self.base_url = (base_url or settings.binance_base_url).rstrip("/")
        self.recv_window = recv_window if recv_window is not None else settings.binance_recv_window_ms
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=max_retries if max_retries is not None else settings.binance_max_retries,
            base_delay=settings.binance_retry_base_delay,
        )
        self._http_client = http_client

    def __repr__(self) -> str:
        return f"BinanceClient(base_url={self.base_url!r}, signed={bool(self._secret_key)})"

    async def _send(self, method: str, url: str, headers: Dict[str, str]) -> httpx.Response:
        client = self._http_client or get_http_client_or_none()
        if client is not None:
            response = await client.request(method, url, headers=headers)
        else:
            async with create_http_client() as own_client:
                response = await own_client.request(method, url, headers=headers)
        _raise_for_retryable_status(response)
        return response

    async def _request(self, method: str, endpoint: str, query: str, headers: Dict[str, str]) -> Any:
        url = f"{self.base_url}{endpoint}{'?' + query if query else ''}"
        logger.debug(f"Binance {method} {endpoint}")
        try:
            response = await call_with_retry(
                self._send,
                method,
                url,
                headers,
                policy=self.retry_policy,
                description=f"{method} {endpoint}",
            )
        except httpx.HTTPStatusError as e:
            # Retries exhausted on 429/5xx; map the last response.
            response = e.response
        except httpx.TimeoutException as e:
            raise ExchangeClientError(-1007, BINANCE_ERROR_MESSAGES[-1007], str(e)) from e
        except httpx.TransportError as e:
            raise ExchangeClientError(-1001, BINANCE_ERROR_MESSAGES[-1001], str(e)) from e
        return parse_response(response)

    async def public_request(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        query = build_query_string(params or {})
        return await self._request("GET", endpoint, query, {"Content-Type": "application/json"})

    async def signed_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        signed = sign_request(
            params or {},
            self._secret_key,
            api_key=self._api_key,
            recv_window=self.recv_window,
        )
        headers = {
            "Content-Type": "application/json",
            "X-MBX-APIKEY": self._api_key,
        }
        return await self._request(method, endpoint, signed.signed_query(), headers)

    # Market data (unsigned)

    async def get_ticker_24hr(self, symbol: Optional[str] = None) -> Any:
        return await self.public_request("/api/v3/ticker/24hr", {"symbol": symbol})

    async def get_ticker_price(self, symbol: Optional[str] = None) -> Any:
        return await self.public_request("/api/v3/ticker/price", {"symbol": symbol})

    async def get_order_book(self, symbol: str, limit: int = 100) -> Any:
        return await self.public_request("/api/v3/depth", {"symbol": symbol, "limit": limit})

    async def get_klines(self, symbol: str, interval: str, limit: int = 500) -> Any:
        return await self.public_request(
            "/api/v3/klines", {"symbol": symbol, "interval": interval, "limit": limit}
        )

    async def get_recent_trades(self, symbol: str, limit: int = 500) -> Any:
        return await self.public_request("/api/v3/trades", {"symbol": symbol, "limit": limit})

    async def get_exchange_info(self, symbol: Optional[str] = None) -> Any:
        return await self.public_request("/api/v3/exchangeInfo", {"symbol": symbol})

    # Account and trading (signed)

    async def get_account_info(self) -> Any:
        return await self.signed_request("GET", "/api/v3/account")

    async def new_order(
        self,
        symbol: str,
        side: str,
        type: str,
        quantity: Any,
        price: Any = None,
        stop_price: Any = None,
        time_in_force: Optional[str] = None,
        new_client_order_id: Optional[str] = None,
    ) -> Any:
        return await self.signed_request(
            "POST",
            "/api/v3/order",
            {
                "symbol": symbol,
                "side": side,
                "type": type,
                "quantity": quantity,
                "price": price,
                "stopPrice": stop_price,
                "timeInForce": time_in_force,
                "newClientOrderId": new_client_order_id,
                "newOrderRespType": "FULL",
            },
        )

    async def cancel_order(
        self,
        symbol: str,
        order_id: Optional[int] = None,
        orig_client_order_id: Optional[str] = None,
    ) -> Any:
        return await self.signed_request(
            "DELETE",
            "/api/v3/order",
            {"symbol": symbol, "orderId": order_id, "origClientOrderId": orig_client_order_id},
        )

    async def new_oco_order(
        self,
        symbol: str,
        side: str,
        quantity: Any,
        price: Any,
        stop_price: Any,
        stop_limit_price: Any = None,
        stop_limit_time_in_force: Optional[str] = None,
    ) -> Any:
        return await self.signed_request(
            "POST",
            "/api/v3/order/oco",
            {
                "symbol": symbol,
                "side": side,
                "quantity": quantity,
                "price": price,
                "stopPrice": stop_price,
                "stopLimitPrice": stop_limit_price,
                "stopLimitTimeInForce": stop_limit_time_in_force,
            },
        )

    async def cancel_all_orders(self, symbol: str) -> Any:
        return await self.signed_request("DELETE", "/api/v3/openOrders", {"symbol": symbol})

    async def get_open_orders(self, symbol: Optional[str] = None) -> Any:
        return await self.signed_request("GET", "/api/v3/openOrders", {"symbol": symbol})

    async def get_all_orders(self, symbol: str, limit: int = 500) -> Any:
        return await self.signed_request("GET", "/api/v3/allOrders", {"symbol": symbol, "limit": limit})

    async def get_my_trades(self, symbol: str, limit: int = 500) -> Any:
        return await self.signed_request("GET", "/api/v3/myTrades", {"symbol": symbol, "limit": limit})

    async def create_listen_key(self) -> Any:
        return await self.signed_request("POST", "/api/v3/userDataStream")


def create_public_client(http_client: Optional[httpx.AsyncClient] = None) -> BinanceClient:
    """Client without credentials, for market data."""
    return BinanceClient(http_client=http_client)
