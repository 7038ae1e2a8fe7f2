"""Tests for the public market data endpoints."""

from httpx import Response

HOST = "api.binance.com"


def test_depth_proxies_order_book(client, respx_mock):
    route = respx_mock.get(host=HOST, path="/api/v3/depth").mock(
        return_value=Response(200, json={"lastUpdateId": 1, "bids": [], "asks": []})
    )

    response = client.get("/v1/binance/market/depth?symbol=btcusdt&limit=20")

    assert response.status_code == 200
    assert response.json()["lastUpdateId"] == 1
    assert route.calls.last.request.url.params["symbol"] == "BTCUSDT"
    assert route.calls.last.request.url.params["limit"] == "20"


def test_depth_rejects_unsupported_limit(client):
    response = client.get("/v1/binance/market/depth?symbol=BTCUSDT&limit=7")

    assert response.status_code == 400
    assert response.json()["message"].startswith("limit must be one of: 5, 10, 20")


def test_symbol_is_required(client):
    for path in ("depth", "klines", "trades"):
        response = client.get(f"/v1/binance/market/{path}")
        assert response.status_code == 400
        assert response.json()["message"] == "symbol parameter is required"


def test_klines_interval_is_validated(client):
    assert client.get("/v1/binance/market/klines?symbol=BTCUSDT&interval=1s").status_code == 400
    assert client.get("/v1/binance/market/klines?symbol=BTCUSDT").status_code == 400


def test_klines_limit_is_clamped(client, respx_mock):
    route = respx_mock.get(host=HOST, path="/api/v3/klines").mock(return_value=Response(200, json=[]))

    response = client.get("/v1/binance/market/klines?symbol=BTCUSDT&interval=1h&limit=5000")

    assert response.status_code == 200
    assert route.calls.last.request.url.params["interval"] == "1h"
    assert route.calls.last.request.url.params["limit"] == "1000"


def test_ticker_without_symbol(client, respx_mock):
    route = respx_mock.get(host=HOST, path="/api/v3/ticker/24hr").mock(return_value=Response(200, json=[]))

    assert client.get("/v1/binance/market/ticker").status_code == 200
    assert "symbol" not in route.calls.last.request.url.params


def test_public_limit_is_per_ip(client, limiter, respx_mock):
    respx_mock.get(host=HOST, path="/api/v3/exchangeInfo").mock(return_value=Response(200, json={"symbols": []}))
    for _ in range(60):
        limiter.check_public("203.0.113.7")

    limited = client.get("/v1/binance/market/exchange-info", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
    other_ip = client.get("/v1/binance/market/exchange-info", headers={"X-Forwarded-For": "198.51.100.2"})

    assert limited.status_code == 429
    assert limited.headers["Retry-After"] == "60"
    assert other_ip.status_code == 200


def test_exchange_errors_surface_as_502(client, respx_mock):
    respx_mock.get(host=HOST, path="/api/v3/trades").mock(
        return_value=Response(400, json={"code": -1121, "msg": "Invalid symbol."})
    )

    response = client.get("/v1/binance/market/trades?symbol=NOPE")

    assert response.status_code == 502
    assert response.json()["code"] == -1121
