from httpx import Response

from conftest import AUTH_HEADERS, load_key, seed_key, seed_user

HOST = "api.binance.com"


def test_account_returns_non_zero_balances(client, session_maker, respx_mock):
    user_id = seed_user(session_maker)
    seed_key(session_maker, user_id)
    respx_mock.get(host=HOST, path="/api/v3/account").mock(
        return_value=Response(
            200,
            json={
                "canTrade": True,
                "balances": [
                    {"asset": "BTC", "free": "0.50000000", "locked": "0.00000000"},
                    {"asset": "ETH", "free": "0.00000000", "locked": "0.00000000"},
                    {"asset": "BNB", "free": "0.00000000", "locked": "1.00000000"},
                ],
            },
        )
    )

    response = client.get("/v1/binance/account", headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert [b["asset"] for b in response.json()["balances"]] == ["BTC", "BNB"]


def test_account_call_records_key_use(client, session_maker, respx_mock):
    user_id = seed_user(session_maker)
    key_id = seed_key(session_maker, user_id)
    assert load_key(session_maker, key_id).last_used_at is None
    respx_mock.get(host=HOST, path="/api/v3/account").mock(
        return_value=Response(200, json={"canTrade": True, "balances": []})
    )

    assert client.get("/v1/binance/account", headers=AUTH_HEADERS).status_code == 200
    assert load_key(session_maker, key_id).last_used_at is not None


def test_exchange_error_keeps_key_use(client, session_maker, respx_mock):
    user_id = seed_user(session_maker)
    key_id = seed_key(session_maker, user_id)
    respx_mock.get(host=HOST, path="/api/v3/account").mock(
        return_value=Response(400, json={"code": -2015, "msg": "Invalid API-key, IP, or permissions for action."})
    )

    response = client.get("/v1/binance/account", headers=AUTH_HEADERS)

    assert response.status_code == 502
    assert response.json()["code"] == -2015
    assert load_key(session_maker, key_id).last_used_at is not None


def test_account_without_keys(client, session_maker):
    seed_user(session_maker)

    response = client.get("/v1/binance/account", headers=AUTH_HEADERS)

    assert response.status_code == 400
    assert response.json()["error"] == "no_credentials"


def test_user_data_stream_returns_listen_key(client, session_maker, respx_mock):
    user_id = seed_user(session_maker)
    seed_key(session_maker, user_id)
    respx_mock.post(host=HOST, path="/api/v3/userDataStream").mock(
        return_value=Response(200, json={"listenKey": "pqia91ma19a5s61cv6a81va65sdf19v8a65a1a5s61cv6a81va65sdf19v8a65a1"})
    )

    response = client.post("/v1/binance/user-data-stream", headers=AUTH_HEADERS)

    assert response.status_code == 200
    assert response.json()["listenKey"].startswith("pqia91")
