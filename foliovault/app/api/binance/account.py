"""Account balances for the authenticated user."""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from fastapi import APIRouter

from foliovault.app.api.deps import ExchangeHttpClient, RateLimitedUser
from foliovault.app.db.dependencies import SessionDep
from foliovault.app.exceptions import NoCredentialsConfiguredError
from foliovault.app.exchange.client import BinanceClient
from foliovault.app.services.credentials import acquire_credentials

router = APIRouter(prefix="/v1/binance", tags=["account"])


def _is_non_zero(balance: Dict[str, Any]) -> bool:
    try:
        return Decimal(str(balance.get("free", "0"))) > 0 or Decimal(str(balance.get("locked", "0"))) > 0
    except InvalidOperation:
        return False


@router.get("/account")
async def get_account(
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
) -> Dict[str, List[Dict[str, Any]]]:
    """Non-zero balances of the user's Binance account."""
    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        data = await client.get_account_info()

    balances = [
        {"asset": b.get("asset"), "free": b.get("free"), "locked": b.get("locked")}
        for b in data.get("balances", [])
        if _is_non_zero(b)
    ]
    return {"balances": balances}


@router.post("/user-data-stream")
async def create_user_data_stream(
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
) -> Any:
    """Listen key for the user data websocket stream."""
    async with acquire_credentials(session, user.id) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        client = BinanceClient(creds.api_key, creds.secret_key, http_client=http_client)
        return await client.create_listen_key()
