"""Server-side signing for clients that call Binance directly.

The client receives the API key, the signed query string and its
signature; the secret never leaves the server.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from foliovault.app.api.deps import RateLimitedUser
from foliovault.app.core.config import settings
from foliovault.app.core.logging import get_logger
from foliovault.app.db.dependencies import SessionDep
from foliovault.app.exceptions import NoCredentialsConfiguredError, ValidationFailedError
from foliovault.app.exchange.signer import sign_request
from foliovault.app.services.credentials import acquire_credentials

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/binance", tags=["sign"])


class SignRequestBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    method: Optional[str] = None
    endpoint: Optional[str] = None
    params: Dict[str, str | int | float | bool] = Field(default_factory=dict)
    is_trading: bool = Field(False, alias="isTrading")


class SignResponse(BaseModel):
    apiKey: str
    signature: str
    timestamp: int
    queryString: str


@router.post("/sign", response_model=SignResponse)
async def sign(
    data: SignRequestBody,
    user: RateLimitedUser,
    session: SessionDep,
) -> Dict[str, Any]:
    if not data.method or not data.endpoint:
        raise ValidationFailedError("Missing method or endpoint")

    async with acquire_credentials(session, user.id, trading=data.is_trading) as creds:
        if creds is None:
            raise NoCredentialsConfiguredError()
        signed = sign_request(
            data.params,
            creds.secret_key,
            api_key=creds.api_key,
            recv_window=settings.binance_recv_window_ms,
        )

    logger.info(
        f"Signed {data.method.upper()} {data.endpoint}",
        extra={"user_id": user.id, "trading": data.is_trading},
    )
    return signed.to_dict()
