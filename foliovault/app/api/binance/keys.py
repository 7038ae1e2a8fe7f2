"""Management of a user's stored Binance API keys.

Keys are checked against Binance before they are stored and are only
ever returned masked.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field, field_validator

from foliovault.app.api.deps import ExchangeHttpClient, RateLimitedUser
from foliovault.app.core.logging import get_logger
from foliovault.app.core.security import encrypt_secret, mask_key
from foliovault.app.db.crud import create_key, delete_key, list_keys_for_user
from foliovault.app.db.dependencies import SessionDep
from foliovault.app.exceptions import ExchangeClientError, NotFoundError, ValidationFailedError
from foliovault.app.exchange.client import BinanceClient

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/binance/keys", tags=["keys"])


class CreateKeyRequest(BaseModel):
    api_key: str = Field(..., alias="apiKey", max_length=256)
    secret_key: str = Field(..., alias="secretKey", max_length=256)
    label: Optional[str] = Field(None, max_length=100)

    @field_validator("api_key")
    @classmethod
    def normalize_api_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("API Key is required.")
        return v

    @field_validator("secret_key")
    @classmethod
    def normalize_secret_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Secret Key is required.")
        return v

    @field_validator("label")
    @classmethod
    def normalize_label(cls, v: Optional[str]) -> str:
        v = (v or "").strip()
        return v or "Default"


class KeyPublic(BaseModel):
    id: str
    label: str
    maskedApiKey: str
    permissions: str
    isActive: bool
    lastUsedAt: Optional[datetime] = None
    createdAt: datetime


@router.get("", response_model=List[KeyPublic])
async def list_keys(user: RateLimitedUser, session: SessionDep) -> List[KeyPublic]:
    keys = await list_keys_for_user(session, user.id)
    return [
        KeyPublic(
            id=k.id,
            label=k.label,
            maskedApiKey=mask_key(k.decrypt_api_key()),
            permissions=k.permissions,
            isActive=k.is_active,
            lastUsedAt=k.last_used_at,
            createdAt=k.created_at,
        )
        for k in keys
    ]


@router.post("", response_model=KeyPublic, status_code=status.HTTP_201_CREATED)
async def add_key(
    data: CreateKeyRequest,
    user: RateLimitedUser,
    session: SessionDep,
    http_client: ExchangeHttpClient,
) -> KeyPublic:
    client = BinanceClient(data.api_key, data.secret_key, http_client=http_client)
    try:
        account = await client.get_account_info()
    except ExchangeClientError as e:
        raise ValidationFailedError(
            f"Binance API key validation failed: {e.original_message or 'Invalid API key or secret.'}"
        )

    permissions = "trade" if isinstance(account, dict) and account.get("canTrade") else "read"
    key = await create_key(
        session,
        user_id=user.id,
        encrypted_api_key=encrypt_secret(data.api_key),
        encrypted_secret=encrypt_secret(data.secret_key),
        label=data.label or "Default",
        permissions=permissions,
    )
    logger.info(f"Stored Binance key '{key.label}'", extra={"user_id": user.id})

    return KeyPublic(
        id=key.id,
        label=key.label,
        maskedApiKey=mask_key(data.api_key),
        permissions=key.permissions,
        isActive=key.is_active,
        lastUsedAt=None,
        createdAt=key.created_at,
    )


@router.delete("/{key_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_key(key_id: str, user: RateLimitedUser, session: SessionDep) -> Response:
    if not await delete_key(session, key_id, user.id):
        raise NotFoundError("API key not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
