"""User registration.

Issues the bearer token used by every authenticated endpoint. The token
is shown once; only its SHA256 hash is stored.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import IntegrityError

from foliovault.app.api.deps import ClientIpDep, RateLimiterDep
from foliovault.app.core.security import generate_api_token, hash_api_token
from foliovault.app.db.crud import create_user
from foliovault.app.db.dependencies import SessionDep
from foliovault.app.exceptions import ConflictError
from foliovault.app.middleware.rate_limit import policies, raise_if_limited

router = APIRouter(prefix="/v1/users", tags=["users"])


class UserRegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("invalid email")
        return v


class UserPublic(BaseModel):
    id: str
    name: str
    email: str
    created_at: datetime


class UserRegisterResponse(BaseModel):
    user: UserPublic
    api_token: str


@router.post(
    "/register",
    response_model=UserRegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    data: UserRegisterRequest,
    ip: ClientIpDep,
    limiter: RateLimiterDep,
    session: SessionDep,
) -> UserRegisterResponse:
    raise_if_limited(
        limiter.check(policies.SIGNUP, ip),
        "Too many signup attempts. Please try again later.",
    )

    api_token = generate_api_token()
    try:
        # Flush to surface email conflicts before returning the token.
        user = await create_user(
            session, email=data.email, name=data.name, api_token_hash=hash_api_token(api_token)
        )
    except IntegrityError:
        raise ConflictError("Email already registered.")

    return UserRegisterResponse(
        user=UserPublic(id=user.id, name=user.name, email=user.email, created_at=user.created_at),
        api_token=api_token,
    )
