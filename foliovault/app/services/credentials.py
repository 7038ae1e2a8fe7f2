"""Exchange credential resolution.

Picks which stored key a request should use and decrypts it for the
duration of a single signing call. Two selection rules exist:

- read: the most recently created active key
- trading: the oldest active key whose label does not contain "read"
  (case-insensitive)

The trading rule relies on label text rather than a capability flag.
It is kept as-is for compatibility with existing key labels.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from foliovault.app.core.logging import get_logger
from foliovault.app.db.crud.exchange_key import find_active_keys_for_user, mark_used
from foliovault.app.db.models import ExchangeApiKey

logger = get_logger(__name__)


@dataclass
class Credentials:
    """Decrypted exchange credentials. Never persisted or cached."""
    api_key: str = field(repr=False)
    secret_key: str = field(repr=False)
    key_id: Optional[str] = None
    label: Optional[str] = None


def select_read_key(keys: Sequence[ExchangeApiKey]) -> Optional[ExchangeApiKey]:
    """Newest active key, or None."""
    active = [k for k in keys if k.is_active]
    if not active:
        return None
    return max(active, key=lambda k: k.created_at)


def select_trading_key(keys: Sequence[ExchangeApiKey]) -> Optional[ExchangeApiKey]:
    """Oldest active key whose label does not mention "read", or None."""
    candidates = [
        k for k in keys if k.is_active and "read" not in (k.label or "").lower()
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda k: k.created_at)


async def _resolve(session: AsyncSession, user_id: str, trading: bool) -> Optional[Credentials]:
    keys = await find_active_keys_for_user(session, user_id)
    key = select_trading_key(keys) if trading else select_read_key(keys)
    if key is None:
        logger.info(
            "No matching exchange key",
            extra={"user_id": user_id, "trading": trading},
        )
        return None

    await mark_used(session, key.id)
    # last_used_at must survive a failed exchange call.
    await session.commit()

    # DecryptionError propagates to the caller.
    return Credentials(
        api_key=key.decrypt_api_key(),
        secret_key=key.decrypt_secret_key(),
        key_id=key.id,
        label=key.label,
    )


async def resolve_read_credentials(session: AsyncSession, user_id: str) -> Optional[Credentials]:
    """Credentials for account queries; None when the user has no active key."""
    return await _resolve(session, user_id, trading=False)


async def resolve_trading_credentials(session: AsyncSession, user_id: str) -> Optional[Credentials]:
    """Credentials allowed to trade; None when no key qualifies."""
    return await _resolve(session, user_id, trading=True)


@asynccontextmanager
async def acquire_credentials(
    session: AsyncSession,
    user_id: str,
    trading: bool = False,
) -> AsyncIterator[Optional[Credentials]]:
    """Hold decrypted credentials only for the body of the ``async with``.

    On exit the plaintext fields are blanked, so a ``creds`` name that
    outlives the block no longer carries key material.

    Usage:
        async with acquire_credentials(session, user.id, trading=True) as creds:
            if creds is None:
                raise NoCredentialsConfiguredError()
            signed = sign_request(params, creds.secret_key, api_key=creds.api_key)
    """
    credentials = await _resolve(session, user_id, trading)
    try:
        yield credentials
    finally:
        if credentials is not None:
            credentials.api_key = ""
            credentials.secret_key = ""
