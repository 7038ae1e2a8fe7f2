"""Exchange API key CRUD operations.

Keys are stored encrypted; nothing here decrypts them.
"""
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from foliovault.app.db.models import ExchangeApiKey


async def find_active_keys_for_user(
    session: AsyncSession,
    user_id: str
) -> List[ExchangeApiKey]:
    """Active keys of a user, oldest first.

    Args:
        session: Database session from FastAPI dependency
        user_id: Owner of the keys

    Returns:
        Keys ordered by created_at ascending
    """
    result = await session.execute(
        select(ExchangeApiKey)
        .where(ExchangeApiKey.user_id == user_id, ExchangeApiKey.is_active.is_(True))
        .order_by(ExchangeApiKey.created_at.asc())
    )
    return list(result.scalars().all())


async def mark_used(session: AsyncSession, key_id: str) -> datetime:
    """Stamp ``last_used_at`` with the current time.

    Every call writes a new timestamp.

    Returns:
        The timestamp written
    """
    now = datetime.now(timezone.utc)
    await session.execute(
        update(ExchangeApiKey)
        .where(ExchangeApiKey.id == key_id)
        .values(last_used_at=now)
        .execution_options(synchronize_session="fetch")
    )
    return now


async def list_keys_for_user(session: AsyncSession, user_id: str) -> List[ExchangeApiKey]:
    """All keys of a user, newest first."""
    result = await session.execute(
        select(ExchangeApiKey)
        .where(ExchangeApiKey.user_id == user_id)
        .order_by(ExchangeApiKey.created_at.desc())
    )
    return list(result.scalars().all())


async def get_key_for_user(
    session: AsyncSession,
    key_id: str,
    user_id: str
) -> Optional[ExchangeApiKey]:
    result = await session.execute(
        select(ExchangeApiKey).where(
            ExchangeApiKey.id == key_id, ExchangeApiKey.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


async def create_key(
    session: AsyncSession,
    user_id: str,
    encrypted_api_key: str,
    encrypted_secret: str,
    label: str = "Default",
    permissions: str = "read",
    created_at: Optional[datetime] = None,
) -> ExchangeApiKey:
    key = ExchangeApiKey(
        user_id=user_id,
        label=label,
        encrypted_api_key=encrypted_api_key,
        encrypted_secret=encrypted_secret,
        permissions=permissions,
        is_active=True,
    )
    if created_at is not None:
        key.created_at = created_at
    session.add(key)
    await session.flush()
    return key


async def delete_key(session: AsyncSession, key_id: str, user_id: str) -> bool:
    """Delete a key owned by ``user_id``.

    Returns:
        True if a row was deleted, False if no such key exists for the user
    """
    result = await session.execute(
        delete(ExchangeApiKey).where(
            ExchangeApiKey.id == key_id, ExchangeApiKey.user_id == user_id
        )
    )
    return result.rowcount > 0
