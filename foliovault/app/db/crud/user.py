"""User CRUD operations."""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from foliovault.app.db.models import User


async def lookup_user_by_token_hash(
    session: AsyncSession,
    api_token_hash: str
) -> Optional[User]:
    """Find a user by the SHA256 hash of their bearer token.

    Args:
        session: Database session from FastAPI dependency
        api_token_hash: The hashed token to look up

    Returns:
        User object if found, None otherwise
    """
    result = await session.execute(
        select(User).where(User.api_token_hash == api_token_hash)
    )
    return result.scalar_one_or_none()


async def get_user_by_id(session: AsyncSession, user_id: str) -> Optional[User]:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    email: str,
    name: str,
    api_token_hash: str,
) -> User:
    """Insert a user and flush so the id is populated.

    Raises:
        sqlalchemy.exc.IntegrityError: If the email is already registered
    """
    user = User(email=email, name=name, api_token_hash=api_token_hash)
    session.add(user)
    await session.flush()
    return user
