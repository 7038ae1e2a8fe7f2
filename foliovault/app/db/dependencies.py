"""Database dependencies for FastAPI dependency injection.

Usage:
    from foliovault.app.db.dependencies import SessionDep

    @router.get("/items")
    async def get_items(session: SessionDep):
        result = await session.execute(select(Item))
        return result.scalars().all()
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from foliovault.app.db.async_session import get_db

# Usage: async def handler(session: SessionDep)
SessionDep = Annotated[AsyncSession, Depends(get_db)]

__all__ = ["SessionDep"]
