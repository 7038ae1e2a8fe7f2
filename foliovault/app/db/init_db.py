"""Database initialization utilities."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from foliovault.app.core.logging import get_logger
from foliovault.app.db.async_session import get_async_engine
from foliovault.app.db.base import Base

logger = get_logger(__name__)


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """Create all database tables."""
    if engine is None:
        engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def verify_connection(engine: AsyncEngine | None = None) -> bool:
    """Return True when ``SELECT 1`` succeeds."""
    try:
        if engine is None:
            engine = get_async_engine()
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
