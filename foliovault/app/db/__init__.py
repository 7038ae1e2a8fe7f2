"""Database package.

This package provides:
- Database models (User, ExchangeApiKey)
- Async session management and the SessionDep dependency
- CRUD operations
"""

from foliovault.app.db.base import Base
from foliovault.app.db.models import ExchangeApiKey, User
from foliovault.app.db.async_session import (
    close_async_engine,
    get_async_engine,
    get_async_session,
    get_async_session_maker,
    get_db,
)
from foliovault.app.db.dependencies import SessionDep

__all__ = [
    "Base",
    "User",
    "ExchangeApiKey",
    "close_async_engine",
    "get_async_engine",
    "get_async_session",
    "get_async_session_maker",
    "get_db",
    "SessionDep",
]
