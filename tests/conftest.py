import asyncio
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from foliovault.app.core.config import settings
from foliovault.app.core.security import encrypt_secret, hash_api_token
from foliovault.app.db.async_session import get_db
from foliovault.app.db.base import Base
from foliovault.app.db.models import ExchangeApiKey, User
from foliovault.app.middleware.rate_limit import (
    InMemoryRateLimitStore,
    RateLimiter,
    get_rate_limiter,
)

TEST_ENCRYPTION_KEY = "0123456789abcdef" * 4
TEST_TOKEN = "test-token"
AUTH_HEADERS = {"Authorization": f"Bearer {TEST_TOKEN}"}

BINANCE_API_KEY = "A" * 64
BINANCE_SECRET = "s" * 64


def sqlite_url(path) -> str:
    # SQLAlchemy expects 4 slashes for absolute paths.
    return f"sqlite+aiosqlite:////{str(path).lstrip('/')}"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture(autouse=True)
def encryption_key(monkeypatch):
    monkeypatch.setattr(settings, "encryption_key", TEST_ENCRYPTION_KEY)
    monkeypatch.setattr(settings, "binance_retry_base_delay", 0.0)
    return TEST_ENCRYPTION_KEY


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock) -> RateLimiter:
    return RateLimiter(InMemoryRateLimitStore(clock=clock))


@pytest.fixture
def session_maker(tmp_path):
    engine = create_async_engine(sqlite_url(tmp_path / "foliovault_test.db"), poolclass=NullPool)

    async def init_db() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_db())
    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    asyncio.run(engine.dispose())


@pytest_asyncio.fixture
async def session(tmp_path):
    engine = create_async_engine(sqlite_url(tmp_path / "foliovault_async.db"), poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with maker() as s:
        yield s
    await engine.dispose()


def seed_user(session_maker, token: str = TEST_TOKEN, email: str = "alice@example.com") -> str:
    async def _seed() -> str:
        async with session_maker() as s:
            user = User(email=email, name="Alice", api_token_hash=hash_api_token(token))
            s.add(user)
            await s.commit()
            return user.id

    return asyncio.run(_seed())


def seed_key(
    session_maker,
    user_id: str,
    label: str = "Default",
    api_key: str = BINANCE_API_KEY,
    secret: str = BINANCE_SECRET,
    created_at: datetime | None = None,
    is_active: bool = True,
) -> str:
    async def _seed() -> str:
        async with session_maker() as s:
            key = ExchangeApiKey(
                user_id=user_id,
                label=label,
                encrypted_api_key=encrypt_secret(api_key),
                encrypted_secret=encrypt_secret(secret),
                is_active=is_active,
                created_at=created_at or datetime.now(timezone.utc),
            )
            s.add(key)
            await s.commit()
            return key.id

    return asyncio.run(_seed())


def load_key(session_maker, key_id: str) -> ExchangeApiKey:
    async def _load() -> ExchangeApiKey:
        async with session_maker() as s:
            return await s.get(ExchangeApiKey, key_id)

    return asyncio.run(_load())


@pytest.fixture
def app(session_maker, limiter):
    from foliovault.app.main import create_app

    application = create_app()

    async def override_get_db():
        async with session_maker() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_rate_limiter] = lambda: limiter
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
