"""
Test infrastructure for the Blog Posts API.

Strategy
--------
- SQLite in-memory via aiosqlite replaces Postgres, so the suite needs no
  running database.
- StaticPool makes every session share the one in-memory connection;
  a second connection would see an empty database.
- The app's get_db dependency is overridden so requests use the test
  session factory.
- Tables are created before and dropped after each test.
- Redis is disabled (cache._redis = None); CacheManager treats that as a
  permanent miss, so every request exercises the database path.
  ``cached_client`` swaps in ``FakeRedis`` for write-then-read checks.
- Protected routes get real HS256 bearer tokens from ``create_access_token``
  through the ``auth_headers`` fixture.
"""
import fnmatch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth import create_access_token
from app.cache import cache
from app.database import Base, get_db
from app.main import app
from app.middleware import install_query_counter

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live session for tests that seed or inspect the database directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    cache._redis = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    """Return a factory building ``Authorization`` headers for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


class FakeRedis:
    """In-process stand-in for the redis.asyncio calls CacheManager makes."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value

    async def scan_iter(self, match):
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest_asyncio.fixture
async def cached_client(async_client: AsyncClient, fake_redis: FakeRedis) -> AsyncClient:
    """``async_client`` with the post cache backed by ``FakeRedis``."""
    cache._redis = fake_redis
    try:
        yield async_client
    finally:
        cache._redis = None


@pytest.fixture
def failing_commit():
    """
    Route requests to sessions whose COMMIT fails, as when the database
    drops the connection mid-transaction.  Reads and flushes still work.
    """

    async def broken_commit():
        raise OperationalError("COMMIT", {}, Exception("server closed the connection"))

    async def failing_commit_db():
        async with async_session_test() as session:
            session.commit = broken_commit
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = failing_commit_db
    try:
        yield
    finally:
        app.dependency_overrides[get_db] = override_get_db
