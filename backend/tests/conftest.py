"""Pytest fixtures for testing."""
import os

# Settings are read at import time by db.session, so configure the
# environment before any application module is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "pytest-signing-secret-0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DEV_MODE", "false")

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.engine import make_url  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402
from testcontainers.postgres import PostgresContainer  # noqa: E402

from core.config import Settings, get_settings  # noqa: E402
from db.session import configure_sqlite  # noqa: E402
from models import Base, User  # noqa: E402
from services.url_scraper import fallback_metadata  # noqa: E402
from tests.helpers import create_user  # noqa: E402


@pytest.fixture(scope="session")
def database_url() -> Generator[str]:
    """
    Database for the test session.

    SQLite in memory by default. Set TEST_USE_POSTGRES=1 to run against a
    PostgreSQL container instead, or TEST_DATABASE_URL to use an existing one.
    """
    if os.environ.get("TEST_USE_POSTGRES") == "1":
        with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
            yield postgres.get_connection_url()
    else:
        yield os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest.fixture
def settings() -> Settings:
    """Application settings as seen by the code under test."""
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine for testing."""
    if make_url(database_url).get_backend_name() == "sqlite":
        # One shared connection so every session sees the same in-memory database
        engine = create_async_engine(database_url, poolclass=StaticPool)
        configure_sqlite(engine)
    else:
        engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_connection(async_engine: AsyncEngine) -> AsyncGenerator[AsyncConnection]:
    """
    Create a connection with a transaction that will be rolled back after the test.

    This provides test isolation - each test runs in its own transaction
    that is rolled back, so tests don't affect each other.
    """
    async with async_engine.connect() as connection:
        transaction = await connection.begin()
        try:
            yield connection
        finally:
            await transaction.rollback()


@pytest.fixture
async def db_session(db_connection: AsyncConnection) -> AsyncGenerator[AsyncSession]:
    """
    Create an async session bound to the test transaction.

    Uses savepoints so the session's flush/commit and the services'
    begin_nested() calls work within our outer test transaction.
    """
    session_factory = async_sessionmaker(
        bind=db_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def metadata_fetch(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    """
    Keep bookmark creation off the network.

    By default the fetch behaves as if the page were unreachable. Tests can
    set `return_value` or `side_effect` on the returned mock.
    """
    mock = AsyncMock(side_effect=lambda url, timeout=None: fallback_metadata(url))
    monkeypatch.setattr("services.bookmark_service.fetch_metadata", mock)
    return mock



@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    return await create_user(db_session, "alice")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """Create another test user for isolation tests."""
    return await create_user(db_session, "bob")


@pytest.fixture
async def client(
    db_session: AsyncSession,
    settings: Settings,  # noqa: ARG001
) -> AsyncGenerator[AsyncClient]:
    """Create an unauthenticated test client with database session override."""
    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
