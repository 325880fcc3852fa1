"""Pytest fixtures for testing."""
import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from models.base import Base
from models.content import Content
from models.user import User
from services.content_service import create_content, platform_cache
from services.metadata_extractor import build_fallback_metadata
from services.url_normalizer import Platform


@pytest.fixture(scope="session")
def database_url() -> Generator[str]:
    """
    Database URL for the test session, also exported as DATABASE_URL.

    Uses TEST_DATABASE_URL when set (e.g. a CI service container); otherwise
    starts a throwaway PostgreSQL container. This must be set before any app
    imports that trigger Settings validation.
    """
    url = os.environ.get("TEST_DATABASE_URL")
    if url:
        os.environ["DATABASE_URL"] = url
        yield url
        return

    with PostgresContainer("postgres:16", driver="asyncpg") as postgres:
        url = postgres.get_connection_url()
        os.environ["DATABASE_URL"] = url
        yield url


@pytest.fixture(autouse=True)
def reset_platform_cache() -> Generator[None]:
    """Platform rows are rolled back with each test, so cached ids must not leak."""
    platform_cache.invalidate()
    yield
    platform_cache.invalidate()


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine for testing."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
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

    join_transaction_mode="create_savepoint" lets services open their own
    savepoints (begin_nested) inside the outer test transaction.
    """
    session_factory = async_sessionmaker(
        bind=db_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A user known to the bot, as created on first contact."""
    user = User(telegram_id="1001", telegram_username="alice")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
async def client(
    db_session: AsyncSession,
    test_user: User,
) -> AsyncGenerator[AsyncClient]:
    """Test client authenticated as test_user, with the database session overridden."""
    # Clear the settings cache so it picks up DATABASE_URL from environment
    from core.config import get_settings

    get_settings.cache_clear()

    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-User-Id": str(test_user.id)},
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_content(
    db_session: AsyncSession,
    test_user: User,
) -> Callable[..., Awaitable[Content]]:
    """Factory that saves a content for test_user (or another user) without network calls."""
    async def _make(
        url: str,
        *,
        title: str | None = None,
        description: str | None = None,
        platform: Platform = Platform.WEB,
        tags: list[str] | None = None,
        memo: str | None = None,
        user_id: UUID | None = None,
    ) -> Content:
        metadata = build_fallback_metadata(url, platform)
        metadata.title = title
        metadata.description = description
        return await create_content(
            db_session,
            user_id or test_user.id,
            metadata,
            tag_names=tags,
            memo=memo,
        )

    return _make
