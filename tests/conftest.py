"""Pytest fixtures for the predictions engine.

Tests run against an in-memory SQLite database by default. Point
``TEST_DATABASE_URL`` at a disposable Postgres (and set ``PYTEST_ALLOW_DB=1``)
to run the same suite against the live stack.
"""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from httpx import AsyncClient, ASGITransport
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from dotenv import load_dotenv

from predictions.services.standings_service import invalidate_standings_cache
from predictions.utils.db_async import register_schemas
from tests.helpers import FakeNotifier

load_dotenv()

SQLITE_URL = "sqlite+aiosqlite://"


def _load_database_url() -> str:
    """Resolve the database URL for tests, enforcing an explicit opt-in for Postgres."""
    test_db_url = os.getenv("TEST_DATABASE_URL")
    if not test_db_url:
        return SQLITE_URL
    pytest_allow_db = int(os.getenv("PYTEST_ALLOW_DB", "0"))
    if pytest_allow_db != 1:
        raise RuntimeError(
            "Running tests against TEST_DATABASE_URL requires setting PYTEST_ALLOW_DB=1 to"
            " confirm the configured database is safe to mutate."
        )
    return test_db_url


@pytest.fixture(scope="session")
def database_url() -> str:
    return _load_database_url()


@pytest_asyncio.fixture()
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Yield an engine with a freshly created schema for each test."""
    register_schemas()

    if database_url == SQLITE_URL:
        # one shared connection so every session sees the same in-memory database
        engine = create_async_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(database_url, echo=False, pool_pre_ping=True)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    try:
        yield engine
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all)
        await engine.dispose()


@pytest.fixture()
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture()
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Provide a session with no open transaction; services begin their own."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture(autouse=True)
def _clear_standings_cache():
    invalidate_standings_cache()
    yield
    invalidate_standings_cache()


@pytest_asyncio.fixture()
async def app_client(
    db_session: AsyncSession, notifier: FakeNotifier
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an HTTP client with the application wired to the test session."""
    try:
        from predictions.main import app
    except ValidationError as exc:  # pragma: no cover - guard for misconfigured env
        pytest.skip(f"App configuration failed: {exc}")

    from predictions.services.notification_service import get_notifier
    from predictions.utils.db_async import get_session

    async def _get_session_override() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_session] = _get_session_override
    app.dependency_overrides[get_notifier] = lambda: notifier
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.pop(get_session, None)
        app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Ensure HTTPX uses asyncio backend during tests."""
    return "asyncio"
