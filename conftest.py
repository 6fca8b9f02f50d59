import os
from typing import AsyncGenerator

# Tests run against an in-memory SQLite database unless told otherwise
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db

# Import all models so metadata includes every table
from services.members_service import models as _member_models  # noqa: F401
from services.attendance_service import models as _attendance_models  # noqa: F401
from services.performance_service import models as _performance_models  # noqa: F401

get_settings.cache_clear()
settings = get_settings()


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh database per test.

    In-memory SQLite needs a single shared connection (StaticPool) so every
    session in the test sees the same tables.
    """
    if settings.uses_sqlite:
        engine = create_async_engine(
            settings.DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(settings.DATABASE_URL, future=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session configured like the application's AsyncSessionLocal.

    Service functions commit their own work, so isolation comes from the
    per-test engine rather than an outer transaction.
    """
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()

    try:
        yield session
    finally:
        await session.close()


async def _client_for(app, db_session) -> AsyncGenerator[AsyncClient, None]:
    async def _override_db():
        yield db_session

    app.dependency_overrides[get_async_db] = _override_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def attendance_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for the attendance service with the DB dependency overridden."""
    from services.attendance_service.app.main import app

    async for ac in _client_for(app, db_session):
        yield ac


@pytest_asyncio.fixture
async def performance_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for the performance service with the DB dependency overridden."""
    from services.performance_service.app.main import app

    async for ac in _client_for(app, db_session):
        yield ac
