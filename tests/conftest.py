from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tgdir.api.deps import get_db_session, get_metadata_fetcher, get_payment_gateway
from tgdir.api.main import app
from tgdir.core.auth import create_access_token
from tgdir.infrastructure.db.base import Base

from tests.utils import FakeMetadataFetcher, FakePaymentGateway, make_metadata


@pytest.fixture()
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tgdir.db'}", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Provide a database session for tests that need direct DB access."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
def fetcher() -> FakeMetadataFetcher:
    fake = FakeMetadataFetcher()
    fake.add(
        make_metadata(
            name="DevTR",
            username="devtr",
            description="Turkish developers #python #django community",
            members=1200,
            tags=["python", "django"],
        )
    )
    return fake


@pytest.fixture()
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture()
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    fetcher: FakeMetadataFetcher,
    gateway: FakePaymentGateway,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the test database and fake gateways."""

    async def override_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_metadata_fetcher] = lambda: fetcher
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_token() -> str:
    """Generate admin JWT token for testing."""
    return create_access_token("admin-user", roles=["admin"], username="admin")


@pytest.fixture()
def user_token() -> str:
    """Generate user JWT token for testing."""
    return create_access_token("user-1", roles=["user"], username="alice")
