"""Async test fixtures for unified sync tests using SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from unified.database import get_db
from unified.models.base import Base
from unified.models.tenant import Tenant
from unified.tests.fakes import make_connection, make_tenant


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """File-backed engine so concurrent sessions get their own connections."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'unified.db'}", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(file_engine):
    return async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def tenant(db: AsyncSession):
    return await make_tenant(db)


@pytest_asyncio.fixture
async def hubspot_connection(db: AsyncSession, tenant: Tenant):
    return await make_connection(db, tenant, "hubspot")


@pytest_asyncio.fixture
async def client(engine):
    """HTTPX async test client against the unified app."""
    from unified.app import app

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
