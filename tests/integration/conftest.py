"""Integration-test fixtures.

Each test gets a fresh application wired to an in-memory SQLite primary
store (all sessions share one connection through StaticPool) and an
in-memory response cache. The lifespan never runs under ASGITransport, so
the mirror store stays unavailable unless a test connects one itself.
"""

from collections.abc import AsyncIterator
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.et_common.cache import ResponseCache
from src.et_common.database import Base, get_db_session
from src.main import create_app
from tests.fakes import InMemoryCacheBackend
from tests.integration.helpers import RegisterUser, bearer, unique_user


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def app(engine: AsyncEngine, cache_backend: InMemoryCacheBackend) -> FastAPI:
    application = create_app()
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db_session] = override_db_session
    application.state.cache = ResponseCache(cache_backend)
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register_user(client: AsyncClient) -> RegisterUser:
    """Factory: register a fresh user, return the `data` block plus `headers`."""

    async def _register(**overrides: str) -> dict[str, Any]:
        payload = {**unique_user(), **overrides}
        resp = await client.post("/api/auth/register", json=payload)
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        data["password"] = payload["password"]
        data["headers"] = bearer(data["accessToken"])
        return data

    return _register


@pytest.fixture
async def auth(register_user: RegisterUser) -> dict[str, Any]:
    return await register_user()


@pytest.fixture
def headers(auth: dict[str, Any]) -> dict[str, str]:
    return auth["headers"]
