"""Unit tests for the fixed-window rate limiter."""

from collections.abc import AsyncIterator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.et_gateway.middleware.rate_limit import RateLimitMiddleware, endpoint_group
from tests.fakes import InMemoryCounterBackend


class _DownBackend:
    async def incr(self, name: str) -> int:
        raise ConnectionError("redis down")

    async def expire(self, name: str, time: int) -> bool:
        raise ConnectionError("redis down")

    async def ttl(self, name: str) -> int:
        raise ConnectionError("redis down")


def _build_app(backend: object, enabled: bool = True) -> FastAPI:
    app = FastAPI()

    async def backend_factory() -> object:
        return backend

    app.add_middleware(
        RateLimitMiddleware,
        enabled=enabled,
        window_seconds=60,
        max_requests=3,
        auth_max_requests=2,
        backend_factory=backend_factory,
    )

    @app.get("/api/things")
    async def things() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/api/auth/login")
    async def login() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


async def _client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def limited(counter_backend: InMemoryCounterBackend) -> AsyncIterator[AsyncClient]:
    async for ac in _client(_build_app(counter_backend)):
        yield ac


class TestEndpointGroup:
    def test_auth_paths(self) -> None:
        assert endpoint_group("/api/auth/login") == "auth"
        assert endpoint_group("/api/auth/register") == "auth"
        assert endpoint_group("/api/auth/refresh") == "auth"

    def test_other_api_paths(self) -> None:
        assert endpoint_group("/api/auth/profile") == "api"
        assert endpoint_group("/api/expenses") == "api"

    def test_unlimited_paths(self) -> None:
        assert endpoint_group("/health") is None
        assert endpoint_group("/ws") is None


class TestRateLimitMiddleware:
    async def test_blocks_after_limit(
        self, limited: AsyncClient, counter_backend: InMemoryCounterBackend
    ) -> None:
        for _ in range(3):
            assert (await limited.get("/api/things")).status_code == 200

        resp = await limited.get("/api/things")

        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "60"
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == 9001
        assert counter_backend.expiry  # window set on first hit

    async def test_auth_group_has_its_own_budget(self, limited: AsyncClient) -> None:
        assert (await limited.post("/api/auth/login")).status_code == 200
        assert (await limited.post("/api/auth/login")).status_code == 200
        assert (await limited.post("/api/auth/login")).status_code == 429
        # The general bucket is untouched
        assert (await limited.get("/api/things")).status_code == 200

    async def test_buckets_are_per_client_ip(self, limited: AsyncClient) -> None:
        for _ in range(3):
            await limited.get("/api/things", headers={"X-Forwarded-For": "10.0.0.1"})
        blocked = await limited.get("/api/things", headers={"X-Forwarded-For": "10.0.0.1"})
        other = await limited.get("/api/things", headers={"X-Forwarded-For": "10.0.0.2, 172.16.0.1"})
        assert blocked.status_code == 429
        assert other.status_code == 200

    async def test_health_is_never_limited(self, limited: AsyncClient) -> None:
        for _ in range(10):
            assert (await limited.get("/health")).status_code == 200

    async def test_fails_open_when_backend_down(self) -> None:
        async for ac in _client(_build_app(_DownBackend())):
            for _ in range(5):
                assert (await ac.get("/api/things")).status_code == 200

    async def test_disabled_does_not_count(self, counter_backend: InMemoryCounterBackend) -> None:
        async for ac in _client(_build_app(counter_backend, enabled=False)):
            for _ in range(5):
                assert (await ac.get("/api/things")).status_code == 200
        assert counter_backend.counts == {}
