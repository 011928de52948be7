"""Unexpected exceptions: generic 500 in production, message and stack in debug mode."""

from collections.abc import AsyncIterator
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from config.settings import settings


@pytest.fixture
async def failing_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("disk on fire")

    # The server error middleware re-raises after answering
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestUnhandledError:
    async def test_production_hides_details(self, failing_client: AsyncClient) -> None:
        with patch.object(settings, "DEBUG", False):
            resp = await failing_client.get("/boom")

        assert resp.status_code == 500
        body = resp.json()
        assert body["success"] is False
        assert body["code"] == 9002
        assert body["message"] == "Internal server error"
        assert "errors" not in body
        assert "disk on fire" not in resp.text

    async def test_debug_includes_stack_trace(self, failing_client: AsyncClient) -> None:
        with patch.object(settings, "DEBUG", True):
            resp = await failing_client.get("/boom")

        assert resp.status_code == 500
        body = resp.json()
        assert body["message"] == "RuntimeError('disk on fire')"
        stack = "".join(body["errors"])
        assert stack.startswith("Traceback")
        assert "in boom" in stack
        assert stack.rstrip().endswith("RuntimeError: disk on fire")
