"""Unit tests for the primary-store startup wait."""

from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock

import pytest

from src.et_common.database import wait_for_primary


class _FlakyEngine:
    """connect() refuses `failures` times, then succeeds."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    @asynccontextmanager
    async def connect(self) -> Any:
        self.calls += 1
        if self.calls <= self.failures:
            raise OSError("connection refused")
        yield AsyncMock()


class TestWaitForPrimary:
    async def test_first_attempt_succeeds(self) -> None:
        engine = _FlakyEngine(failures=0)
        assert await wait_for_primary(engine, retry_delay=0, fail_fast=False) == 1

    async def test_retries_until_reachable(self) -> None:
        engine = _FlakyEngine(failures=3)
        attempts = await wait_for_primary(engine, retry_delay=0, fail_fast=False)
        assert attempts == 4
        assert engine.calls == 4

    async def test_fail_fast_raises(self) -> None:
        engine = _FlakyEngine(failures=1)
        with pytest.raises(OSError):
            await wait_for_primary(engine, retry_delay=0, fail_fast=True)
        assert engine.calls == 1
