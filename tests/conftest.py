"""Shared test fixtures.

Settings are read once at import time, so the environment is prepared here
before anything under src/ is imported.
"""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ["MIRROR_DATABASE_URL"] = ""
os.environ["CACHE_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest  # noqa: E402

from tests.fakes import (  # noqa: E402
    BrokenConnection,
    InMemoryCacheBackend,
    InMemoryCounterBackend,
    RecordingConnection,
)


@pytest.fixture
def cache_backend() -> InMemoryCacheBackend:
    return InMemoryCacheBackend()


@pytest.fixture
def counter_backend() -> InMemoryCounterBackend:
    return InMemoryCounterBackend()


@pytest.fixture
def recording_connection() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def broken_connection() -> BrokenConnection:
    return BrokenConnection()
