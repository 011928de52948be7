"""Helpers shared by the integration tests."""

import uuid
from collections.abc import Awaitable, Callable
from typing import Any

RegisterUser = Callable[..., Awaitable[dict[str, Any]]]


def unique_user() -> dict[str, str]:
    """Generate unique credentials to avoid test pollution."""
    uid = uuid.uuid4().hex[:8]
    return {
        "username": f"user_{uid}",
        "email": f"user_{uid}@example.com",
        "password": "secret123",
    }


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
