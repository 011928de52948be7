"""In-memory stand-ins for Redis and realtime connections."""

from collections.abc import AsyncIterator
from typing import Any


class InMemoryCacheBackend:
    """Dict-backed stand-in for the redis.asyncio calls the cache makes."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def get(self, name: str) -> str | None:
        return self.store.get(name)

    async def set(self, name: str, value: str, ex: int | None = None) -> bool:
        self.store[name] = value
        self.ttls[name] = ex
        return True

    async def delete(self, *names: str) -> int:
        deleted = 0
        for name in names:
            if self.store.pop(name, None) is not None:
                self.ttls.pop(name, None)
                deleted += 1
        return deleted

    async def scan_iter(
        self, match: str | None = None, count: int | None = None
    ) -> AsyncIterator[str]:
        prefix = match[:-1] if match and match.endswith("*") else match
        for key in list(self.store):
            if prefix is None or key.startswith(prefix):
                yield key

    def keys_for(self, prefix: str) -> list[str]:
        return [k for k in self.store if k.startswith(prefix)]


class InMemoryCounterBackend:
    """INCR/EXPIRE/TTL on a dict; TTLs never actually elapse."""

    def __init__(self) -> None:
        self.counts: dict[str, int] = {}
        self.expiry: dict[str, int] = {}

    async def incr(self, name: str) -> int:
        self.counts[name] = self.counts.get(name, 0) + 1
        return self.counts[name]

    async def expire(self, name: str, time: int) -> bool:
        self.expiry[name] = time
        return True

    async def ttl(self, name: str) -> int:
        return self.expiry.get(name, -1)


class RecordingConnection:
    """A realtime connection that keeps every message it was sent."""

    def __init__(self) -> None:
        self.sent: list[Any] = []

    async def send_json(self, data: Any, mode: str = "text") -> None:
        self.sent.append(data)


class BrokenConnection:
    async def send_json(self, data: Any, mode: str = "text") -> None:
        raise ConnectionResetError("socket closed")
