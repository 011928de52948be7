"""Read-through response cache.

Keys are `{resource}:{user_id}:{request shape}` so a mutation can drop every
cached read of one resource type for one user with a single prefix delete.

The cache is an optimization only. Every backend call runs under a short
timeout and any failure is logged and treated as a miss (reads) or a no-op
(writes/deletes); nothing here may fail or block a request.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from typing import Any, Protocol

from starlette.requests import Request

from config.settings import settings
from src.et_common.enums import CacheResource
from src.et_common.response import SuccessResponse

logger = logging.getLogger("et.cache")

_SCAN_BATCH = 500


class CacheBackend(Protocol):
    """Subset of redis.asyncio.Redis the cache relies on."""

    async def get(self, name: str) -> str | None: ...

    async def set(self, name: str, value: str, ex: int | None = None) -> Any: ...

    async def delete(self, *names: str) -> int: ...

    def scan_iter(self, match: str | None = None, count: int | None = None) -> AsyncIterator[str]: ...


def build_cache_key(
    resource: CacheResource | str,
    user_id: str,
    path: str,
    query_items: Iterable[tuple[str, str]],
) -> str:
    """Deterministic key: same resource, user, path and query set -> same key.

    Query parameters are sorted and empty values dropped, so `?a=1&b=` and
    `?b=&a=1` share an entry.
    """
    prefix = resource.value if isinstance(resource, CacheResource) else resource
    normalized = sorted((k, v) for k, v in query_items if v != "")
    shape = json.dumps([path, normalized], separators=(",", ":"))
    return f"{prefix}:{user_id}:{shape}"


def resource_prefix(resource: CacheResource | str, user_id: str) -> str:
    prefix = resource.value if isinstance(resource, CacheResource) else resource
    return f"{prefix}:{user_id}:"


class ResponseCache:
    def __init__(
        self,
        backend: CacheBackend | None,
        timeout: float = settings.CACHE_TIMEOUT_SECONDS,
    ) -> None:
        self._backend = backend
        self._timeout = timeout

    @property
    def enabled(self) -> bool:
        return self._backend is not None

    async def get(self, key: str) -> Any | None:
        if self._backend is None:
            return None
        try:
            raw = await asyncio.wait_for(self._backend.get(key), self._timeout)
            return json.loads(raw) if raw else None
        except Exception as exc:  # cache is best-effort: any failure is a miss
            logger.warning("cache get failed key=%s: %r", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        if self._backend is None:
            return False
        try:
            payload = json.dumps(value)
            await asyncio.wait_for(self._backend.set(key, payload, ex=ttl_seconds), self._timeout)
            return True
        except Exception as exc:
            logger.warning("cache set failed key=%s: %r", key, exc)
            return False

    async def delete(self, key: str) -> bool:
        if self._backend is None:
            return False
        try:
            await asyncio.wait_for(self._backend.delete(key), self._timeout)
            return True
        except Exception as exc:
            logger.warning("cache delete failed key=%s: %r", key, exc)
            return False

    async def delete_pattern(self, prefix: str) -> int:
        """Delete every key starting with `prefix` (SCAN, never KEYS). Returns count."""
        if self._backend is None:
            return 0
        try:
            return await asyncio.wait_for(
                _delete_prefix(self._backend, prefix), self._timeout
            )
        except Exception as exc:
            logger.warning("cache pattern delete failed prefix=%s: %r", prefix, exc)
            return 0

    async def invalidate(self, resource: CacheResource, user_id: str) -> int:
        deleted = await self.delete_pattern(resource_prefix(resource, user_id))
        logger.debug("invalidated %d %s entries for user %s", deleted, resource.value, user_id)
        return deleted

    async def read_through(
        self,
        key: str,
        ttl_seconds: int,
        loader: Callable[[], Awaitable[SuccessResponse]],
    ) -> SuccessResponse:
        """Serve from cache, or run `loader` and store its result if it succeeded."""
        hit = await self.get(key)
        if hit is not None:
            resp = SuccessResponse.model_validate(hit)
            resp.cached = True
            return resp

        resp = await loader()
        if resp.success:
            await self.set(
                key,
                resp.model_dump(
                    mode="json",
                    by_alias=True,
                    exclude={"request_id", "timestamp", "cached"},
                ),
                ttl_seconds,
            )
        return resp


def get_cache(request: Request) -> ResponseCache:
    """FastAPI dependency: the cache built with the app."""
    return request.app.state.cache


async def _delete_prefix(backend: CacheBackend, prefix: str) -> int:
    deleted = 0
    batch: list[str] = []
    async for key in backend.scan_iter(match=f"{prefix}*", count=_SCAN_BATCH):
        batch.append(key)
        if len(batch) >= _SCAN_BATCH:
            deleted += await backend.delete(*batch)
            batch = []
    if batch:
        deleted += await backend.delete(*batch)
    return deleted


def request_cache_key(request: Request, resource: CacheResource, user_id: str) -> str:
    """Cache key for a GET request: its path plus its full query string."""
    return build_cache_key(
        resource, user_id, request.url.path, request.query_params.multi_items()
    )
