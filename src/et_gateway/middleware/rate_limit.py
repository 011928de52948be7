"""Fixed-window rate limiting on Redis.

Rules:
  - Auth endpoints (/api/auth/login, /register, /refresh):
        AUTH_RATE_LIMIT_MAX_REQUESTS per window per IP (anti brute-force)
  - Everything else under /api: RATE_LIMIT_MAX_REQUESTS per window per IP
  - /health and the WebSocket endpoint are never limited

Counting: INCR "ratelimit:{ip}:{group}"; the first hit in a window sets the
EXPIRE. Over the limit -> 429 with Retry-After (seconds left in the window).
Redis trouble never blocks traffic: any error lets the request through.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from config.settings import settings
from src.et_common.errors import RateLimitError
from src.et_common.redis_client import get_redis
from src.et_common.response import envelope_json, error_response

logger = logging.getLogger("et.request")

_AUTH_PATHS = frozenset({"/api/auth/login", "/api/auth/register", "/api/auth/refresh"})


class CounterBackend(Protocol):
    async def incr(self, name: str) -> int: ...

    async def expire(self, name: str, time: int) -> Any: ...

    async def ttl(self, name: str) -> int: ...


def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For when behind a proxy, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def endpoint_group(path: str) -> str | None:
    """Bucket a path into a limit group; None means not limited."""
    if path in _AUTH_PATHS:
        return "auth"
    if path.startswith("/api/"):
        return "api"
    return None


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        enabled: bool = settings.RATE_LIMIT_ENABLED,
        window_seconds: int = settings.RATE_LIMIT_WINDOW_SECONDS,
        max_requests: int = settings.RATE_LIMIT_MAX_REQUESTS,
        auth_max_requests: int = settings.AUTH_RATE_LIMIT_MAX_REQUESTS,
        backend_factory: Callable[[], Awaitable[CounterBackend]] = get_redis,
        timeout: float = settings.CACHE_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(app)
        self._enabled = enabled
        self._window = window_seconds
        self._limits = {"api": max_requests, "auth": auth_max_requests}
        self._backend_factory = backend_factory
        self._timeout = timeout

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        group = endpoint_group(request.url.path)
        if not self._enabled or group is None:
            return await call_next(request)

        key = f"ratelimit:{client_ip(request)}:{group}"
        try:
            retry_after = await asyncio.wait_for(self._check(key, self._limits[group]), self._timeout)
        except Exception as exc:  # fail open
            logger.warning("rate limiter unavailable, allowing request: %r", exc)
            retry_after = None

        if retry_after is not None:
            err = RateLimitError(retry_after)
            resp = error_response(err.code, err.message)
            resp.request_id = getattr(request.state, "request_id", resp.request_id)
            return JSONResponse(
                status_code=err.http_status,
                content=envelope_json(resp),
                headers={"Retry-After": str(err.retry_after)},
            )
        return await call_next(request)

    async def _check(self, key: str, limit: int) -> int | None:
        """Count this hit; return seconds to wait if over the limit, else None."""
        backend = await self._backend_factory()
        count = await backend.incr(key)
        if count == 1:
            await backend.expire(key, self._window)
        if count <= limit:
            return None
        ttl = await backend.ttl(key)
        return ttl if ttl > 0 else self._window
