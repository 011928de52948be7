"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000

create_app() builds every shared collaborator (response cache, mirror store,
connection registry, notifier) and hangs it on app.state; handlers reach
them through small dependencies, never through module globals.
"""

import asyncio
import logging
import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import settings
from src.et_analytics.api.router import router as analytics_router
from src.et_category.api.router import router as category_router
from src.et_common.cache import ResponseCache
from src.et_common.database import engine, wait_for_primary
from src.et_common.errors import AppError, InternalError, RateLimitError
from src.et_common.redis_client import close_redis, redis_client
from src.et_common.response import ErrorResponse, envelope_json, error_response
from src.et_expense.api.router import router as expense_router
from src.et_gateway.api.router import router as auth_router
from src.et_gateway.middleware.rate_limit import RateLimitMiddleware
from src.et_gateway.middleware.request_log import RequestLogMiddleware
from src.et_mirror.api.router import router as mirror_router
from src.et_mirror.store import build_mirror
from src.et_realtime.api.router import router as realtime_router
from src.et_realtime.notifier import Notifier
from src.et_realtime.registry import ConnectionRegistry

APP_VERSION = "1.0.0"

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("et.app")


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Last-resort handler: log errors from orphaned tasks, keep serving."""
    exc = context.get("exception")
    logger.error("Unhandled error in event loop: %s", context.get("message"), exc_info=exc)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: wait for the primary store, connect the mirror. Shutdown: dispose."""
    asyncio.get_running_loop().set_exception_handler(_log_loop_exception)
    await wait_for_primary(
        engine,
        retry_delay=settings.PRIMARY_RETRY_DELAY_SECONDS,
        fail_fast=settings.PRIMARY_REQUIRED,
    )
    await app.state.mirror.connect()
    logger.info("%s %s started", settings.APP_NAME, APP_VERSION)
    yield
    await app.state.mirror.close()
    await engine.dispose()
    await close_redis()
    logger.info("%s stopped", settings.APP_NAME)


def _error_json(
    request: Request, resp: ErrorResponse, extra: dict[str, Any] | None = None
) -> dict[str, Any]:
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    content = envelope_json(resp)
    if extra:
        content.update(extra)
    return content


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, getattr(exc, "errors", None))
    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.http_status,
        content=_error_json(request, resp, exc.details),
        headers=headers,
    )


def _format_validation_error(err: dict[str, Any]) -> str:
    # Drop the "body"/"query"/"path" prefix: "password: String should have ..."
    loc = [str(part) for part in err.get("loc", ())[1:]]
    return f"{'.'.join(loc)}: {err.get('msg')}" if loc else str(err.get("msg"))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [_format_validation_error(e) for e in exc.errors()]
    resp = error_response(9000, "Validation failed", errors)
    return JSONResponse(status_code=400, content=_error_json(request, resp))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised errors (401 from the bearer scheme, 404/405 routing)."""
    resp = error_response(exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_json(request, resp),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    # Generic message in production, the real one and its stack only in debug mode
    if settings.DEBUG:
        err = InternalError(repr(exc))
        resp = error_response(err.code, err.message, traceback.format_exception(exc))
    else:
        err = InternalError("Internal server error")
        resp = error_response(err.code, err.message)
    return JSONResponse(status_code=err.http_status, content=_error_json(request, resp))


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=APP_VERSION,
        lifespan=lifespan,
    )

    registry = ConnectionRegistry()
    app.state.registry = registry
    app.state.notifier = Notifier(registry)
    app.state.cache = ResponseCache(redis_client() if settings.CACHE_ENABLED else None)
    app.state.mirror = build_mirror()

    # Starlette runs the last-added middleware first
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_router, prefix="/api")
    app.include_router(category_router, prefix="/api")
    app.include_router(expense_router, prefix="/api")
    app.include_router(analytics_router, prefix="/api")
    app.include_router(mirror_router, prefix="/api")
    app.include_router(realtime_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": APP_VERSION}

    return app


app = create_app()
