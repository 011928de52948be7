import asyncio
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings

logger = logging.getLogger("et.db")


class Base(DeclarativeBase):
    """Shared declarative base for all primary-store ORM models."""

    pass


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


async def wait_for_primary(
    db_engine: AsyncEngine,
    retry_delay: float,
    fail_fast: bool,
) -> int:
    """Block until the primary store answers `SELECT 1`.

    Retries forever with a fixed delay unless `fail_fast` is set, in which
    case the first connection error is re-raised and startup aborts.
    Returns the number of attempts it took.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            async with db_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            if attempt > 1:
                logger.info("Primary store reachable after %d attempts", attempt)
            return attempt
        except (OSError, SQLAlchemyError) as exc:
            if fail_fast:
                logger.error("Primary store unreachable, aborting startup: %s", exc)
                raise
            logger.warning(
                "Primary store unreachable (attempt %d), retrying in %.1fs: %s",
                attempt,
                retry_delay,
                exc,
            )
            await asyncio.sleep(retry_delay)
