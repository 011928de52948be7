"""MirrorStore: best-effort relational copy of users, categories and expenses.

The mirror is a second, optional SQL database (MIRROR_DATABASE_URL). It is
never authoritative: writes arrive as post-commit tasks after the primary
store has committed, at most once, with no retry and no rollback. Rows are
keyed by `source_id` (the primary-store id) and written as upserts, so a
replayed or reordered sync converges on the latest payload it saw.

There are no foreign keys between mirror tables: an expense may be synced
before its category and the mirror must accept it.

All SQL is raw text(). Typed bind parameters keep the same statements
working on asyncpg (native DATE/TIMESTAMPTZ) and on SQLite in tests.
"""

import json
import logging
from datetime import date
from typing import Any

from sqlalchemy import BigInteger, Date, DateTime, bindparam, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from starlette.requests import Request

from config.settings import settings
from src.et_category.application.schemas import CategoryResponse
from src.et_common.datetime_utils import utc_now
from src.et_common.enums import MirrorEntity
from src.et_common.errors import MirrorUnavailableError
from src.et_common.money import average_from_cents, from_cents, to_cents
from src.et_expense.application.schemas import ExpenseResponse
from src.et_gateway.user.schemas import UserPublic

logger = logging.getLogger("et.mirror")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        source_id   VARCHAR(64) PRIMARY KEY,
        email       VARCHAR(255) NOT NULL,
        username    VARCHAR(100) NOT NULL,
        first_name  VARCHAR(100),
        last_name   VARCHAR(100),
        currency    VARCHAR(10) NOT NULL DEFAULT 'USD',
        created_at  TIMESTAMP WITH TIME ZONE,
        updated_at  TIMESTAMP WITH TIME ZONE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        source_id       VARCHAR(64) PRIMARY KEY,
        user_source_id  VARCHAR(64) NOT NULL,
        name            VARCHAR(100) NOT NULL,
        color           VARCHAR(20),
        icon            VARCHAR(50),
        budget          BIGINT,
        description     TEXT,
        is_active       BOOLEAN NOT NULL DEFAULT TRUE,
        created_at      TIMESTAMP WITH TIME ZONE,
        updated_at      TIMESTAMP WITH TIME ZONE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS expenses (
        source_id           VARCHAR(64) PRIMARY KEY,
        user_source_id      VARCHAR(64) NOT NULL,
        category_source_id  VARCHAR(64),
        amount              BIGINT NOT NULL,
        currency            VARCHAR(10) NOT NULL DEFAULT 'USD',
        description         TEXT,
        date                DATE NOT NULL,
        payment_method      VARCHAR(50),
        tags                TEXT,
        notes               TEXT,
        created_at          TIMESTAMP WITH TIME ZONE,
        updated_at          TIMESTAMP WITH TIME ZONE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_mirror_expenses_user_date ON expenses (user_source_id, date)",
)

_TS = DateTime(timezone=True)

# ---------------------------------------------------------------------------
# Upserts / deletes
# ---------------------------------------------------------------------------

_UPSERT_USER_SQL = text("""
    INSERT INTO users (source_id, email, username, first_name, last_name,
                       currency, created_at, updated_at)
    VALUES (:source_id, :email, :username, :first_name, :last_name,
            :currency, :created_at, :updated_at)
    ON CONFLICT (source_id) DO UPDATE SET
        email = excluded.email,
        username = excluded.username,
        first_name = excluded.first_name,
        last_name = excluded.last_name,
        currency = excluded.currency,
        updated_at = excluded.updated_at
""").bindparams(bindparam("created_at", type_=_TS), bindparam("updated_at", type_=_TS))

_UPSERT_CATEGORY_SQL = text("""
    INSERT INTO categories (source_id, user_source_id, name, color, icon, budget,
                            description, is_active, created_at, updated_at)
    VALUES (:source_id, :user_source_id, :name, :color, :icon, :budget,
            :description, :is_active, :created_at, :updated_at)
    ON CONFLICT (source_id) DO UPDATE SET
        name = excluded.name,
        color = excluded.color,
        icon = excluded.icon,
        budget = excluded.budget,
        description = excluded.description,
        is_active = excluded.is_active,
        updated_at = excluded.updated_at
""").bindparams(bindparam("created_at", type_=_TS), bindparam("updated_at", type_=_TS))

_UPSERT_EXPENSE_SQL = text("""
    INSERT INTO expenses (source_id, user_source_id, category_source_id, amount,
                          currency, description, date, payment_method, tags, notes,
                          created_at, updated_at)
    VALUES (:source_id, :user_source_id, :category_source_id, :amount,
            :currency, :description, :date, :payment_method, :tags, :notes,
            :created_at, :updated_at)
    ON CONFLICT (source_id) DO UPDATE SET
        category_source_id = excluded.category_source_id,
        amount = excluded.amount,
        currency = excluded.currency,
        description = excluded.description,
        date = excluded.date,
        payment_method = excluded.payment_method,
        tags = excluded.tags,
        notes = excluded.notes,
        updated_at = excluded.updated_at
""").bindparams(
    bindparam("date", type_=Date),
    bindparam("created_at", type_=_TS),
    bindparam("updated_at", type_=_TS),
)

_DELETE_SQL = {
    MirrorEntity.USER: text("DELETE FROM users WHERE source_id = :source_id"),
    MirrorEntity.CATEGORY: text("DELETE FROM categories WHERE source_id = :source_id"),
    MirrorEntity.EXPENSE: text("DELETE FROM expenses WHERE source_id = :source_id"),
}

# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

_RANGE = (bindparam("start_date", type_=Date), bindparam("end_date", type_=Date))

_SUMMARY_SQL = text("""
    SELECT COUNT(*)     AS total_expenses,
           SUM(amount)  AS total_amount,
           AVG(amount)  AS average_amount,
           MIN(amount)  AS min_amount,
           MAX(amount)  AS max_amount
    FROM expenses
    WHERE user_source_id = :user_id
      AND date BETWEEN :start_date AND :end_date
""").bindparams(*_RANGE)

_CATEGORY_BREAKDOWN_SQL = text("""
    SELECT c.name         AS category_name,
           c.color        AS color,
           COUNT(e.source_id) AS expense_count,
           SUM(e.amount)  AS total_amount
    FROM expenses e
    LEFT JOIN categories c ON e.category_source_id = c.source_id
    WHERE e.user_source_id = :user_id
      AND e.date BETWEEN :start_date AND :end_date
    GROUP BY c.name, c.color
    ORDER BY total_amount DESC
""").bindparams(*_RANGE)

_DAILY_TREND_SQL = (
    text("""
    SELECT date,
           COUNT(*)    AS expense_count,
           SUM(amount) AS total_amount
    FROM expenses
    WHERE user_source_id = :user_id
      AND date BETWEEN :start_date AND :end_date
    GROUP BY date
    ORDER BY date DESC
""")
    .bindparams(*_RANGE)
    .columns(date=Date, expense_count=BigInteger, total_amount=BigInteger)
)

_EXPENSES_WITH_CATEGORY_SQL = text("""
    SELECT e.source_id, e.amount, e.currency, e.description, e.date,
           e.payment_method, e.tags, e.notes,
           c.name  AS category_name,
           c.color AS category_color,
           c.icon  AS category_icon
    FROM expenses e
    LEFT JOIN categories c ON e.category_source_id = c.source_id
    WHERE e.user_source_id = :user_id
    ORDER BY e.date DESC, e.created_at DESC
    LIMIT :limit OFFSET :offset
""").columns(date=Date)

_COUNT_EXPENSES_SQL = text("SELECT COUNT(*) FROM expenses WHERE user_source_id = :user_id")


class MirrorStore:
    def __init__(self, url: str = "", engine: AsyncEngine | None = None) -> None:
        self._url = url
        self._engine = engine
        self._available = False

    @property
    def configured(self) -> bool:
        return bool(self._url) or self._engine is not None

    @property
    def available(self) -> bool:
        return self._available

    async def connect(self) -> bool:
        """Open the engine and create the mirror tables. Never raises.

        An unconfigured or unreachable mirror leaves the store unavailable;
        the rest of the application runs without it.
        """
        if not self.configured:
            logger.info("Mirror store not configured, relational mirror disabled")
            return False
        try:
            if self._engine is None:
                self._engine = create_async_engine(self._url, pool_pre_ping=True)
            async with self._engine.begin() as conn:
                for ddl in _SCHEMA:
                    await conn.execute(text(ddl))
            self._available = True
            logger.info("Mirror store connected, schema ready")
        except (OSError, SQLAlchemyError) as exc:
            logger.warning("Mirror store connection failed, continuing without it: %s", exc)
            self._available = False
        return self._available

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._available = False

    # ------------------------------------------------------------------
    # Write side (post-commit tasks only)
    # ------------------------------------------------------------------

    async def sync_user(self, user: UserPublic) -> bool:
        return await self._write(
            "user",
            user.id,
            _UPSERT_USER_SQL,
            {
                "source_id": user.id,
                "email": user.email,
                "username": user.username,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "currency": user.currency,
                "created_at": user.created_at,
                "updated_at": utc_now(),
            },
        )

    async def sync_category(self, category: CategoryResponse) -> bool:
        return await self._write(
            "category",
            category.id,
            _UPSERT_CATEGORY_SQL,
            {
                "source_id": category.id,
                "user_source_id": category.user_id,
                "name": category.name,
                "color": category.color,
                "icon": category.icon,
                "budget": to_cents(category.budget) if category.budget is not None else None,
                "description": category.description,
                "is_active": category.is_active,
                "created_at": category.created_at,
                "updated_at": category.updated_at,
            },
        )

    async def sync_expense(self, expense: ExpenseResponse) -> bool:
        return await self._write(
            "expense",
            expense.id,
            _UPSERT_EXPENSE_SQL,
            {
                "source_id": expense.id,
                "user_source_id": expense.user_id,
                "category_source_id": expense.category_id,
                "amount": to_cents(expense.amount),
                "currency": expense.currency,
                "description": expense.description,
                "date": expense.date,
                "payment_method": expense.payment_method.value,
                "tags": json.dumps(expense.tags),
                "notes": expense.notes,
                "created_at": expense.created_at,
                "updated_at": expense.updated_at,
            },
        )

    async def delete_entity(self, kind: MirrorEntity, source_id: str) -> bool:
        return await self._write(kind.value, source_id, _DELETE_SQL[kind], {"source_id": source_id})

    async def _write(self, kind: str, source_id: str, stmt: Any, params: dict[str, Any]) -> bool:
        """Run one mirror write. Returns False (no-op) when the mirror is down.

        Errors are logged and re-raised so the post-commit runner records the
        failed outcome; nothing retries.
        """
        if not self._available or self._engine is None:
            logger.debug("mirror unavailable, skipping %s %s", kind, source_id)
            return False
        try:
            async with self._engine.begin() as conn:
                await conn.execute(stmt, params)
        except (OSError, SQLAlchemyError) as exc:
            logger.warning("mirror write failed (%s %s): %s", kind, source_id, exc)
            raise
        logger.debug("mirror synced %s %s", kind, source_id)
        return True

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def get_analytics(self, user_id: str, start: date, end: date) -> dict[str, Any]:
        params = {"user_id": user_id, "start_date": start, "end_date": end}
        engine = self._require()
        try:
            async with engine.connect() as conn:
                summary = (await conn.execute(_SUMMARY_SQL, params)).one()
                categories = (await conn.execute(_CATEGORY_BREAKDOWN_SQL, params)).all()
                daily = (await conn.execute(_DAILY_TREND_SQL, params)).all()
        except (OSError, SQLAlchemyError) as exc:
            logger.warning("mirror analytics query failed: %s", exc)
            raise MirrorUnavailableError() from exc

        return {
            "summary": {
                "totalExpenses": int(summary.total_expenses or 0),
                "totalAmount": from_cents(summary.total_amount),
                "averageAmount": average_from_cents(summary.average_amount),
                "minAmount": from_cents(summary.min_amount),
                "maxAmount": from_cents(summary.max_amount),
            },
            "categoryBreakdown": [
                {
                    "categoryName": row.category_name,
                    "color": row.color,
                    "expenseCount": int(row.expense_count),
                    "totalAmount": from_cents(row.total_amount),
                }
                for row in categories
            ],
            "dailyTrend": [
                {
                    "date": row.date.isoformat(),
                    "expenseCount": int(row.expense_count),
                    "totalAmount": from_cents(row.total_amount),
                }
                for row in daily
            ],
        }

    async def list_expenses_with_category(
        self, user_id: str, limit: int, offset: int
    ) -> tuple[list[dict[str, Any]], int]:
        engine = self._require()
        try:
            async with engine.connect() as conn:
                total = (await conn.execute(_COUNT_EXPENSES_SQL, {"user_id": user_id})).scalar_one()
                rows = (
                    await conn.execute(
                        _EXPENSES_WITH_CATEGORY_SQL,
                        {"user_id": user_id, "limit": limit, "offset": offset},
                    )
                ).all()
        except (OSError, SQLAlchemyError) as exc:
            logger.warning("mirror expense query failed: %s", exc)
            raise MirrorUnavailableError() from exc

        items = [
            {
                "id": row.source_id,
                "amount": from_cents(row.amount),
                "currency": row.currency,
                "description": row.description,
                "date": row.date.isoformat(),
                "paymentMethod": row.payment_method,
                "tags": json.loads(row.tags) if row.tags else [],
                "notes": row.notes,
                "category": {
                    "name": row.category_name,
                    "color": row.category_color,
                    "icon": row.category_icon,
                }
                if row.category_name is not None
                else None,
            }
            for row in rows
        ]
        return items, int(total)

    def _require(self) -> AsyncEngine:
        if not self._available or self._engine is None:
            raise MirrorUnavailableError()
        return self._engine


def get_mirror(request: Request) -> MirrorStore:
    """FastAPI dependency: the mirror built with the app."""
    return request.app.state.mirror


def build_mirror() -> MirrorStore:
    return MirrorStore(settings.MIRROR_DATABASE_URL)
