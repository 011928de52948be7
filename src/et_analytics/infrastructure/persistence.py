"""AnalyticsRepository: concrete implementation of AnalyticsRepositoryProtocol.

SQLAlchemy Core aggregates over the expenses table. EXTRACT() compiles to
native EXTRACT on PostgreSQL and to STRFTIME on SQLite, so the same
statements run in production and in tests. PostgreSQL returns NUMERIC for
SUM/AVG/EXTRACT; everything is coerced to int/float on the way out.

Weekly buckets are keyed on the Monday that starts each week and labelled
with that Monday's ISO year and week, so late-December days that belong to
week 1 of the next year land in the same bucket as its January days.
"""

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import extract, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.et_analytics.domain.models import (
    BudgetCategory,
    CategoryTotal,
    DateRange,
    PaymentMethodTotal,
    PeriodTotal,
    Totals,
)
from src.et_category.infrastructure.db_models import CategoryModel
from src.et_common.enums import DateGrouping
from src.et_expense.domain.models import Expense
from src.et_expense.infrastructure.db_models import ExpenseModel
from src.et_expense.infrastructure.persistence import to_domain

_TOTAL = func.coalesce(func.sum(ExpenseModel.amount), 0)
_COUNT = func.count(ExpenseModel.id)
_AVG = func.avg(ExpenseModel.amount)

_PARTS = {
    DateGrouping.DAY: ("year", "month", "day"),
    DateGrouping.MONTH: ("year", "month"),
}


def _conditions(user_id: uuid.UUID, period: DateRange) -> list[Any]:
    conditions: list[Any] = [ExpenseModel.user_id == user_id]
    if period.start is not None:
        conditions.append(ExpenseModel.date >= period.start)
    if period.end is not None:
        conditions.append(ExpenseModel.date <= period.end)
    return conditions


def _week_start(db: AsyncSession) -> Any:
    if db.get_bind().dialect.name == "sqlite":
        # Sunday on or after the date, back six days to its Monday
        return func.date(ExpenseModel.date, "weekday 0", "-6 days")
    return func.date_trunc("week", ExpenseModel.date)


def _as_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _int(value: Any) -> int:
    return int(value or 0)


def _float(value: Any) -> float:
    return float(value or 0)


class AnalyticsRepository:
    async def totals(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange
    ) -> Totals:
        row = (
            await db.execute(
                select(_COUNT, _TOTAL, _AVG).where(*_conditions(user_id, period))
            )
        ).one()
        return Totals(count=_int(row[0]), total_cents=_int(row[1]), average_cents=_float(row[2]))

    async def by_category(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        period: DateRange,
        limit: int | None = None,
    ) -> list[CategoryTotal]:
        stmt = (
            select(
                CategoryModel.id,
                CategoryModel.name,
                CategoryModel.color,
                CategoryModel.icon,
                CategoryModel.budget,
                _TOTAL.label("total"),
                _COUNT.label("count"),
                _AVG.label("average"),
            )
            .select_from(ExpenseModel)
            .join(CategoryModel, ExpenseModel.category_id == CategoryModel.id)
            .where(*_conditions(user_id, period))
            .group_by(
                CategoryModel.id,
                CategoryModel.name,
                CategoryModel.color,
                CategoryModel.icon,
                CategoryModel.budget,
            )
            .order_by(_TOTAL.desc(), CategoryModel.name)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = (await db.execute(stmt)).all()
        return [
            CategoryTotal(
                category_id=str(r.id),
                name=r.name,
                color=r.color,
                icon=r.icon,
                budget_cents=r.budget,
                total_cents=_int(r.total),
                count=_int(r.count),
                average_cents=_float(r.average),
            )
            for r in rows
        ]

    async def by_payment_method(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange
    ) -> list[PaymentMethodTotal]:
        rows = (
            await db.execute(
                select(
                    ExpenseModel.payment_method,
                    _TOTAL.label("total"),
                    _COUNT.label("count"),
                )
                .where(*_conditions(user_id, period))
                .group_by(ExpenseModel.payment_method)
                .order_by(_TOTAL.desc(), ExpenseModel.payment_method)
            )
        ).all()
        return [
            PaymentMethodTotal(
                payment_method=r.payment_method,
                total_cents=_int(r.total),
                count=_int(r.count),
            )
            for r in rows
        ]

    async def by_period(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        period: DateRange,
        grouping: DateGrouping,
    ) -> list[PeriodTotal]:
        if grouping is DateGrouping.WEEK:
            return await self._by_week(db, user_id, period)
        parts = _PARTS[grouping]
        keys = [extract(part, ExpenseModel.date).label(part) for part in parts]
        rows = (
            await db.execute(
                select(*keys, _TOTAL.label("total"), _COUNT.label("count"), _AVG.label("average"))
                .where(*_conditions(user_id, period))
                .group_by(*keys)
                .order_by(*keys)
            )
        ).all()
        results = []
        for r in rows:
            values = r._mapping
            results.append(
                PeriodTotal(
                    year=_int(values["year"]),
                    month=_int(values["month"]) if "month" in parts else None,
                    week=None,
                    day=_int(values["day"]) if "day" in parts else None,
                    total_cents=_int(values["total"]),
                    count=_int(values["count"]),
                    average_cents=_float(values["average"]),
                )
            )
        return results

    async def _by_week(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange
    ) -> list[PeriodTotal]:
        start = _week_start(db).label("week_start")
        rows = (
            await db.execute(
                select(start, _TOTAL.label("total"), _COUNT.label("count"), _AVG.label("average"))
                .where(*_conditions(user_id, period))
                .group_by(start)
                .order_by(start)
            )
        ).all()
        results = []
        for r in rows:
            iso = _as_date(r.week_start).isocalendar()
            results.append(
                PeriodTotal(
                    year=iso.year,
                    month=None,
                    week=iso.week,
                    day=None,
                    total_cents=_int(r.total),
                    count=_int(r.count),
                    average_cents=_float(r.average),
                )
            )
        return results

    async def budget_categories(
        self, db: AsyncSession, user_id: uuid.UUID
    ) -> list[BudgetCategory]:
        rows = (
            await db.execute(
                select(CategoryModel)
                .where(
                    CategoryModel.user_id == user_id,
                    CategoryModel.budget.is_not(None),
                    CategoryModel.budget > 0,
                )
                .order_by(CategoryModel.name)
            )
        ).scalars().all()
        return [
            BudgetCategory(
                category_id=str(c.id),
                name=c.name,
                color=c.color,
                icon=c.icon,
                budget_cents=c.budget,
            )
            for c in rows
        ]

    async def recent(
        self, db: AsyncSession, user_id: uuid.UUID, limit: int
    ) -> list[Expense]:
        rows = (
            await db.execute(
                select(ExpenseModel, CategoryModel)
                .outerjoin(CategoryModel, ExpenseModel.category_id == CategoryModel.id)
                .where(ExpenseModel.user_id == user_id)
                .order_by(ExpenseModel.created_at.desc(), ExpenseModel.id)
                .limit(limit)
            )
        ).all()
        return [to_domain(e, c) for e, c in rows]
