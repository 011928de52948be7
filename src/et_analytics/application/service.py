"""AnalyticsApplicationService: read-only, no commit/rollback needed."""

import uuid
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from src.et_analytics.application.schemas import (
    BudgetComparison,
    CategorySpending,
    PaymentMethodSpending,
    PeriodSpending,
    SummaryResponse,
    TopCategory,
)
from src.et_analytics.domain.models import DateRange
from src.et_analytics.domain.repository import AnalyticsRepositoryProtocol
from src.et_analytics.infrastructure.persistence import AnalyticsRepository
from src.et_common.enums import DateGrouping, TrendPeriod
from src.et_common.errors import DateRangeRequiredError, InvalidDateRangeError
from src.et_common.money import average_from_cents, from_cents
from src.et_expense.application.schemas import ExpenseResponse

_TREND_GROUPING = {
    TrendPeriod.DAILY: DateGrouping.DAY,
    TrendPeriod.WEEKLY: DateGrouping.WEEK,
    TrendPeriod.MONTHLY: DateGrouping.MONTH,
}


def date_range(start: date | None, end: date | None, required: bool = False) -> DateRange:
    if required and (start is None or end is None):
        raise DateRangeRequiredError()
    if start is not None and end is not None and start > end:
        raise InvalidDateRangeError()
    return DateRange(start=start, end=end)


class AnalyticsApplicationService:
    def __init__(self, repo: AnalyticsRepositoryProtocol | None = None) -> None:
        self._repo: AnalyticsRepositoryProtocol = repo or AnalyticsRepository()

    async def summary(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange, currency: str
    ) -> SummaryResponse:
        totals = await self._repo.totals(db, user_id, period)
        categories = await self._repo.by_category(db, user_id, period)
        methods = await self._repo.by_payment_method(db, user_id, period)
        months = await self._repo.by_period(db, user_id, period, DateGrouping.MONTH)
        return SummaryResponse(
            expense_count=totals.count,
            total_amount=from_cents(totals.total_cents),
            average_expense=average_from_cents(totals.average_cents),
            currency=currency,
            by_category=[CategorySpending.from_domain(c) for c in categories],
            by_payment_method=[PaymentMethodSpending.from_domain(m) for m in methods],
            monthly_trend=[PeriodSpending.from_domain(m, DateGrouping.MONTH) for m in months],
        )

    async def by_date(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        period: DateRange,
        grouping: DateGrouping,
    ) -> list[PeriodSpending]:
        buckets = await self._repo.by_period(db, user_id, period, grouping)
        return [PeriodSpending.from_domain(b, grouping) for b in buckets]

    async def trends(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        period: DateRange,
        trend: TrendPeriod,
    ) -> list[PeriodSpending]:
        return await self.by_date(db, user_id, period, _TREND_GROUPING[trend])

    async def top_categories(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange, limit: int
    ) -> list[TopCategory]:
        categories = await self._repo.by_category(db, user_id, period, limit=limit)
        return [TopCategory.from_domain(c) for c in categories]

    async def budget_comparison(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange
    ) -> list[BudgetComparison]:
        budgets = await self._repo.budget_categories(db, user_id)
        if not budgets:
            return []
        spending = {c.category_id: c for c in await self._repo.by_category(db, user_id, period)}
        comparisons = []
        for category in budgets:
            spent = spending.get(category.category_id)
            comparisons.append(
                BudgetComparison.build(
                    category,
                    spent.total_cents if spent else 0,
                    spent.count if spent else 0,
                )
            )
        comparisons.sort(key=lambda c: c.percentage_used, reverse=True)
        return comparisons

    async def recent(
        self, db: AsyncSession, user_id: uuid.UUID, limit: int
    ) -> list[ExpenseResponse]:
        return [ExpenseResponse.from_domain(e) for e in await self._repo.recent(db, user_id, limit)]
