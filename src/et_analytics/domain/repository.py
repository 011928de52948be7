"""AnalyticsRepository Protocol: read-only aggregates over expenses.

Every aggregate is computed by the database (GROUP BY / SUM / COUNT / AVG)
over the caller's own expenses only.
"""

import uuid
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.et_analytics.domain.models import (
    BudgetCategory,
    CategoryTotal,
    DateRange,
    PaymentMethodTotal,
    PeriodTotal,
    Totals,
)
from src.et_common.enums import DateGrouping
from src.et_expense.domain.models import Expense


class AnalyticsRepositoryProtocol(Protocol):
    async def totals(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange
    ) -> Totals: ...

    async def by_category(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        period: DateRange,
        limit: int | None = None,
    ) -> list[CategoryTotal]: ...

    async def by_payment_method(
        self, db: AsyncSession, user_id: uuid.UUID, period: DateRange
    ) -> list[PaymentMethodTotal]: ...

    async def by_period(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        period: DateRange,
        grouping: DateGrouping,
    ) -> list[PeriodTotal]: ...

    async def budget_categories(
        self, db: AsyncSession, user_id: uuid.UUID
    ) -> list[BudgetCategory]: ...

    async def recent(
        self, db: AsyncSession, user_id: uuid.UUID, limit: int
    ) -> list[Expense]: ...
