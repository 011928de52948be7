"""Response schemas for et_analytics. Cents become decimal amounts here."""

from src.et_analytics.domain.models import (
    BudgetCategory,
    CategoryTotal,
    PaymentMethodTotal,
    PeriodTotal,
)
from src.et_category.application.schemas import CategoryRefResponse
from src.et_common.enums import DateGrouping
from src.et_common.money import average_from_cents, from_cents
from src.et_common.response import CamelModel


def period_label(p: PeriodTotal, grouping: DateGrouping) -> str:
    """'2024-01-15' by day, '2024-W03' by week, '2024-01' by month."""
    if grouping is DateGrouping.DAY:
        return f"{p.year:04d}-{p.month:02d}-{p.day:02d}"
    if grouping is DateGrouping.WEEK:
        return f"{p.year:04d}-W{p.week:02d}"
    return f"{p.year:04d}-{p.month:02d}"


class CategorySpending(CamelModel):
    category_id: str
    name: str
    color: str | None = None
    icon: str | None = None
    total: float
    count: int
    average: float

    @classmethod
    def from_domain(cls, c: CategoryTotal) -> "CategorySpending":
        return cls(
            category_id=c.category_id,
            name=c.name,
            color=c.color,
            icon=c.icon,
            total=from_cents(c.total_cents),
            count=c.count,
            average=average_from_cents(c.average_cents),
        )


class PaymentMethodSpending(CamelModel):
    payment_method: str
    total: float
    count: int

    @classmethod
    def from_domain(cls, p: PaymentMethodTotal) -> "PaymentMethodSpending":
        return cls(payment_method=p.payment_method, total=from_cents(p.total_cents), count=p.count)


class PeriodSpending(CamelModel):
    period: str
    year: int
    month: int | None = None
    week: int | None = None
    day: int | None = None
    total: float
    count: int
    average: float

    @classmethod
    def from_domain(cls, p: PeriodTotal, grouping: DateGrouping) -> "PeriodSpending":
        return cls(
            period=period_label(p, grouping),
            year=p.year,
            month=p.month,
            week=p.week,
            day=p.day,
            total=from_cents(p.total_cents),
            count=p.count,
            average=average_from_cents(p.average_cents),
        )


class SummaryResponse(CamelModel):
    expense_count: int
    total_amount: float
    average_expense: float
    currency: str
    by_category: list[CategorySpending]
    by_payment_method: list[PaymentMethodSpending]
    monthly_trend: list[PeriodSpending]


class TopCategory(CamelModel):
    category: CategoryRefResponse
    budget: float | None = None
    total: float
    count: int
    average: float

    @classmethod
    def from_domain(cls, c: CategoryTotal) -> "TopCategory":
        return cls(
            category=CategoryRefResponse(id=c.category_id, name=c.name, color=c.color, icon=c.icon),
            budget=from_cents(c.budget_cents) if c.budget_cents is not None else None,
            total=from_cents(c.total_cents),
            count=c.count,
            average=average_from_cents(c.average_cents),
        )


class BudgetComparison(CamelModel):
    category: CategoryRefResponse
    budget: float
    actual_spending: float
    remaining: float
    percentage_used: float
    is_over_budget: bool
    transaction_count: int

    @classmethod
    def build(
        cls, c: BudgetCategory, spent_cents: int, transactions: int
    ) -> "BudgetComparison":
        return cls(
            category=CategoryRefResponse(id=c.category_id, name=c.name, color=c.color, icon=c.icon),
            budget=from_cents(c.budget_cents),
            actual_spending=from_cents(spent_cents),
            remaining=from_cents(c.budget_cents - spent_cents),
            percentage_used=round(spent_cents * 100 / c.budget_cents, 2),
            is_over_budget=spent_cents > c.budget_cents,
            transaction_count=transactions,
        )
