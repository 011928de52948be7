"""Unit tests for AnalyticsApplicationService using mock repository."""

import uuid
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.et_analytics.application.schemas import period_label
from src.et_analytics.application.service import AnalyticsApplicationService, date_range
from src.et_analytics.domain.models import (
    BudgetCategory,
    CategoryTotal,
    DateRange,
    PaymentMethodTotal,
    PeriodTotal,
    Totals,
)
from src.et_common.enums import DateGrouping, TrendPeriod
from src.et_common.errors import DateRangeRequiredError, InvalidDateRangeError

USER_ID = uuid.uuid4()
ALL_TIME = DateRange()


def _category_total(name: str, total_cents: int, count: int = 1, budget_cents: int | None = None):
    return CategoryTotal(
        category_id=f"cat-{name}", name=name, color=None, icon=None,
        budget_cents=budget_cents, total_cents=total_cents, count=count,
        average_cents=total_cents / count,
    )


def _budget(name: str, budget_cents: int) -> BudgetCategory:
    return BudgetCategory(
        category_id=f"cat-{name}", name=name, color=None, icon=None, budget_cents=budget_cents
    )


@pytest.fixture
def db():
    return MagicMock()


@pytest.fixture
def mock_repo():
    return MagicMock()


class TestDateRange:
    def test_open_range_allowed(self):
        assert date_range(None, None) == DateRange()

    def test_required_range(self):
        with pytest.raises(DateRangeRequiredError):
            date_range(date(2024, 1, 1), None, required=True)

    def test_inverted_range(self):
        with pytest.raises(InvalidDateRangeError):
            date_range(date(2024, 2, 1), date(2024, 1, 1))

    def test_single_day_is_valid(self):
        day = date(2024, 1, 15)
        assert date_range(day, day, required=True) == DateRange(day, day)


class TestPeriodLabel:
    def test_labels(self):
        p = PeriodTotal(year=2024, month=1, week=3, day=15, total_cents=0, count=0, average_cents=0)
        assert period_label(p, DateGrouping.DAY) == "2024-01-15"
        assert period_label(p, DateGrouping.WEEK) == "2024-W03"
        assert period_label(p, DateGrouping.MONTH) == "2024-01"


class TestSummary:
    async def test_single_expense(self, db, mock_repo):
        mock_repo.totals = AsyncMock(return_value=Totals(count=1, total_cents=2550, average_cents=2550.0))
        mock_repo.by_category = AsyncMock(return_value=[_category_total("Food", 2550)])
        mock_repo.by_payment_method = AsyncMock(
            return_value=[PaymentMethodTotal(payment_method="cash", total_cents=2550, count=1)]
        )
        mock_repo.by_period = AsyncMock(
            return_value=[
                PeriodTotal(year=2024, month=1, week=None, day=None,
                            total_cents=2550, count=1, average_cents=2550.0)
            ]
        )
        svc = AnalyticsApplicationService(repo=mock_repo)

        summary = (await svc.summary(db, USER_ID, ALL_TIME, "USD")).to_json_dict()

        assert summary["expenseCount"] == 1
        assert summary["totalAmount"] == 25.5
        assert summary["averageExpense"] == 25.5
        assert summary["currency"] == "USD"
        assert summary["byCategory"][0]["name"] == "Food"
        assert summary["byPaymentMethod"] == [{"paymentMethod": "cash", "total": 25.5, "count": 1}]
        assert summary["monthlyTrend"][0]["period"] == "2024-01"
        mock_repo.by_period.assert_awaited_once_with(db, USER_ID, ALL_TIME, DateGrouping.MONTH)

    async def test_no_expenses(self, db, mock_repo):
        mock_repo.totals = AsyncMock(return_value=Totals(count=0, total_cents=0, average_cents=0.0))
        mock_repo.by_category = AsyncMock(return_value=[])
        mock_repo.by_payment_method = AsyncMock(return_value=[])
        mock_repo.by_period = AsyncMock(return_value=[])
        svc = AnalyticsApplicationService(repo=mock_repo)

        summary = await svc.summary(db, USER_ID, ALL_TIME, "USD")

        assert summary.expense_count == 0
        assert summary.total_amount == 0.0
        assert summary.by_category == []


class TestTrends:
    @pytest.mark.parametrize(
        ("trend", "grouping"),
        [
            (TrendPeriod.DAILY, DateGrouping.DAY),
            (TrendPeriod.WEEKLY, DateGrouping.WEEK),
            (TrendPeriod.MONTHLY, DateGrouping.MONTH),
        ],
    )
    async def test_trend_maps_to_grouping(self, db, mock_repo, trend, grouping):
        mock_repo.by_period = AsyncMock(return_value=[])
        svc = AnalyticsApplicationService(repo=mock_repo)

        await svc.trends(db, USER_ID, ALL_TIME, trend)

        mock_repo.by_period.assert_awaited_once_with(db, USER_ID, ALL_TIME, grouping)


class TestTopCategories:
    async def test_limit_forwarded(self, db, mock_repo):
        mock_repo.by_category = AsyncMock(
            return_value=[_category_total("Food", 5000, count=2, budget_cents=10000)]
        )
        svc = AnalyticsApplicationService(repo=mock_repo)

        top = await svc.top_categories(db, USER_ID, ALL_TIME, 3)

        mock_repo.by_category.assert_awaited_once_with(db, USER_ID, ALL_TIME, limit=3)
        assert top[0].category.name == "Food"
        assert top[0].budget == 100.0
        assert top[0].average == 25.0


class TestBudgetComparison:
    async def test_sorted_by_percentage_used(self, db, mock_repo):
        mock_repo.budget_categories = AsyncMock(
            return_value=[_budget("Food", 10000), _budget("Rent", 50000), _budget("Fun", 2000)]
        )
        mock_repo.by_category = AsyncMock(
            return_value=[_category_total("Food", 5000, count=2), _category_total("Fun", 3000)]
        )
        svc = AnalyticsApplicationService(repo=mock_repo)

        rows = await svc.budget_comparison(db, USER_ID, ALL_TIME)

        assert [r.category.name for r in rows] == ["Fun", "Food", "Rent"]
        fun, food, rent = rows
        assert fun.is_over_budget is True
        assert fun.percentage_used == 150.0
        assert fun.remaining == -10.0
        assert food.percentage_used == 50.0
        assert food.transaction_count == 2
        assert rent.actual_spending == 0.0
        assert rent.is_over_budget is False

    async def test_no_budgets_short_circuits(self, db, mock_repo):
        mock_repo.budget_categories = AsyncMock(return_value=[])
        mock_repo.by_category = AsyncMock()
        svc = AnalyticsApplicationService(repo=mock_repo)

        assert await svc.budget_comparison(db, USER_ID, ALL_TIME) == []
        mock_repo.by_category.assert_not_awaited()
