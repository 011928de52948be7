"""Domain models for et_expense: pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import date, datetime

from src.et_category.domain.models import CategoryRef


@dataclass
class Expense:
    id: str
    user_id: str
    category_id: str
    amount_cents: int
    currency: str
    description: str
    date: date
    payment_method: str
    tags: list[str]
    notes: str | None
    is_recurring: bool
    recurring_period: str | None
    created_at: datetime
    updated_at: datetime
    category: CategoryRef | None = None   # populated on every read


@dataclass
class ExpenseFilters:
    """List filters; None means "no constraint"."""

    category_id: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    payment_method: str | None = None
    min_amount_cents: int | None = None
    max_amount_cents: int | None = None
    search: str | None = None
    sort: str = "-date"
