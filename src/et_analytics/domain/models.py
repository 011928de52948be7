"""Domain models for et_analytics: aggregate rows as the database returns them.

All money values are integer cents; averages stay fractional cents until
the schema layer rounds them.
"""

from dataclasses import dataclass
from datetime import date


@dataclass
class DateRange:
    start: date | None = None
    end: date | None = None


@dataclass
class Totals:
    count: int
    total_cents: int
    average_cents: float


@dataclass
class CategoryTotal:
    category_id: str
    name: str
    color: str | None
    icon: str | None
    budget_cents: int | None
    total_cents: int
    count: int
    average_cents: float


@dataclass
class PaymentMethodTotal:
    payment_method: str
    total_cents: int
    count: int


@dataclass
class PeriodTotal:
    """One time bucket. `month`, `week` and `day` are set according to the grouping."""

    year: int
    month: int | None
    week: int | None
    day: int | None
    total_cents: int
    count: int
    average_cents: float


@dataclass
class BudgetCategory:
    category_id: str
    name: str
    color: str | None
    icon: str | None
    budget_cents: int
