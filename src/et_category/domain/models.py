"""Domain models for et_category: pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Category:
    id: str
    user_id: str
    name: str
    color: str | None
    icon: str | None
    budget_cents: int | None      # monthly budget, None = no budget
    description: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass
class CategoryRef:
    """The slice of a category embedded in expense payloads."""

    id: str
    name: str
    color: str | None
    icon: str | None
