"""Pydantic request/response schemas for et_expense.

Amounts are decimal on the wire and integer cents in the domain. The request
field `category` carries the category id; responses return both `categoryId`
and the populated `category` object.
"""

import uuid
import datetime as dt
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from src.et_category.application.schemas import CategoryRefResponse
from src.et_common.enums import PaymentMethod, RecurringPeriod
from src.et_common.money import MAX_AMOUNT, from_cents, to_cents
from src.et_common.response import CamelModel
from src.et_expense.domain.models import Expense

ExpenseSort = Literal["date", "-date", "amount", "-amount", "createdAt", "-createdAt"]

_CURRENCY = r"^[A-Za-z]{3}$"
_MAX_TAGS = 20


class _ExpenseFields(CamelModel):
    @field_validator("description", check_fields=False)
    @classmethod
    def strip_description(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Description cannot be blank")
        return v

    @field_validator("currency", check_fields=False)
    @classmethod
    def upper_currency(cls, v: str | None) -> str | None:
        return v.upper() if v else v

    @field_validator("tags", check_fields=False)
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        # Trimmed, empty tags dropped, first occurrence wins
        return list(dict.fromkeys(t.strip() for t in v if t.strip()))

    def _convert(self, fields: dict[str, Any]) -> dict[str, Any]:
        if "amount" in fields:
            fields["amount_cents"] = to_cents(fields.pop("amount"))
        for key in ("payment_method", "recurring_period"):
            value = fields.get(key)
            if value is not None:
                fields[key] = value.value
        return fields


class ExpenseCreateRequest(_ExpenseFields):
    amount: float = Field(..., ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    currency: str | None = Field(None, pattern=_CURRENCY)
    category_id: uuid.UUID = Field(..., alias="category")
    description: str = Field(..., min_length=1, max_length=500)
    date: dt.date | None = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    tags: list[str] = Field(default_factory=list, max_length=_MAX_TAGS)
    notes: str | None = Field(None, max_length=1000)
    is_recurring: bool = False
    recurring_period: RecurringPeriod | None = None

    @model_validator(mode="after")
    def recurring_needs_period(self) -> "ExpenseCreateRequest":
        if self.is_recurring and self.recurring_period is None:
            raise ValueError("recurringPeriod is required when isRecurring is true")
        if not self.is_recurring:
            self.recurring_period = None
        return self

    def to_domain_fields(self) -> dict[str, Any]:
        return self._convert(self.model_dump())


class ExpenseUpdateRequest(_ExpenseFields):
    amount: float | None = Field(None, ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    currency: str | None = Field(None, pattern=_CURRENCY)
    category_id: uuid.UUID | None = Field(None, alias="category")
    description: str | None = Field(None, min_length=1, max_length=500)
    date: dt.date | None = None
    payment_method: PaymentMethod | None = None
    tags: list[str] | None = Field(None, max_length=_MAX_TAGS)
    notes: str | None = Field(None, max_length=1000)
    is_recurring: bool | None = None
    recurring_period: RecurringPeriod | None = None

    @model_validator(mode="after")
    def not_empty(self) -> "ExpenseUpdateRequest":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        # Only notes and recurringPeriod may be cleared with an explicit null
        nullable = {"notes", "recurring_period"}
        for name in self.model_fields_set - nullable:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        fields = self.model_dump(include=self.model_fields_set)
        if fields.get("tags") is None:
            fields.pop("tags", None)
        return self._convert(fields)


class BulkDeleteRequest(CamelModel):
    ids: list[uuid.UUID] = Field(..., min_length=1, max_length=500)


class ExpenseResponse(CamelModel):
    id: str
    user_id: str
    category_id: str
    category: CategoryRefResponse | None = None
    amount: float
    currency: str
    description: str
    date: dt.date
    payment_method: PaymentMethod
    tags: list[str]
    notes: str | None = None
    is_recurring: bool
    recurring_period: RecurringPeriod | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_domain(cls, e: Expense) -> "ExpenseResponse":
        return cls(
            id=e.id,
            user_id=e.user_id,
            category_id=e.category_id,
            category=CategoryRefResponse.from_domain(e.category) if e.category else None,
            amount=from_cents(e.amount_cents),
            currency=e.currency,
            description=e.description,
            date=e.date,
            payment_method=PaymentMethod(e.payment_method),
            tags=list(e.tags or []),
            notes=e.notes,
            is_recurring=e.is_recurring,
            recurring_period=RecurringPeriod(e.recurring_period) if e.recurring_period else None,
            created_at=e.created_at,
            updated_at=e.updated_at,
        )
