"""Pydantic request/response schemas for et_category.

Budgets are decimal amounts on the wire and cents in the domain.
"""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from src.et_category.domain.models import Category, CategoryRef
from src.et_common.money import MAX_AMOUNT, from_cents, to_cents
from src.et_common.response import CamelModel

_HEX_COLOR = r"^#(?:[0-9a-fA-F]{3}){1,2}$"


class _CategoryFields(CamelModel):
    @field_validator("name", check_fields=False)
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Category name cannot be blank")
        return v

    def to_domain_fields(self, include: set[str] | None = None) -> dict[str, Any]:
        fields = self.model_dump(include=include)
        if "budget" in fields:
            budget = fields.pop("budget")
            fields["budget_cents"] = to_cents(budget) if budget is not None else None
        return fields


class CategoryCreateRequest(_CategoryFields):
    name: str = Field(..., min_length=1, max_length=50)
    color: str | None = Field(None, pattern=_HEX_COLOR)
    icon: str | None = Field(None, max_length=50)
    budget: float | None = Field(None, ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    description: str | None = Field(None, max_length=200)
    is_active: bool = True


class CategoryUpdateRequest(_CategoryFields):
    name: str | None = Field(None, min_length=1, max_length=50)
    color: str | None = Field(None, pattern=_HEX_COLOR)
    icon: str | None = Field(None, max_length=50)
    budget: float | None = Field(None, ge=0, le=MAX_AMOUNT, allow_inf_nan=False)
    description: str | None = Field(None, max_length=200)
    is_active: bool | None = None

    @model_validator(mode="after")
    def not_empty(self) -> "CategoryUpdateRequest":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        if "name" in self.model_fields_set and self.name is None:
            raise ValueError("Category name cannot be null")
        if "is_active" in self.model_fields_set and self.is_active is None:
            raise ValueError("isActive cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Only the fields the client sent; an explicit null clears optional fields."""
        return self.to_domain_fields(include=self.model_fields_set)


class CategoryResponse(CamelModel):
    id: str
    user_id: str
    name: str
    color: str | None = None
    icon: str | None = None
    budget: float | None = None
    description: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, c: Category) -> "CategoryResponse":
        return cls(
            id=c.id,
            user_id=c.user_id,
            name=c.name,
            color=c.color,
            icon=c.icon,
            budget=from_cents(c.budget_cents) if c.budget_cents is not None else None,
            description=c.description,
            is_active=c.is_active,
            created_at=c.created_at,
            updated_at=c.updated_at,
        )


class CategoryRefResponse(CamelModel):
    id: str
    name: str
    color: str | None = None
    icon: str | None = None

    @classmethod
    def from_domain(cls, ref: CategoryRef) -> "CategoryRefResponse":
        return cls(id=ref.id, name=ref.name, color=ref.color, icon=ref.icon)
