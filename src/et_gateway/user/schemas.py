"""Pydantic request/response schemas for et_gateway.

All responses are wrapped in the success envelope at the router layer.
Bodies accept camelCase (wire) or snake_case field names.
"""

from datetime import datetime
from typing import Any

from pydantic import ConfigDict, EmailStr, Field, field_validator, model_validator

from src.et_common.response import CamelModel
from src.et_gateway.user.db_models import UserModel

_CURRENCY = r"^[A-Za-z]{3}$"


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[a-zA-Z0-9_]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str | None = Field(None, max_length=50)
    last_name: str | None = Field(None, max_length=50)
    currency: str | None = Field(None, pattern=_CURRENCY)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str | None) -> str | None:
        return v.upper() if v else v


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class ProfileUpdateRequest(CamelModel):
    """Only these three fields may change; anything else is rejected."""

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = Field(None, max_length=50)
    last_name: str | None = Field(None, max_length=50)
    currency: str | None = Field(None, pattern=_CURRENCY)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str | None) -> str | None:
        return v.upper() if v else v

    @model_validator(mode="after")
    def not_empty(self) -> "ProfileUpdateRequest":
        if not self.model_fields_set:
            raise ValueError("At least one of firstName, lastName, currency is required")
        if "currency" in self.model_fields_set and self.currency is None:
            raise ValueError("currency cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(include=self.model_fields_set)


class PasswordChangeRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class UserPublic(CamelModel):
    """User as exposed by the API: never includes the password or token digest."""

    id: str
    username: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    currency: str
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_model(cls, user: UserModel) -> "UserPublic":
        return cls(
            id=str(user.id),
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            currency=user.currency,
            is_active=user.is_active,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
        )


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class AuthResponse(TokenPair):
    user: UserPublic
