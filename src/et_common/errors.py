"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Category
  3xxx: Expense
  4xxx: Analytics
  5xxx: Mirror store
  9xxx: System

Ownership failures are reported as "not found" (404), never "forbidden":
another user's resource must be indistinguishable from a missing one.
"""

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already taken", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already registered", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid email or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is deactivated", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class IncorrectPasswordError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Current password is incorrect", 401)


class UserNotFoundError(AppError):
    def __init__(self) -> None:
        super().__init__(1007, "User not found", 404)


# --- 2xxx: Category ---

class CategoryNotFoundError(AppError):
    def __init__(self, category_id: str) -> None:
        super().__init__(2001, f"Category not found: {category_id}", 404)


class CategoryNameExistsError(AppError):
    def __init__(self, name: str) -> None:
        super().__init__(2002, f"Category '{name}' already exists", 409)


class CategoryInUseError(AppError):
    def __init__(self, category_id: str, expense_count: int) -> None:
        super().__init__(
            2003,
            f"Cannot delete category {category_id}: {expense_count} expense(s) still reference it",
            409,
            details={"expenseCount": expense_count},
        )
        self.expense_count = expense_count


# --- 3xxx: Expense ---

class ExpenseNotFoundError(AppError):
    def __init__(self, expense_id: str) -> None:
        super().__init__(3001, f"Expense not found: {expense_id}", 404)


# --- 4xxx: Analytics ---

class DateRangeRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(4001, "Start date and end date are required", 400)


class InvalidDateRangeError(AppError):
    def __init__(self) -> None:
        super().__init__(4002, "Start date must not be after end date", 400)


# --- 5xxx: Mirror store ---

class MirrorUnavailableError(AppError):
    def __init__(self) -> None:
        super().__init__(
            5001,
            "Mirror store is not available. Configure MIRROR_DATABASE_URL to enable it.",
            503,
            details={"available": False},
        )


# --- 9xxx: System ---

class ValidationFailedError(AppError):
    def __init__(self, errors: list[str], message: str = "Validation failed") -> None:
        super().__init__(9000, message, 400)
        self.errors = errors


class RateLimitError(AppError):
    def __init__(self, retry_after: int) -> None:
        super().__init__(9001, "Too many requests, please try again later.", 429)
        self.retry_after = retry_after


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
