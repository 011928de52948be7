"""ExpenseApplicationService: thin composition layer.

Write methods commit on success and roll back on any error. A referenced
category must belong to the caller; someone else's category is reported
exactly like a missing one.
"""

import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.et_category.domain.repository import CategoryRepositoryProtocol
from src.et_category.infrastructure.persistence import CategoryRepository
from src.et_common.datetime_utils import today
from src.et_common.errors import (
    CategoryNotFoundError,
    ExpenseNotFoundError,
    ValidationFailedError,
)
from src.et_expense.application.schemas import ExpenseResponse
from src.et_expense.domain.models import Expense, ExpenseFilters
from src.et_expense.domain.repository import ExpenseRepositoryProtocol
from src.et_expense.infrastructure.persistence import ExpenseRepository


class ExpenseApplicationService:
    def __init__(
        self,
        repo: ExpenseRepositoryProtocol | None = None,
        category_repo: CategoryRepositoryProtocol | None = None,
    ) -> None:
        self._repo: ExpenseRepositoryProtocol = repo or ExpenseRepository()
        self._categories: CategoryRepositoryProtocol = category_repo or CategoryRepository()

    async def create(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        fields: dict[str, Any],
        default_currency: str,
    ) -> ExpenseResponse:
        fields = dict(fields)
        fields["currency"] = fields.get("currency") or default_currency
        fields["date"] = fields.get("date") or today()
        try:
            await self._require_category(db, user_id, fields["category_id"])
            expense = await self._repo.create(db, user_id, fields)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ExpenseResponse.from_domain(expense)

    async def get(
        self, db: AsyncSession, user_id: uuid.UUID, expense_id: uuid.UUID
    ) -> ExpenseResponse:
        return ExpenseResponse.from_domain(await self._require(db, user_id, expense_id))

    async def list_expenses(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        filters: ExpenseFilters,
        offset: int,
        limit: int,
    ) -> tuple[list[ExpenseResponse], int]:
        if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
            raise ValidationFailedError(["startDate must not be after endDate"])
        if (
            filters.min_amount_cents is not None
            and filters.max_amount_cents is not None
            and filters.min_amount_cents > filters.max_amount_cents
        ):
            raise ValidationFailedError(["minAmount must not exceed maxAmount"])
        expenses, total = await self._repo.list_expenses(db, user_id, filters, offset, limit)
        return [ExpenseResponse.from_domain(e) for e in expenses], total

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        expense_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> ExpenseResponse:
        changes = dict(changes)
        try:
            current = await self._require(db, user_id, expense_id)
            if "category_id" in changes:
                await self._require_category(db, user_id, changes["category_id"])
            _check_recurrence(current, changes)
            expense = await self._repo.update(db, user_id, expense_id, changes)
            if expense is None:
                raise ExpenseNotFoundError(str(expense_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ExpenseResponse.from_domain(expense)

    async def delete(
        self, db: AsyncSession, user_id: uuid.UUID, expense_id: uuid.UUID
    ) -> ExpenseResponse:
        try:
            expense = await self._require(db, user_id, expense_id)
            await self._repo.delete(db, user_id, expense_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ExpenseResponse.from_domain(expense)

    async def bulk_delete(
        self, db: AsyncSession, user_id: uuid.UUID, expense_ids: list[uuid.UUID]
    ) -> list[str]:
        """Delete every listed expense the caller owns; returns the ids removed."""
        try:
            deleted = await self._repo.delete_many(db, user_id, list(dict.fromkeys(expense_ids)))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return deleted

    async def _require(
        self, db: AsyncSession, user_id: uuid.UUID, expense_id: uuid.UUID
    ) -> Expense:
        expense = await self._repo.get(db, user_id, expense_id)
        if expense is None:
            raise ExpenseNotFoundError(str(expense_id))
        return expense

    async def _require_category(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> None:
        if await self._categories.get(db, user_id, category_id) is None:
            raise CategoryNotFoundError(str(category_id))


def _check_recurrence(current: Expense, changes: dict[str, Any]) -> None:
    """A recurring expense needs a period; a non-recurring one keeps none."""
    recurring = changes.get("is_recurring", current.is_recurring)
    period = changes.get("recurring_period", current.recurring_period)
    if recurring and not period:
        raise ValidationFailedError(["recurringPeriod is required when isRecurring is true"])
    if not recurring and period:
        changes["recurring_period"] = None
