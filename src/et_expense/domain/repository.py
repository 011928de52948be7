"""ExpenseRepository Protocol: interface contract for the persistence layer.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

import uuid
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.et_expense.domain.models import Expense, ExpenseFilters


class ExpenseRepositoryProtocol(Protocol):
    async def create(
        self, db: AsyncSession, user_id: uuid.UUID, fields: dict[str, Any]
    ) -> Expense: ...

    async def get(
        self, db: AsyncSession, user_id: uuid.UUID, expense_id: uuid.UUID
    ) -> Expense | None: ...

    async def list_expenses(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        filters: ExpenseFilters,
        offset: int,
        limit: int,
    ) -> tuple[list[Expense], int]: ...

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        expense_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Expense | None: ...

    async def delete(
        self, db: AsyncSession, user_id: uuid.UUID, expense_id: uuid.UUID
    ) -> bool: ...

    async def delete_many(
        self, db: AsyncSession, user_id: uuid.UUID, expense_ids: list[uuid.UUID]
    ) -> list[str]: ...
