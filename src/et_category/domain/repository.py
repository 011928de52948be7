"""CategoryRepository Protocol: interface contract for the persistence layer.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Every method takes the owner's user_id: a category is only ever visible to
the user who created it.
"""

import uuid
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.et_category.domain.models import Category


class CategoryRepositoryProtocol(Protocol):
    async def create(
        self, db: AsyncSession, user_id: uuid.UUID, fields: dict[str, Any]
    ) -> Category: ...

    async def get(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> Category | None: ...

    async def list_categories(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        include_inactive: bool,
        offset: int,
        limit: int,
    ) -> tuple[list[Category], int]: ...

    async def find_active_by_name(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> Category | None: ...

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        category_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Category | None: ...

    async def delete(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> bool: ...

    async def count_expenses(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> int: ...
