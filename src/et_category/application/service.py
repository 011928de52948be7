"""CategoryApplicationService: thin composition layer.

Write methods commit on success and roll back on any error. Reads run
without an explicit transaction.
"""

import uuid
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.et_category.application.schemas import CategoryResponse
from src.et_category.domain.models import Category
from src.et_category.domain.repository import CategoryRepositoryProtocol
from src.et_category.infrastructure.persistence import CategoryRepository
from src.et_common.errors import (
    CategoryInUseError,
    CategoryNameExistsError,
    CategoryNotFoundError,
)


class CategoryApplicationService:
    def __init__(self, repo: CategoryRepositoryProtocol | None = None) -> None:
        self._repo: CategoryRepositoryProtocol = repo or CategoryRepository()

    async def create(
        self, db: AsyncSession, user_id: uuid.UUID, fields: dict[str, Any]
    ) -> CategoryResponse:
        name = fields["name"]
        try:
            if fields.get("is_active", True) and await self._repo.find_active_by_name(
                db, user_id, name
            ):
                raise CategoryNameExistsError(name)
            category = await self._repo.create(db, user_id, fields)
            await db.commit()
        except IntegrityError:
            # Lost a race against a concurrent create of the same name
            await db.rollback()
            raise CategoryNameExistsError(name) from None
        except Exception:
            await db.rollback()
            raise
        return CategoryResponse.from_domain(category)

    async def get(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> CategoryResponse:
        return CategoryResponse.from_domain(await self._require(db, user_id, category_id))

    async def list_categories(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        include_inactive: bool,
        offset: int,
        limit: int,
    ) -> tuple[list[CategoryResponse], int]:
        categories, total = await self._repo.list_categories(
            db, user_id, include_inactive, offset, limit
        )
        return [CategoryResponse.from_domain(c) for c in categories], total

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        category_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> CategoryResponse:
        try:
            current = await self._require(db, user_id, category_id)
            name = changes.get("name", current.name)
            active = changes.get("is_active", current.is_active)
            # Renaming or reactivating must not collide with another active category
            if active and await self._repo.find_active_by_name(
                db, user_id, name, exclude_id=category_id
            ):
                raise CategoryNameExistsError(name)
            category = await self._repo.update(db, user_id, category_id, changes)
            if category is None:
                raise CategoryNotFoundError(str(category_id))
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise CategoryNameExistsError(changes.get("name", "")) from None
        except Exception:
            await db.rollback()
            raise
        return CategoryResponse.from_domain(category)

    async def delete(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> CategoryResponse:
        """Hard delete. Refused while any expense still references the category."""
        try:
            category = await self._require(db, user_id, category_id)
            in_use = await self._repo.count_expenses(db, user_id, category_id)
            if in_use:
                raise CategoryInUseError(str(category_id), in_use)
            await self._repo.delete(db, user_id, category_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return CategoryResponse.from_domain(category)

    async def _require(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> Category:
        category = await self._repo.get(db, user_id, category_id)
        if category is None:
            raise CategoryNotFoundError(str(category_id))
        return category
