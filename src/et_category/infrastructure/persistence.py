"""CategoryRepository: concrete implementation of CategoryRepositoryProtocol.

ORM queries, always scoped by user_id. Never commits: the application
service owns the transaction.
"""

import uuid
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.et_category.domain.models import Category
from src.et_category.infrastructure.db_models import CategoryModel
from src.et_common.datetime_utils import utc_now
from src.et_expense.infrastructure.db_models import ExpenseModel


def _to_domain(row: CategoryModel) -> Category:
    return Category(
        id=str(row.id),
        user_id=str(row.user_id),
        name=row.name,
        color=row.color,
        icon=row.icon,
        budget_cents=row.budget,
        description=row.description,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# Domain field name -> column attribute
_COLUMNS = {
    "name": "name",
    "color": "color",
    "icon": "icon",
    "budget_cents": "budget",
    "description": "description",
    "is_active": "is_active",
}


class CategoryRepository:
    async def create(
        self, db: AsyncSession, user_id: uuid.UUID, fields: dict[str, Any]
    ) -> Category:
        row = CategoryModel(
            id=uuid.uuid4(),
            user_id=user_id,
            **{_COLUMNS[k]: v for k, v in fields.items()},
        )
        db.add(row)
        await db.flush()
        return _to_domain(row)

    async def _get_row(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> CategoryModel | None:
        result = await db.execute(
            select(CategoryModel).where(
                CategoryModel.id == category_id,
                CategoryModel.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> Category | None:
        row = await self._get_row(db, user_id, category_id)
        return _to_domain(row) if row else None

    async def list_categories(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        include_inactive: bool,
        offset: int,
        limit: int,
    ) -> tuple[list[Category], int]:
        conditions = [CategoryModel.user_id == user_id]
        if not include_inactive:
            conditions.append(CategoryModel.is_active.is_(True))

        total = (
            await db.execute(select(func.count()).select_from(CategoryModel).where(*conditions))
        ).scalar_one()
        result = await db.execute(
            select(CategoryModel)
            .where(*conditions)
            .order_by(CategoryModel.name, CategoryModel.id)
            .offset(offset)
            .limit(limit)
        )
        return [_to_domain(r) for r in result.scalars().all()], int(total)

    async def find_active_by_name(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        name: str,
        exclude_id: uuid.UUID | None = None,
    ) -> Category | None:
        stmt = select(CategoryModel).where(
            CategoryModel.user_id == user_id,
            CategoryModel.is_active.is_(True),
            func.lower(CategoryModel.name) == name.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(CategoryModel.id != exclude_id)
        row = (await db.execute(stmt.limit(1))).scalar_one_or_none()
        return _to_domain(row) if row else None

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        category_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Category | None:
        row = await self._get_row(db, user_id, category_id)
        if row is None:
            return None
        for field, value in changes.items():
            setattr(row, _COLUMNS[field], value)
        row.updated_at = utc_now()
        await db.flush()
        return _to_domain(row)

    async def delete(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> bool:
        result = await db.execute(
            delete(CategoryModel).where(
                CategoryModel.id == category_id,
                CategoryModel.user_id == user_id,
            )
        )
        return result.rowcount > 0

    async def count_expenses(
        self, db: AsyncSession, user_id: uuid.UUID, category_id: uuid.UUID
    ) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(ExpenseModel)
            .where(
                ExpenseModel.user_id == user_id,
                ExpenseModel.category_id == category_id,
            )
        )
        return int(result.scalar_one())
