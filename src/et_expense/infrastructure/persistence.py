"""ExpenseRepository: concrete implementation of ExpenseRepositoryProtocol.

ORM queries, always scoped by user_id. Reads LEFT JOIN categories so every
returned Expense carries its populated CategoryRef. Never commits: the
application service owns the transaction.
"""

import uuid
from typing import Any

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.et_category.domain.models import CategoryRef
from src.et_category.infrastructure.db_models import CategoryModel
from src.et_common.datetime_utils import utc_now
from src.et_common.errors import InternalError
from src.et_expense.domain.models import Expense, ExpenseFilters
from src.et_expense.infrastructure.db_models import ExpenseModel

_SORTS = {
    "date": (ExpenseModel.date.asc(), ExpenseModel.created_at.asc()),
    "-date": (ExpenseModel.date.desc(), ExpenseModel.created_at.desc()),
    "amount": (ExpenseModel.amount.asc(),),
    "-amount": (ExpenseModel.amount.desc(),),
    "createdAt": (ExpenseModel.created_at.asc(),),
    "-createdAt": (ExpenseModel.created_at.desc(),),
}

def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# Domain field name -> column attribute
_COLUMNS = {
    "category_id": "category_id",
    "amount_cents": "amount",
    "currency": "currency",
    "description": "description",
    "date": "date",
    "payment_method": "payment_method",
    "tags": "tags",
    "notes": "notes",
    "is_recurring": "is_recurring",
    "recurring_period": "recurring_period",
}


def to_domain(row: ExpenseModel, category: CategoryModel | None) -> Expense:
    return Expense(
        id=str(row.id),
        user_id=str(row.user_id),
        category_id=str(row.category_id),
        amount_cents=row.amount,
        currency=row.currency,
        description=row.description,
        date=row.date,
        payment_method=row.payment_method,
        tags=list(row.tags or []),
        notes=row.notes,
        is_recurring=row.is_recurring,
        recurring_period=row.recurring_period,
        created_at=row.created_at,
        updated_at=row.updated_at,
        category=CategoryRef(
            id=str(category.id), name=category.name, color=category.color, icon=category.icon
        )
        if category is not None
        else None,
    )


def _with_category() -> Select:
    return select(ExpenseModel, CategoryModel).outerjoin(
        CategoryModel, ExpenseModel.category_id == CategoryModel.id
    )


def _filter_conditions(user_id: uuid.UUID, f: ExpenseFilters) -> list[Any]:
    conditions: list[Any] = [ExpenseModel.user_id == user_id]
    if f.category_id is not None:
        conditions.append(ExpenseModel.category_id == uuid.UUID(f.category_id))
    if f.start_date is not None:
        conditions.append(ExpenseModel.date >= f.start_date)
    if f.end_date is not None:
        conditions.append(ExpenseModel.date <= f.end_date)
    if f.payment_method is not None:
        conditions.append(ExpenseModel.payment_method == f.payment_method)
    if f.min_amount_cents is not None:
        conditions.append(ExpenseModel.amount >= f.min_amount_cents)
    if f.max_amount_cents is not None:
        conditions.append(ExpenseModel.amount <= f.max_amount_cents)
    if f.search:
        pattern = f"%{_escape_like(f.search.lower())}%"
        conditions.append(
            or_(
                func.lower(ExpenseModel.description).like(pattern, escape="\\"),
                func.lower(func.coalesce(ExpenseModel.notes, "")).like(pattern, escape="\\"),
            )
        )
    return conditions


class ExpenseRepository:
    async def create(
        self, db: AsyncSession, user_id: uuid.UUID, fields: dict[str, Any]
    ) -> Expense:
        expense_id = uuid.uuid4()
        db.add(
            ExpenseModel(
                id=expense_id,
                user_id=user_id,
                **{_COLUMNS[k]: v for k, v in fields.items()},
            )
        )
        await db.flush()
        expense = await self.get(db, user_id, expense_id)
        if expense is None:
            raise InternalError(f"Expense {expense_id} vanished after insert")
        return expense

    async def get(
        self, db: AsyncSession, user_id: uuid.UUID, expense_id: uuid.UUID
    ) -> Expense | None:
        result = await db.execute(
            _with_category().where(
                ExpenseModel.id == expense_id,
                ExpenseModel.user_id == user_id,
            )
        )
        row = result.one_or_none()
        return to_domain(row[0], row[1]) if row else None

    async def list_expenses(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        filters: ExpenseFilters,
        offset: int,
        limit: int,
    ) -> tuple[list[Expense], int]:
        conditions = _filter_conditions(user_id, filters)
        total = (
            await db.execute(select(func.count()).select_from(ExpenseModel).where(*conditions))
        ).scalar_one()
        result = await db.execute(
            _with_category()
            .where(*conditions)
            .order_by(*_SORTS.get(filters.sort, _SORTS["-date"]), ExpenseModel.id)
            .offset(offset)
            .limit(limit)
        )
        return [to_domain(e, c) for e, c in result.all()], int(total)

    async def update(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        expense_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Expense | None:
        row = (
            await db.execute(
                select(ExpenseModel).where(
                    ExpenseModel.id == expense_id,
                    ExpenseModel.user_id == user_id,
                )
            )
        ).scalar_one_or_none()
        if row is None:
            return None
        for field, value in changes.items():
            setattr(row, _COLUMNS[field], value)
        row.updated_at = utc_now()
        await db.flush()
        return await self.get(db, user_id, expense_id)

    async def delete(
        self, db: AsyncSession, user_id: uuid.UUID, expense_id: uuid.UUID
    ) -> bool:
        result = await db.execute(
            delete(ExpenseModel).where(
                ExpenseModel.id == expense_id,
                ExpenseModel.user_id == user_id,
            )
        )
        return result.rowcount > 0

    async def delete_many(
        self, db: AsyncSession, user_id: uuid.UUID, expense_ids: list[uuid.UUID]
    ) -> list[str]:
        """Delete the caller's expenses among `expense_ids`; returns the ids removed.

        Ids that do not exist or belong to someone else are silently skipped.
        """
        owned = (
            await db.execute(
                select(ExpenseModel.id).where(
                    ExpenseModel.user_id == user_id,
                    ExpenseModel.id.in_(expense_ids),
                )
            )
        ).scalars().all()
        if not owned:
            return []
        await db.execute(
            delete(ExpenseModel).where(
                ExpenseModel.user_id == user_id,
                ExpenseModel.id.in_(owned),
            )
        )
        return [str(i) for i in owned]
