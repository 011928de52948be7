"""et_expense REST API: 6 endpoints, all require JWT authentication.

Reads go through the response cache; writes queue cache invalidation,
mirror sync and a realtime event as post-commit tasks.
"""

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.et_common.cache import ResponseCache, get_cache, request_cache_key
from src.et_common.database import get_db_session
from src.et_common.enums import CacheResource, ChangeAction, MirrorEntity, PaymentMethod
from src.et_common.money import MAX_AMOUNT, to_cents
from src.et_common.pagination import PageParams, page_params
from src.et_common.post_commit import PostCommitTasks, get_post_commit
from src.et_common.response import (
    SuccessResponse,
    paginated_response,
    stamp,
    success_response,
)
from src.et_expense.application.schemas import (
    BulkDeleteRequest,
    ExpenseCreateRequest,
    ExpenseResponse,
    ExpenseSort,
    ExpenseUpdateRequest,
)
from src.et_expense.application.service import ExpenseApplicationService
from src.et_expense.domain.models import ExpenseFilters
from src.et_gateway.auth.dependencies import get_current_user, get_current_user_id
from src.et_gateway.user.db_models import UserModel
from src.et_mirror.store import MirrorStore, get_mirror
from src.et_realtime.notifier import Notifier, get_notifier

router = APIRouter(prefix="/expenses", tags=["expenses"])

_service = ExpenseApplicationService()

_INVALIDATES = (CacheResource.EXPENSES, CacheResource.ANALYTICS)


def _invalidate(tasks: PostCommitTasks, cache: ResponseCache, owner: str) -> None:
    for resource in _INVALIDATES:
        tasks.add(f"cache.invalidate.{resource.value}", cache.invalidate, resource, owner)


def _queue_effects(
    tasks: PostCommitTasks,
    cache: ResponseCache,
    mirror: MirrorStore,
    notifier: Notifier,
    user_id: uuid.UUID,
    action: ChangeAction,
    expense: ExpenseResponse,
) -> None:
    owner = str(user_id)
    _invalidate(tasks, cache, owner)
    if action is ChangeAction.DELETED:
        tasks.add(
            "mirror.delete_expense",
            mirror.delete_entity,
            MirrorEntity.EXPENSE,
            expense.id,
            timeout=settings.MIRROR_TIMEOUT_SECONDS,
        )
    else:
        tasks.add(
            "mirror.sync_expense",
            mirror.sync_expense,
            expense,
            timeout=settings.MIRROR_TIMEOUT_SECONDS,
        )
    tasks.add("notify.expense", notifier.notify, owner, "expense", action, expense.to_json_dict())


def expense_filters(
    category: uuid.UUID | None = Query(None, description="Category id"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    payment_method: PaymentMethod | None = Query(None, alias="paymentMethod"),
    min_amount: float | None = Query(
        None, alias="minAmount", ge=0, le=MAX_AMOUNT, allow_inf_nan=False
    ),
    max_amount: float | None = Query(
        None, alias="maxAmount", ge=0, le=MAX_AMOUNT, allow_inf_nan=False
    ),
    search: str | None = Query(None, max_length=100),
    sort: ExpenseSort = Query("-date"),
) -> ExpenseFilters:
    return ExpenseFilters(
        category_id=str(category) if category else None,
        start_date=start_date,
        end_date=end_date,
        payment_method=payment_method.value if payment_method else None,
        min_amount_cents=to_cents(min_amount) if min_amount is not None else None,
        max_amount_cents=to_cents(max_amount) if max_amount is not None else None,
        search=search.strip() if search and search.strip() else None,
        sort=sort,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_expense(
    request: Request,
    body: ExpenseCreateRequest,
    user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    expense = await _service.create(db, user.id, body.to_domain_fields(), user.currency)
    _queue_effects(tasks, cache, mirror, notifier, user.id, ChangeAction.CREATED, expense)
    return stamp(success_response(expense.to_json_dict(), "Expense created successfully"), request)


@router.get("")
async def list_expenses(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    paging: Annotated[PageParams, Depends(page_params)],
    filters: Annotated[ExpenseFilters, Depends(expense_filters)],
) -> SuccessResponse:
    async def load() -> SuccessResponse:
        items, total = await _service.list_expenses(
            db, user_id, filters, paging.offset, paging.limit
        )
        return paginated_response(
            [e.to_json_dict() for e in items], paging.page, paging.limit, total
        )

    key = request_cache_key(request, CacheResource.EXPENSES, str(user_id))
    resp = await cache.read_through(key, settings.CACHE_TTL_EXPENSES, load)
    return stamp(resp, request)


@router.post("/bulk-delete")
async def bulk_delete_expenses(
    request: Request,
    body: BulkDeleteRequest,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    deleted = await _service.bulk_delete(db, user_id, body.ids)
    owner = str(user_id)
    if deleted:
        _invalidate(tasks, cache, owner)
        for expense_id in deleted:
            tasks.add(
                "mirror.delete_expense",
                mirror.delete_entity,
                MirrorEntity.EXPENSE,
                expense_id,
                timeout=settings.MIRROR_TIMEOUT_SECONDS,
            )
        tasks.add(
            "notify.expense",
            notifier.notify,
            owner,
            "expense",
            ChangeAction.DELETED,
            {"ids": deleted, "deletedCount": len(deleted)},
        )
    data = {"deletedCount": len(deleted), "ids": deleted}
    return stamp(success_response(data, f"{len(deleted)} expense(s) deleted"), request)


@router.get("/{expense_id}")
async def get_expense(
    request: Request,
    expense_id: uuid.UUID,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
) -> SuccessResponse:
    async def load() -> SuccessResponse:
        expense = await _service.get(db, user_id, expense_id)
        return success_response(expense.to_json_dict())

    key = request_cache_key(request, CacheResource.EXPENSES, str(user_id))
    resp = await cache.read_through(key, settings.CACHE_TTL_EXPENSES, load)
    return stamp(resp, request)


@router.put("/{expense_id}")
async def update_expense(
    request: Request,
    expense_id: uuid.UUID,
    body: ExpenseUpdateRequest,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    expense = await _service.update(db, user_id, expense_id, body.changes())
    _queue_effects(tasks, cache, mirror, notifier, user_id, ChangeAction.UPDATED, expense)
    return stamp(success_response(expense.to_json_dict(), "Expense updated successfully"), request)


@router.delete("/{expense_id}")
async def delete_expense(
    request: Request,
    expense_id: uuid.UUID,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    expense = await _service.delete(db, user_id, expense_id)
    _queue_effects(tasks, cache, mirror, notifier, user_id, ChangeAction.DELETED, expense)
    return stamp(success_response({"id": expense.id}, "Expense deleted successfully"), request)
