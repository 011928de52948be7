"""et_category REST API: 5 endpoints, all require JWT authentication.

Reads go through the response cache; writes queue cache invalidation,
mirror sync and a realtime event as post-commit tasks.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.et_category.application.schemas import (
    CategoryCreateRequest,
    CategoryResponse,
    CategoryUpdateRequest,
)
from src.et_category.application.service import CategoryApplicationService
from src.et_common.cache import ResponseCache, get_cache, request_cache_key
from src.et_common.database import get_db_session
from src.et_common.enums import CacheResource, ChangeAction, MirrorEntity
from src.et_common.pagination import PageParams, page_params
from src.et_common.post_commit import PostCommitTasks, get_post_commit
from src.et_common.response import (
    SuccessResponse,
    paginated_response,
    stamp,
    success_response,
)
from src.et_gateway.auth.dependencies import get_current_user_id
from src.et_mirror.store import MirrorStore, get_mirror
from src.et_realtime.notifier import Notifier, get_notifier

router = APIRouter(prefix="/categories", tags=["categories"])

_service = CategoryApplicationService()

# A category change alters expense payloads (embedded category) and analytics
_INVALIDATES = (CacheResource.CATEGORIES, CacheResource.EXPENSES, CacheResource.ANALYTICS)


def _queue_effects(
    tasks: PostCommitTasks,
    cache: ResponseCache,
    mirror: MirrorStore,
    notifier: Notifier,
    user_id: uuid.UUID,
    action: ChangeAction,
    category: CategoryResponse,
) -> None:
    owner = str(user_id)
    for resource in _INVALIDATES:
        tasks.add(f"cache.invalidate.{resource.value}", cache.invalidate, resource, owner)
    if action is ChangeAction.DELETED:
        tasks.add(
            "mirror.delete_category",
            mirror.delete_entity,
            MirrorEntity.CATEGORY,
            category.id,
            timeout=settings.MIRROR_TIMEOUT_SECONDS,
        )
    else:
        tasks.add(
            "mirror.sync_category",
            mirror.sync_category,
            category,
            timeout=settings.MIRROR_TIMEOUT_SECONDS,
        )
    tasks.add(
        "notify.category", notifier.notify, owner, "category", action, category.to_json_dict()
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    request: Request,
    body: CategoryCreateRequest,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    category = await _service.create(db, user_id, body.to_domain_fields())
    _queue_effects(tasks, cache, mirror, notifier, user_id, ChangeAction.CREATED, category)
    return stamp(success_response(category.to_json_dict(), "Category created successfully"), request)


@router.get("")
async def list_categories(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    paging: Annotated[PageParams, Depends(page_params)],
    include_inactive: bool = Query(False, alias="includeInactive"),
) -> SuccessResponse:
    async def load() -> SuccessResponse:
        items, total = await _service.list_categories(
            db, user_id, include_inactive, paging.offset, paging.limit
        )
        return paginated_response(
            [c.to_json_dict() for c in items], paging.page, paging.limit, total
        )

    key = request_cache_key(request, CacheResource.CATEGORIES, str(user_id))
    resp = await cache.read_through(key, settings.CACHE_TTL_CATEGORIES, load)
    return stamp(resp, request)


@router.get("/{category_id}")
async def get_category(
    request: Request,
    category_id: uuid.UUID,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
) -> SuccessResponse:
    async def load() -> SuccessResponse:
        category = await _service.get(db, user_id, category_id)
        return success_response(category.to_json_dict())

    key = request_cache_key(request, CacheResource.CATEGORIES, str(user_id))
    resp = await cache.read_through(key, settings.CACHE_TTL_CATEGORIES, load)
    return stamp(resp, request)


@router.put("/{category_id}")
async def update_category(
    request: Request,
    category_id: uuid.UUID,
    body: CategoryUpdateRequest,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    category = await _service.update(db, user_id, category_id, body.changes())
    _queue_effects(tasks, cache, mirror, notifier, user_id, ChangeAction.UPDATED, category)
    return stamp(success_response(category.to_json_dict(), "Category updated successfully"), request)


@router.delete("/{category_id}")
async def delete_category(
    request: Request,
    category_id: uuid.UUID,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    category = await _service.delete(db, user_id, category_id)
    _queue_effects(tasks, cache, mirror, notifier, user_id, ChangeAction.DELETED, category)
    return stamp(success_response({"id": category.id}, "Category deleted successfully"), request)
