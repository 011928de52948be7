"""et_analytics REST API: 6 read-only endpoints, all require JWT authentication.

Every response is read-through cached under the `analytics` namespace and
invalidated by any expense, category or profile write of the same user.
"""

import uuid
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.et_analytics.application.service import AnalyticsApplicationService, date_range
from src.et_common.cache import ResponseCache, get_cache, request_cache_key
from src.et_common.database import get_db_session
from src.et_common.enums import CacheResource, DateGrouping, TrendPeriod
from src.et_common.response import SuccessResponse, stamp
from src.et_gateway.auth.dependencies import get_current_user, get_current_user_id
from src.et_gateway.user.db_models import UserModel

router = APIRouter(prefix="/analytics", tags=["analytics"])

_service = AnalyticsApplicationService()

StartDate = Annotated[date | None, Query(alias="startDate")]
EndDate = Annotated[date | None, Query(alias="endDate")]


async def _cached(
    request: Request,
    cache: ResponseCache,
    user_id: uuid.UUID,
    loader: Callable[[], Awaitable[SuccessResponse]],
) -> SuccessResponse:
    key = request_cache_key(request, CacheResource.ANALYTICS, str(user_id))
    resp = await cache.read_through(key, settings.CACHE_TTL_ANALYTICS, loader)
    return stamp(resp, request)


@router.get("/summary")
async def get_summary(
    request: Request,
    user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> SuccessResponse:
    period = date_range(start_date, end_date)
    currency = user.currency

    async def load() -> SuccessResponse:
        data = await _service.summary(db, user.id, period, currency)
        return SuccessResponse(data=data.to_json_dict())

    return await _cached(request, cache, user.id, load)


@router.get("/by-date")
async def get_spending_by_date(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    start_date: StartDate = None,
    end_date: EndDate = None,
    group_by: DateGrouping = Query(DateGrouping.DAY, alias="groupBy"),
) -> SuccessResponse:
    period = date_range(start_date, end_date, required=True)

    async def load() -> SuccessResponse:
        buckets = await _service.by_date(db, user_id, period, group_by)
        return SuccessResponse(data=[b.to_json_dict() for b in buckets])

    return await _cached(request, cache, user_id, load)


@router.get("/trends")
async def get_trends(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    start_date: StartDate = None,
    end_date: EndDate = None,
    period: TrendPeriod = Query(TrendPeriod.MONTHLY),
) -> SuccessResponse:
    window = date_range(start_date, end_date)

    async def load() -> SuccessResponse:
        buckets = await _service.trends(db, user_id, window, period)
        return SuccessResponse(data=[b.to_json_dict() for b in buckets])

    return await _cached(request, cache, user_id, load)


@router.get("/top-categories")
async def get_top_categories(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    start_date: StartDate = None,
    end_date: EndDate = None,
    limit: int = Query(5, ge=1, le=50),
) -> SuccessResponse:
    period = date_range(start_date, end_date)

    async def load() -> SuccessResponse:
        top = await _service.top_categories(db, user_id, period, limit)
        return SuccessResponse(data=[t.to_json_dict() for t in top])

    return await _cached(request, cache, user_id, load)


@router.get("/budget-comparison")
async def get_budget_comparison(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    start_date: StartDate = None,
    end_date: EndDate = None,
) -> SuccessResponse:
    period = date_range(start_date, end_date)

    async def load() -> SuccessResponse:
        rows = await _service.budget_comparison(db, user_id, period)
        return SuccessResponse(data=[r.to_json_dict() for r in rows])

    return await _cached(request, cache, user_id, load)


@router.get("/recent")
async def get_recent_expenses(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    limit: int = Query(10, ge=1, le=100),
) -> SuccessResponse:
    async def load() -> SuccessResponse:
        expenses = await _service.recent(db, user_id, limit)
        return SuccessResponse(data=[e.to_json_dict() for e in expenses])

    return await _cached(request, cache, user_id, load)
