"""Mirror read API: relational queries served from the secondary store.

    GET /api/postgres/analytics   summary, category breakdown, daily trend
    GET /api/postgres/expenses    expenses joined with their categories
    GET /api/postgres/status      {"available": bool}

The first two answer 503 (code 5001, available=false) when the mirror is
not configured or not reachable. Results may lag the primary store.
"""

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from src.et_analytics.application.service import date_range
from src.et_common.datetime_utils import month_start, today
from src.et_common.pagination import PageParams, page_params
from src.et_common.response import SuccessResponse, paginated_response, stamp, success_response
from src.et_gateway.auth.dependencies import get_current_user_id
from src.et_mirror.store import MirrorStore, get_mirror

router = APIRouter(prefix="/postgres", tags=["mirror"])


@router.get("/analytics")
async def get_mirror_analytics(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
) -> SuccessResponse:
    # Default window: the current month up to today
    end = end_date or today()
    start = start_date or month_start(end)
    date_range(start, end)

    analytics = await mirror.get_analytics(str(user_id), start, end)
    data = {"period": {"startDate": start.isoformat(), "endDate": end.isoformat()}, **analytics}
    return stamp(success_response(data, "Analytics retrieved from mirror store"), request)


@router.get("/expenses")
async def get_mirror_expenses(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    paging: Annotated[PageParams, Depends(page_params)],
) -> SuccessResponse:
    items, total = await mirror.list_expenses_with_category(
        str(user_id), paging.limit, paging.offset
    )
    resp = paginated_response(
        items, paging.page, paging.limit, total, "Expenses retrieved from mirror store"
    )
    return stamp(resp, request)


@router.get("/status")
async def get_mirror_status(
    request: Request,
    _user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
) -> SuccessResponse:
    available = mirror.available
    message = (
        "Mirror store is connected and ready"
        if available
        else "Mirror store is not configured or connection failed"
    )
    return stamp(success_response({"available": available, "message": message}), request)
