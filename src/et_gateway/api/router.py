"""Auth API router: register, login, refresh, logout, profile, password, users.

All endpoints return the success envelope. request_id is read from
request.state (injected by RequestLogMiddleware).
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.et_common.cache import ResponseCache, get_cache
from src.et_common.database import get_db_session
from src.et_common.enums import CacheResource, ChangeAction
from src.et_common.pagination import PageParams, page_params
from src.et_common.post_commit import PostCommitTasks, get_post_commit
from src.et_common.response import (
    SuccessResponse,
    paginated_response,
    stamp,
    success_response,
)
from src.et_gateway.auth.dependencies import get_current_user, get_current_user_id
from src.et_gateway.auth.jwt_handler import access_token_ttl_seconds
from src.et_gateway.user.db_models import UserModel
from src.et_gateway.user.schemas import (
    AuthResponse,
    LoginRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
    UserPublic,
)
from src.et_gateway.user.service import UserService
from src.et_mirror.store import MirrorStore, get_mirror
from src.et_realtime.notifier import Notifier, get_notifier

router = APIRouter(prefix="/auth", tags=["auth"])
_service = UserService()


def _auth_payload(user: UserModel, access: str, refresh: str) -> dict:
    return AuthResponse(
        access_token=access,
        refresh_token=refresh,
        expires_in=access_token_ttl_seconds(),
        user=UserPublic.from_model(user),
    ).to_json_dict()


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="User registration")
async def register(
    request: Request,
    body: RegisterRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
) -> SuccessResponse:
    user, access, refresh = await _service.register(
        db,
        body.username,
        body.email,
        body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        currency=body.currency,
    )
    tasks.add(
        "mirror.sync_user",
        mirror.sync_user,
        UserPublic.from_model(user),
        timeout=settings.MIRROR_TIMEOUT_SECONDS,
    )
    resp = success_response(_auth_payload(user, access, refresh), "User registered successfully")
    return stamp(resp, request)


@router.post("/login", summary="User login")
async def login(
    request: Request,
    body: LoginRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuccessResponse:
    user, access, refresh = await _service.login(db, body.email, body.password)
    resp = success_response(_auth_payload(user, access, refresh), "Login successful")
    return stamp(resp, request)


@router.post("/refresh", summary="Rotate refresh token")
async def refresh_token(
    request: Request,
    body: RefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuccessResponse:
    access, refresh = await _service.refresh(db, body.refresh_token)
    data = TokenPair(
        access_token=access,
        refresh_token=refresh,
        expires_in=access_token_ttl_seconds(),
    )
    return stamp(success_response(data.to_json_dict(), "Token refreshed"), request)


@router.post("/logout", summary="Revoke refresh token")
async def logout(
    request: Request,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuccessResponse:
    await _service.logout(db, user_id)
    return stamp(success_response(None, "Logged out successfully"), request)


@router.get("/profile", summary="Current user profile")
@router.get("/me", summary="Current user")
async def get_profile(
    request: Request,
    user: Annotated[UserModel, Depends(get_current_user)],
) -> SuccessResponse:
    return stamp(success_response(UserPublic.from_model(user).to_json_dict()), request)


@router.put("/profile", summary="Update first name, last name or currency")
async def update_profile(
    request: Request,
    body: ProfileUpdateRequest,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    tasks: Annotated[PostCommitTasks, Depends(get_post_commit)],
    cache: Annotated[ResponseCache, Depends(get_cache)],
    mirror: Annotated[MirrorStore, Depends(get_mirror)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SuccessResponse:
    user = await _service.update_profile(db, user_id, body.changes())
    public = UserPublic.from_model(user)
    data = public.to_json_dict()

    # Analytics payloads carry the preferred currency
    tasks.add("cache.invalidate.analytics", cache.invalidate, CacheResource.ANALYTICS, str(user_id))
    tasks.add("mirror.sync_user", mirror.sync_user, public, timeout=settings.MIRROR_TIMEOUT_SECONDS)
    tasks.add("notify.user", notifier.notify, str(user_id), "user", ChangeAction.UPDATED, data)
    return stamp(success_response(data, "Profile updated successfully"), request)


@router.put("/password", summary="Change password")
async def change_password(
    request: Request,
    body: PasswordChangeRequest,
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuccessResponse:
    await _service.change_password(db, user_id, body.current_password, body.new_password)
    return stamp(
        success_response(None, "Password changed successfully. Please log in again."),
        request,
    )


@router.get("/users", summary="List users")
async def list_users(
    request: Request,
    _user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    paging: Annotated[PageParams, Depends(page_params)],
) -> SuccessResponse:
    users, total = await _service.list_users(db, paging.offset, paging.limit)
    items = [UserPublic.from_model(u).to_json_dict() for u in users]
    return stamp(paginated_response(items, paging.page, paging.limit, total), request)
