"""FastAPI dependencies: get_current_user_id, get_current_user.

Usage in any protected router:
    from src.et_gateway.auth.dependencies import get_current_user_id

    @router.get("/protected")
    async def protected(user_id: uuid.UUID = Depends(get_current_user_id)):
        ...

get_current_user_id only verifies the access token (stateless, no DB hit).
get_current_user additionally loads the row and rejects disabled accounts.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from src.et_common.database import get_db_session
from src.et_common.errors import AccountDisabledError, InvalidCredentialsError
from src.et_gateway.auth.jwt_handler import decode_token
from src.et_gateway.user.db_models import UserModel

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


def user_id_from_token(token: str) -> uuid.UUID:
    """Validate an access token and return its subject.

    Raises InvalidCredentialsError when the token is bad in any way.
    Shared with the WebSocket handshake, which has no Authorization header.
    """
    payload = decode_token(token, expected_type="access")
    try:
        return uuid.UUID(payload["sub"])
    except ValueError:
        raise InvalidCredentialsError() from None


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> uuid.UUID:
    """Raises HTTP 401 if the token is missing, invalid, or expired."""
    try:
        return user_id_from_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None


async def get_current_user(
    user_id: uuid.UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Load the authenticated user.

    Raises HTTP 401 if the user no longer exists, 403 if it is deactivated.
    """
    user = await db.get(UserModel, user_id)
    if user is None:
        raise _CREDENTIALS_EXCEPTION
    if not user.is_active:
        raise AccountDisabledError()
    return user
