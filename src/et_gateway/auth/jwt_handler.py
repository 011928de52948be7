"""JWT token creation and verification.

HS256 (symmetric HMAC) with a single JWT_SECRET.

Access tokens are stateless: signature + expiry + type, nothing is looked up.
There is no revocation list, so an access token stays valid until it expires
even after logout.

Refresh tokens are single-use. Only a digest of the live one is stored on the
user row (see UserService.refresh); every /auth/refresh overwrites it, so a
rotated-out token fails even though its signature is still valid. Every token
carries a random `jti` so two tokens issued in the same second never collide.
"""

import hashlib
import uuid
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.et_common.errors import InvalidCredentialsError, InvalidRefreshTokenError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
_REFRESH_EXPIRE = timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def _issue(user_id: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + lifetime,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def create_access_token(user_id: str) -> str:
    """Issue a short-lived access token (default: 15 min)."""
    return _issue(user_id, "access", _ACCESS_EXPIRE)


def create_refresh_token(user_id: str) -> str:
    """Issue a long-lived refresh token (default: 7 days)."""
    return _issue(user_id, "refresh", _REFRESH_EXPIRE)


def access_token_ttl_seconds() -> int:
    return int(_ACCESS_EXPIRE.total_seconds())


def token_digest(token: str) -> str:
    """SHA-256 hex digest stored in users.refresh_token_hash."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def decode_token(token: str, expected_type: str) -> dict[str, str]:
    """Decode and validate a JWT token.

    Args:
        token: Raw JWT string.
        expected_type: "access" or "refresh". Strictly enforced to prevent
                       token type confusion attacks.

    Returns:
        Decoded payload dict with at minimum {"sub": ..., "type": ...}.

    Raises:
        InvalidCredentialsError: Token invalid/expired and expected_type="access".
        InvalidRefreshTokenError: Token invalid/expired and expected_type="refresh".
    """
    payload: dict[str, str] = {}
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        _raise_auth_error(expected_type)

    if payload.get("type") != expected_type or not payload.get("sub"):
        _raise_auth_error(expected_type)

    return payload


def _raise_auth_error(expected_type: str) -> None:
    """Raise the appropriate error based on which token type was expected."""
    if expected_type == "access":
        raise InvalidCredentialsError()
    raise InvalidRefreshTokenError()
