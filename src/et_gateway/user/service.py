"""User domain service: register, login, refresh, logout, profile, password.

All DB operations use the injected AsyncSession. Each write method commits
on success and rolls back on any error, so the router only queues
post-commit side effects once a method has returned.
"""

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.et_common.datetime_utils import utc_now
from src.et_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UserNotFoundError,
    UsernameExistsError,
)
from src.et_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
    token_digest,
)
from src.et_gateway.auth.password import hash_password, verify_password
from src.et_gateway.user.db_models import UserModel


class UserService:
    """Stateless service: instantiate once, reuse across requests."""

    async def register(
        self,
        db: AsyncSession,
        username: str,
        email: str,
        password: str,
        first_name: str | None = None,
        last_name: str | None = None,
        currency: str | None = None,
    ) -> tuple[UserModel, str, str]:
        """Create a user and issue its first token pair.

        Returns (user, access_token, refresh_token).
        """
        try:
            # Pre-checks give specific errors; the UNIQUE constraints are the final guard
            if await self._exists(db, UserModel.username == username):
                raise UsernameExistsError()
            if await self._exists(db, UserModel.email == email):
                raise EmailExistsError()

            user = UserModel(
                id=uuid.uuid4(),
                username=username,
                email=email,
                password_hash=hash_password(password),
                first_name=first_name,
                last_name=last_name,
                currency=currency or "USD",
                is_active=True,
            )
            access, refresh = self._issue_pair(user)
            user.refresh_token_hash = token_digest(refresh)
            db.add(user)
            await db.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent registration
            await db.rollback()
            if "username" in str(exc.orig):
                raise UsernameExistsError() from None
            raise EmailExistsError() from None
        except Exception:
            await db.rollback()
            raise
        return user, access, refresh

    async def login(
        self,
        db: AsyncSession,
        email: str,
        password: str,
    ) -> tuple[UserModel, str, str]:
        """Authenticate by email and return (user, access_token, refresh_token).

        Note: "User not found" and "Wrong password" both raise InvalidCredentialsError
        intentionally to prevent account enumeration.
        """
        user = await self._get_by(db, UserModel.email == email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if not user.is_active:
            raise AccountDisabledError()

        try:
            access, refresh = self._issue_pair(user)
            user.refresh_token_hash = token_digest(refresh)
            user.last_login_at = utc_now()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return user, access, refresh

    async def refresh(self, db: AsyncSession, refresh_token: str) -> tuple[str, str]:
        """Rotate a refresh token: returns a new (access_token, refresh_token).

        The stored digest is compared and replaced by one conditional UPDATE,
        so two concurrent refreshes with the same token cannot both succeed.
        """
        payload = decode_token(refresh_token, expected_type="refresh")
        try:
            user_id = uuid.UUID(payload["sub"])
        except ValueError:
            raise InvalidRefreshTokenError() from None

        new_access = create_access_token(str(user_id))
        new_refresh = create_refresh_token(str(user_id))
        try:
            result = await db.execute(
                update(UserModel)
                .where(
                    UserModel.id == user_id,
                    UserModel.is_active.is_(True),
                    UserModel.refresh_token_hash == token_digest(refresh_token),
                )
                .values(refresh_token_hash=token_digest(new_refresh))
            )
            if result.rowcount != 1:
                raise InvalidRefreshTokenError()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return new_access, new_refresh

    async def logout(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        """Clear the stored refresh token. Outstanding access tokens stay valid until expiry."""
        await self._clear_refresh(db, user_id)

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> UserModel:
        user = await db.get(UserModel, user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        changes: dict[str, str | None],
    ) -> UserModel:
        try:
            user = await self.get_user(db, user_id)
            for field, value in changes.items():
                setattr(user, field, value)
            user.updated_at = utc_now()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return user

    async def change_password(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """Replace the password and revoke the refresh token; the user must log in again."""
        try:
            user = await self.get_user(db, user_id)
            if not verify_password(current_password, user.password_hash):
                raise IncorrectPasswordError()
            user.password_hash = hash_password(new_password)
            user.refresh_token_hash = None
            user.updated_at = utc_now()
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    async def list_users(
        self, db: AsyncSession, offset: int, limit: int
    ) -> tuple[list[UserModel], int]:
        total = (await db.execute(select(func.count()).select_from(UserModel))).scalar_one()
        result = await db.execute(
            select(UserModel)
            .order_by(UserModel.created_at.desc(), UserModel.id)
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), int(total)

    # ------------------------------------------------------------------

    @staticmethod
    def _issue_pair(user: UserModel) -> tuple[str, str]:
        return create_access_token(str(user.id)), create_refresh_token(str(user.id))

    @staticmethod
    async def _get_by(db: AsyncSession, clause: object) -> UserModel | None:
        result = await db.execute(select(UserModel).where(clause))
        return result.scalar_one_or_none()

    async def _exists(self, db: AsyncSession, clause: object) -> bool:
        return await self._get_by(db, clause) is not None

    @staticmethod
    async def _clear_refresh(db: AsyncSession, user_id: uuid.UUID) -> None:
        try:
            await db.execute(
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(refresh_token_hash=None)
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
