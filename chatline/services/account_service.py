"""
Account service: registration, credential checks and profile updates.

User rows are reached through fastapi-users' SQLAlchemyUserDatabase.
Argon2 work runs in a worker thread so it never blocks the event loop.
"""

import asyncio
import secrets
import uuid
from functools import lru_cache

from fastapi_users_db_sqlalchemy import SQLAlchemyUserDatabase
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth.argon2_utils import MIN_PASSWORD_LENGTH, hash_password, needs_rehash, verify_password
from ..auth.token_service import Identity, TokenService
from ..error_types import ErrorMessages
from ..exceptions import ResourceConflictError
from ..models.user import User
from ..schemas.auth import RegisterRequest, UpdateProfileRequest
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


def identity_for(user: User) -> Identity:
    return Identity(id=str(user.id), email=user.email)


@lru_cache(maxsize=1)
def _placeholder_hash() -> str:
    """Stand-in hash verified on unknown-email logins; never matches a real password."""
    return hash_password(secrets.token_urlsafe(24))


class AccountService:
    """Account operations bound to one database session."""

    def __init__(
        self,
        session: AsyncSession,
        token_service: TokenService,
        min_password_length: int = MIN_PASSWORD_LENGTH,
    ) -> None:
        self.session = session
        self.token_service = token_service
        self.min_password_length = min_password_length
        self.user_db = SQLAlchemyUserDatabase(session, User)

    async def get_user(self, user_id: str | uuid.UUID) -> User | None:
        try:
            parsed = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except ValueError:
            return None
        return await self.user_db.get(parsed)

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(User).where(func.lower(User.username) == username.lower())
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def register(self, request: RegisterRequest) -> User:
        """
        Create an account.

        Raises:
            WeakInputError: Password below the minimum length
            ResourceConflictError: Email or username already in use
        """
        hashed = await asyncio.to_thread(hash_password, request.password, self.min_password_length)

        if await self.user_db.get_by_email(request.email) is not None:
            raise ResourceConflictError(ErrorMessages.EMAIL_TAKEN, field="email")
        if await self.get_by_username(request.username) is not None:
            raise ResourceConflictError(ErrorMessages.USERNAME_TAKEN, field="username")

        try:
            user = await self.user_db.create(
                {
                    "email": request.email,
                    "username": request.username,
                    "hashed_password": hashed,
                    "is_active": True,
                    "is_verified": False,
                    "is_superuser": False,
                }
            )
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.session.rollback()
            raise ResourceConflictError(ErrorMessages.EMAIL_TAKEN, field="email") from None

        logger.info("Account registered", user_id=str(user.id), username=user.username)
        return user

    async def authenticate(self, email: str, password: str) -> User | None:
        """
        Check credentials.

        Returns:
            The user on success; None for an unknown email, a wrong password
            or an inactive account (callers must not distinguish these)
        """
        user = await self.user_db.get_by_email(email.strip().lower())
        if user is None:
            placeholder = await asyncio.to_thread(_placeholder_hash)
            await asyncio.to_thread(verify_password, password, placeholder)
            logger.info("Login failed - unknown email")
            return None

        if not await asyncio.to_thread(verify_password, password, user.hashed_password):
            logger.info("Login failed - bad password", user_id=str(user.id))
            return None

        if not user.is_active:
            logger.info("Login failed - inactive account", user_id=str(user.id))
            return None

        if needs_rehash(user.hashed_password):
            rehashed = await asyncio.to_thread(hash_password, password, MIN_PASSWORD_LENGTH)
            user = await self.user_db.update(user, {"hashed_password": rehashed})
            logger.info("Password hash upgraded", user_id=str(user.id))

        return user

    def issue_token(self, user: User) -> str:
        return self.token_service.issue(identity_for(user))

    async def update_profile(self, user: User, request: UpdateProfileRequest) -> User:
        """
        Apply the fields present in the request.

        Raises:
            ResourceConflictError: The new username belongs to someone else
        """
        changes: dict[str, object] = {}
        if request.username is not None and request.username != user.username:
            existing = await self.get_by_username(request.username)
            if existing is not None and existing.id != user.id:
                raise ResourceConflictError(ErrorMessages.USERNAME_TAKEN, field="username")
            changes["username"] = request.username
        if request.profile_pic is not None:
            changes["profile_pic"] = request.profile_pic.strip() or None

        if not changes:
            return user

        try:
            user = await self.user_db.update(user, changes)
        except IntegrityError:
            await self.session.rollback()
            raise ResourceConflictError(ErrorMessages.USERNAME_TAKEN, field="username") from None

        logger.info("Profile updated", user_id=str(user.id), fields=sorted(changes))
        return user
