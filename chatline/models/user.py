"""
User model for FastAPI Users integration.

Extends the fastapi-users UUID table (id, email, hashed_password and the
status flags) with the chat profile fields.
"""

from datetime import datetime

from fastapi_users_db_sqlalchemy import SQLAlchemyBaseUserTableUUID
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ..utils.time_utils import utc_now
from .base import Base

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30


class User(SQLAlchemyBaseUserTableUUID, Base):
    """
    Registered account.

    `email` is stored lower-cased and is unique; `hashed_password` only ever
    holds an Argon2 hash.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(length=USERNAME_MAX_LENGTH), nullable=False, unique=True, index=True)
    profile_pic: Mapped[str | None] = mapped_column(String(length=2048), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"
