from datetime import datetime

from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from fanview.db.base import Base

ROLE_USER = "user"
ROLE_CREATOR = "creator"
ROLE_ADMIN = "admin"


class User(Base):
    """Account and profile record for fans, creators and admins."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_USER)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    verification_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    verification_expires_at: Mapped[datetime | None] = mapped_column(DateTimeUTC, nullable=True)
    reset_token: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reset_expires_at: Mapped[datetime | None] = mapped_column(DateTimeUTC, nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
