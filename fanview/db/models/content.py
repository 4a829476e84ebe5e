from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fanview.db.base import Base

CONTENT_TYPES = ("image", "video", "text")


class Content(Base):
    """A published content item owned by one creator."""

    __tablename__ = "content"

    creator_id: Mapped[UUID] = mapped_column(
        ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    content_type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ContentLike(Base):
    __tablename__ = "content_likes"
    __table_args__ = (
        UniqueConstraint("content_id", "user_id", name="uq_content_likes_content_user"),
    )

    content_id: Mapped[UUID] = mapped_column(ForeignKey("content.id", ondelete="CASCADE"), nullable=False, index=True)
    creator_id: Mapped[UUID] = mapped_column(ForeignKey("creators.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
