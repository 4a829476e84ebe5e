"""Content service: creation and listing with premium locking."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.db.models.content import Content
from fanview.db.services import creator_service, like_service

LOCKED_PREVIEW = "Subscribe to unlock this premium content"


@dataclass
class ContentView:
    """A content item as seen by one viewer."""

    content: Content
    total_likes: int
    is_liked: bool
    is_locked: bool


async def get_content(db_session: AsyncSession, content_id: UUID) -> Content | None:
    result = await db_session.execute(select(Content).where(Content.id == content_id))
    return result.scalar_one_or_none()


async def create_content(
    db_session: AsyncSession,
    creator_id: UUID,
    title: str,
    content_url: str,
    content_type: str,
    description: str | None = None,
    is_premium: bool = False,
) -> Content:
    """Insert a content item and bump the creator's media count in one commit."""
    content = Content(
        creator_id=creator_id,
        title=title,
        description=description,
        content_url=content_url,
        content_type=content_type,
        is_premium=is_premium,
    )
    db_session.add(content)
    await db_session.flush()
    await creator_service.adjust_counters(db_session, creator_id, media_count=1)
    await db_session.commit()
    await db_session.refresh(content)
    return content


async def list_creator_content(
    db_session: AsyncSession,
    creator_id: UUID,
    viewer_id: UUID | None = None,
    has_access: bool = False,
) -> list[ContentView]:
    """Newest-first content for a creator.

    Premium items are locked unless *has_access* is true.
    """
    result = await db_session.execute(
        select(Content).where(Content.creator_id == creator_id).order_by(Content.created_at.desc())
    )
    items = list(result.scalars().all())
    ids = [item.id for item in items]

    like_counts = await like_service.count_likes_for(db_session, ids)
    liked_ids: set[UUID] = set()
    if viewer_id is not None:
        liked_ids = await like_service.get_liked_content_ids(db_session, viewer_id, ids)

    return [
        ContentView(
            content=item,
            total_likes=like_counts.get(item.id, 0),
            is_liked=item.id in liked_ids,
            is_locked=item.is_premium and not has_access,
        )
        for item in items
    ]
