from uuid import UUID

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.db.models.content import Content, ContentLike
from fanview.db.services import creator_service
from fanview.lib.exceptions import ContentNotFoundError


async def toggle_like(db_session: AsyncSession, user_id: UUID, content_id: UUID) -> bool:
    """Toggle like on a content item. Returns True if liked, False if unliked."""
    creator_id = await db_session.scalar(select(Content.creator_id).where(Content.id == content_id))
    if creator_id is None:
        raise ContentNotFoundError(debug={"content_id": str(content_id)})

    existing = await db_session.execute(
        select(ContentLike.id).where(and_(ContentLike.user_id == user_id, ContentLike.content_id == content_id))
    )

    if existing.scalar_one_or_none() is not None:
        await db_session.execute(
            delete(ContentLike).where(and_(ContentLike.user_id == user_id, ContentLike.content_id == content_id))
        )
        await creator_service.adjust_counters(db_session, creator_id, total_likes=-1)
        await db_session.commit()
        return False

    db_session.add(ContentLike(user_id=user_id, content_id=content_id, creator_id=creator_id))
    try:
        await db_session.flush()
    except IntegrityError:
        # A concurrent request already recorded this like
        await db_session.rollback()
        return True
    await creator_service.adjust_counters(db_session, creator_id, total_likes=1)
    await db_session.commit()
    return True


async def count_likes(db_session: AsyncSession, content_id: UUID) -> int:
    total = await db_session.scalar(
        select(func.count()).select_from(ContentLike).where(ContentLike.content_id == content_id)
    )
    return total or 0


async def count_likes_for(db_session: AsyncSession, content_ids: list[UUID]) -> dict[UUID, int]:
    if not content_ids:
        return {}
    result = await db_session.execute(
        select(ContentLike.content_id, func.count())
        .where(ContentLike.content_id.in_(content_ids))
        .group_by(ContentLike.content_id)
    )
    return {content_id: count for content_id, count in result.all()}


async def get_liked_content_ids(db_session: AsyncSession, user_id: UUID, content_ids: list[UUID]) -> set[UUID]:
    if not content_ids:
        return set()
    result = await db_session.execute(
        select(ContentLike.content_id).where(
            and_(ContentLike.user_id == user_id, ContentLike.content_id.in_(content_ids))
        )
    )
    return set(result.scalars().all())
