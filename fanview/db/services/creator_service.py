"""Creator service: listing, lookup, provisioning and counters."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.db.models.content import Content, ContentLike
from fanview.db.models.creator import Creator
from fanview.db.models.subscription import STATUS_ACTIVE, Subscription
from fanview.lib.exceptions import ConflictError, CreatorNotFoundError, ValidationError
from fanview.lib.slug import sanitize_name

logger = logging.getLogger(__name__)

COUNTERS = ("total_subscribers", "total_likes", "media_count", "total_revenue")

_UNSET = object()


async def list_active_creators(db_session: AsyncSession) -> list[Creator]:
    result = await db_session.execute(
        select(Creator)
        .where(Creator.is_active.is_(True))
        .order_by(Creator.total_subscribers.desc(), Creator.created_at.asc())
    )
    return list(result.scalars().all())


async def get_creator(db_session: AsyncSession, creator_id: UUID, active_only: bool = False) -> Creator | None:
    query = select(Creator).where(Creator.id == creator_id)
    if active_only:
        query = query.where(Creator.is_active.is_(True))
    result = await db_session.execute(query)
    return result.scalar_one_or_none()


async def require_creator(db_session: AsyncSession, creator_id: UUID, active_only: bool = False) -> Creator:
    creator = await get_creator(db_session, creator_id, active_only=active_only)
    if creator is None:
        raise CreatorNotFoundError(debug={"creator_id": str(creator_id)})
    return creator


async def get_creator_by_user_id(db_session: AsyncSession, user_id: UUID) -> Creator | None:
    result = await db_session.execute(
        select(Creator).where(Creator.user_id == user_id).order_by(Creator.created_at.asc()).limit(1)
    )
    return result.scalar_one_or_none()


async def find_by_username(db_session: AsyncSession, username: str) -> Creator | None:
    """Find an active creator from a profile URL segment.

    Tries, in order: exact username, display name ignoring case, the
    sanitized display name, then a substring match on the display name.
    """
    active = Creator.is_active.is_(True)
    term = username.strip().lower()
    sanitized = sanitize_name(username, max_length=None)
    if not term:
        return None

    exact = await db_session.execute(
        select(Creator).where(active, or_(func.lower(Creator.username) == term, func.lower(Creator.display_name) == term))
    )
    creator = exact.scalars().first()
    if creator:
        return creator

    candidates = await db_session.execute(select(Creator).where(active).order_by(Creator.created_at.asc()))
    creators = list(candidates.scalars().all())

    for creator in creators:
        if sanitized and sanitize_name(creator.display_name, max_length=None) == sanitized:
            return creator

    for creator in creators:
        if term in creator.display_name.lower():
            return creator

    return None


async def get_creator_stats(db_session: AsyncSession, creator_id: UUID) -> dict[str, int]:
    """Live subscriber, like and content counts for a creator."""
    subscribers = await db_session.scalar(
        select(func.count()).select_from(Subscription).where(
            Subscription.creator_id == creator_id, Subscription.status == STATUS_ACTIVE
        )
    )
    likes = await db_session.scalar(
        select(func.count()).select_from(ContentLike).where(ContentLike.creator_id == creator_id)
    )
    content_count = await db_session.scalar(
        select(func.count()).select_from(Content).where(Content.creator_id == creator_id)
    )
    return {
        "subscriber_count": subscribers or 0,
        "total_likes": likes or 0,
        "content_count": content_count or 0,
    }


async def unique_username(db_session: AsyncSession, display_name: str, exclude_id: UUID | None = None) -> str:
    """Sanitized display name, with a numeric counter appended until unused."""
    base = sanitize_name(display_name, max_length=None) or "creator"
    candidate = base
    counter = 1
    while True:
        query = select(Creator.id).where(Creator.username == candidate)
        if exclude_id is not None:
            query = query.where(Creator.id != exclude_id)
        if await db_session.scalar(query) is None:
            return candidate
        candidate = f"{base}{counter}"
        counter += 1


async def create_creator(
    db_session: AsyncSession,
    display_name: str,
    user_id: UUID | None = None,
    bio: str | None = None,
    location: str | None = None,
    avatar_url: str | None = None,
    is_active: bool = True,
    total_subscribers: int = 0,
    total_likes: int = 0,
    media_count: int = 0,
    commit: bool = True,
) -> Creator:
    creator = Creator(
        display_name=display_name,
        username=await unique_username(db_session, display_name),
        user_id=user_id,
        bio=bio,
        location=location,
        avatar_url=avatar_url,
        is_active=is_active,
        total_subscribers=total_subscribers,
        total_likes=total_likes,
        media_count=media_count,
        total_revenue=Decimal("0"),
    )
    db_session.add(creator)
    try:
        if commit:
            await db_session.commit()
            await db_session.refresh(creator)
        else:
            await db_session.flush()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ConflictError("Creator username already taken", debug={"username": creator.username}) from exc
    return creator


async def update_creator(
    db_session: AsyncSession,
    creator: Creator,
    display_name: str | None = None,
    bio: Any = _UNSET,
    location: Any = _UNSET,
    avatar_url: str | None = None,
    banner_url: str | None = None,
    is_active: bool | None = None,
) -> Creator:
    """Apply a partial update.

    ``folder_name`` is never touched here; renaming a creator keeps its
    storage folder.

    Raises:
        ValidationError: Activating a creator that has no avatar.
    """
    new_avatar = avatar_url if avatar_url is not None else creator.avatar_url
    if is_active and not new_avatar:
        raise ValidationError(
            "Cannot activate a creator without an avatar",
            errors=[{"field": "avatarUrl", "message": "required to activate"}],
        )

    if display_name is not None:
        creator.display_name = display_name
    if bio is not _UNSET:
        creator.bio = bio
    if location is not _UNSET:
        creator.location = location
    if avatar_url is not None:
        creator.avatar_url = avatar_url
    if banner_url is not None:
        creator.banner_url = banner_url
    if is_active is not None:
        creator.is_active = is_active

    await db_session.commit()
    await db_session.refresh(creator)
    return creator


async def adjust_counters(db_session: AsyncSession, creator_id: UUID, commit: bool = False, **deltas) -> None:
    """Atomically add *deltas* to creator counters, never going below zero.

    Example: ``adjust_counters(session, cid, media_count=1)``.
    """
    values = {}
    for name, delta in deltas.items():
        if name not in COUNTERS:
            raise ValueError(f"Unknown creator counter: {name}")
        if not delta:
            continue
        column = getattr(Creator, name)
        values[name] = case((column + delta < 0, 0), else_=column + delta)

    if not values:
        return

    await db_session.execute(
        update(Creator)
        .where(Creator.id == creator_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if commit:
        await db_session.commit()


async def backfill_usernames(db_session: AsyncSession) -> dict[UUID, str]:
    """Assign usernames to creators that have none."""
    result = await db_session.execute(
        select(Creator).where(Creator.username.is_(None)).order_by(Creator.created_at.asc())
    )
    assigned = {}
    for creator in result.scalars().all():
        creator.username = await unique_username(db_session, creator.display_name, exclude_id=creator.id)
        await db_session.flush()
        assigned[creator.id] = creator.username
        logger.info("Assigned username %s to creator %s", creator.username, creator.id)
    await db_session.commit()
    return assigned
