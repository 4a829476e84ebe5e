"""Subscription bookkeeping between fans and creators."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.db.models.creator import Creator
from fanview.db.models.subscription import STATUS_ACTIVE, STATUS_CANCELLED, Subscription
from fanview.db.services import creator_service
from fanview.lib.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _active_filter(now: datetime | None = None):
    now = now or datetime.now(UTC)
    return (Subscription.status == STATUS_ACTIVE, Subscription.end_date > now)


async def get_active_subscription(db_session: AsyncSession, user_id: UUID, creator_id: UUID) -> Subscription | None:
    result = await db_session.execute(
        select(Subscription)
        .where(Subscription.user_id == user_id, Subscription.creator_id == creator_id, *_active_filter())
        .order_by(Subscription.end_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def is_subscribed(db_session: AsyncSession, user_id: UUID, creator_id: UUID) -> bool:
    return await get_active_subscription(db_session, user_id, creator_id) is not None


async def subscribe(
    db_session: AsyncSession,
    user_id: UUID,
    creator_id: UUID,
    amount: Decimal,
    duration_days: int,
    paypal_subscription_id: str | None = None,
) -> Subscription:
    """Start a subscription.

    Raises:
        CreatorNotFoundError: Unknown or inactive creator.
        ConflictError: The user already has an active subscription.
    """
    await creator_service.require_creator(db_session, creator_id, active_only=True)

    if await get_active_subscription(db_session, user_id, creator_id):
        raise ConflictError("Already subscribed to this creator")

    now = datetime.now(UTC)
    subscription = Subscription(
        user_id=user_id,
        creator_id=creator_id,
        paypal_subscription_id=paypal_subscription_id,
        status=STATUS_ACTIVE,
        start_date=now,
        end_date=now + timedelta(days=duration_days),
        amount=amount,
    )
    db_session.add(subscription)
    await db_session.flush()
    await creator_service.adjust_counters(
        db_session, creator_id, total_subscribers=1, total_revenue=amount
    )
    await db_session.commit()
    await db_session.refresh(subscription)
    logger.info("User %s subscribed to creator %s", user_id, creator_id)
    return subscription


async def list_user_subscriptions(db_session: AsyncSession, user_id: UUID) -> list[tuple[Subscription, Creator]]:
    result = await db_session.execute(
        select(Subscription, Creator)
        .join(Creator, Creator.id == Subscription.creator_id)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
    )
    return [(subscription, creator) for subscription, creator in result.all()]


async def cancel(db_session: AsyncSession, user_id: UUID, subscription_id: UUID) -> Subscription:
    """Cancel one of the user's subscriptions, ending it now.

    Raises:
        NotFoundError: No such subscription for this user.
        ValidationError: Already cancelled.
    """
    result = await db_session.execute(
        select(Subscription).where(Subscription.id == subscription_id, Subscription.user_id == user_id)
    )
    subscription = result.scalar_one_or_none()
    if subscription is None:
        raise NotFoundError("Subscription not found")
    if subscription.status == STATUS_CANCELLED:
        raise ValidationError("Subscription is already cancelled")

    subscription.status = STATUS_CANCELLED
    subscription.end_date = datetime.now(UTC)
    await creator_service.adjust_counters(db_session, subscription.creator_id, total_subscribers=-1)
    await db_session.commit()
    await db_session.refresh(subscription)
    logger.info("User %s cancelled subscription %s", user_id, subscription_id)
    return subscription
