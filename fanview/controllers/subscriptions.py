from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from litestar import Controller, Request, Response, get, post
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.controllers.helpers import read_json, serialize_subscription
from fanview.controllers.schemas import SubscribeRequest
from fanview.db.models.user import User
from fanview.db.services import subscription_service
from fanview.lib.responses import envelope


class SubscriptionController(Controller):
    path = "/api/subscriptions"

    @post("/subscribe")
    async def subscribe(self, request: Request, db_session: AsyncSession, current_user: User) -> Response:
        billing = request.app.state.settings.billing
        payload = await read_json(request, SubscribeRequest)
        subscription = await subscription_service.subscribe(
            db_session,
            user_id=current_user.id,
            creator_id=payload.creator_id,
            amount=Decimal(str(billing.subscription_price)),
            duration_days=billing.subscription_days,
            paypal_subscription_id=payload.paypal_subscription_id,
        )
        return envelope(
            "Subscription created successfully",
            {"subscription": serialize_subscription(subscription)},
            status_code=201,
        )

    @get("/my-subscriptions")
    async def mine(self, db_session: AsyncSession, current_user: User) -> Response:
        rows = await subscription_service.list_user_subscriptions(db_session, current_user.id)
        return envelope(
            "Subscriptions retrieved",
            {"subscriptions": [serialize_subscription(sub, creator) for sub, creator in rows]},
        )

    @post("/cancel/{subscription_id:uuid}")
    async def cancel(self, db_session: AsyncSession, current_user: User, subscription_id: UUID) -> Response:
        subscription = await subscription_service.cancel(db_session, current_user.id, subscription_id)
        return envelope(
            "Subscription cancelled successfully",
            {"subscription": serialize_subscription(subscription)},
        )

    @get("/status/{creator_id:uuid}")
    async def status(self, db_session: AsyncSession, current_user: User, creator_id: UUID) -> Response:
        subscription = await subscription_service.get_active_subscription(db_session, current_user.id, creator_id)
        return envelope(
            "Subscription status retrieved",
            {
                "isSubscribed": subscription is not None,
                "subscription": serialize_subscription(subscription) if subscription else None,
            },
        )
