"""Tests for the database services against a temporary SQLite database."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from fanview.db.models import ContentLike, User
from fanview.db.services import (
    content_service,
    creator_service,
    like_service,
    subscription_service,
    user_service,
    wallet_service,
)
from fanview.lib.exceptions import (
    AuthenticationError,
    ConflictError,
    ContentNotFoundError,
    CreatorNotFoundError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


@pytest.fixture
def make_user(db_session):
    async def _make(email="fan@example.com", email_verified=True, password="secret123"):
        return await user_service.create_user(
            db_session,
            email=email,
            password=password,
            full_name="Fan Person",
            email_verified=email_verified,
            bcrypt_rounds=4,
        )
    return _make


class TestUserService:
    @pytest.mark.asyncio
    async def test_create_normalizes_email(self, db_session, make_user):
        user = await make_user(email="  Fan@Example.COM ")
        assert user.email == "fan@example.com"
        assert await user_service.get_user_by_email(db_session, "FAN@example.com") is not None

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, make_user):
        await make_user()
        with pytest.raises(ConflictError):
            await make_user(email="FAN@example.com")

    @pytest.mark.asyncio
    async def test_authenticate(self, db_session, make_user):
        user = await make_user()
        assert (await user_service.authenticate(db_session, "fan@example.com", "secret123")).id == user.id

    @pytest.mark.asyncio
    async def test_authenticate_wrong_password(self, db_session, make_user):
        await make_user()
        with pytest.raises(AuthenticationError):
            await user_service.authenticate(db_session, "fan@example.com", "nope")

    @pytest.mark.asyncio
    async def test_authenticate_unverified(self, db_session, make_user):
        await make_user(email_verified=False)
        with pytest.raises(PermissionDeniedError) as exc_info:
            await user_service.authenticate(db_session, "fan@example.com", "secret123")
        assert exc_info.value.debug == {"requires_verification": True}

    @pytest.mark.asyncio
    async def test_verification_flow(self, db_session, make_user):
        user = await make_user(email_verified=False)
        token = await user_service.issue_verification_token(db_session, user, ttl=60)

        verified = await user_service.verify_email(db_session, token)

        assert verified.email_verified is True
        assert verified.verification_token is None
        assert await user_service.verify_email(db_session, token) is None

    @pytest.mark.asyncio
    async def test_expired_verification_token(self, db_session, make_user):
        user = await make_user(email_verified=False)
        token = await user_service.issue_verification_token(db_session, user, ttl=-1)
        assert await user_service.verify_email(db_session, token) is None

    @pytest.mark.asyncio
    async def test_password_reset(self, db_session, make_user):
        user = await make_user()
        token = await user_service.issue_reset_token(db_session, user, ttl=60)

        assert await user_service.reset_password(db_session, token, "newpass1", bcrypt_rounds=4)
        assert await user_service.get_user_by_reset_token(db_session, token) is None
        await user_service.authenticate(db_session, "fan@example.com", "newpass1")


class TestCreatorService:
    @pytest.mark.asyncio
    async def test_create_assigns_unique_usernames(self, db_session):
        first = await creator_service.create_creator(db_session, display_name="Jane Doe")
        second = await creator_service.create_creator(db_session, display_name="Jane  Doe!")
        assert first.username == "janedoe"
        assert second.username == "janedoe1"
        assert first.folder_name is None

    @pytest.mark.asyncio
    async def test_adjust_counters_floors_at_zero(self, db_session, make_creator):
        creator = await make_creator(total_likes=1)
        await creator_service.adjust_counters(db_session, creator.id, commit=True, total_likes=-3, media_count=2)
        await db_session.refresh(creator)
        assert creator.total_likes == 0
        assert creator.media_count == 2

    @pytest.mark.asyncio
    async def test_adjust_counters_rejects_unknown_column(self, db_session, make_creator):
        creator = await make_creator()
        with pytest.raises(ValueError):
            await creator_service.adjust_counters(db_session, creator.id, display_name=1)

    @pytest.mark.asyncio
    async def test_cannot_activate_without_avatar(self, db_session, make_creator):
        creator = await make_creator(is_active=False)
        with pytest.raises(ValidationError):
            await creator_service.update_creator(db_session, creator, is_active=True)

    @pytest.mark.asyncio
    async def test_update_keeps_folder_name(self, db_session, make_creator):
        creator = await make_creator(folder_name="janedoe-0000")
        creator = await creator_service.update_creator(db_session, creator, display_name="Janet Doe")
        assert creator.display_name == "Janet Doe"
        assert creator.folder_name == "janedoe-0000"

    @pytest.mark.asyncio
    async def test_find_by_username_fallbacks(self, db_session, make_creator):
        creator = await make_creator("Jane Doe", username="jdoe")
        assert (await creator_service.find_by_username(db_session, "JDOE")).id == creator.id
        assert (await creator_service.find_by_username(db_session, "jane doe")).id == creator.id
        assert (await creator_service.find_by_username(db_session, "janedoe")).id == creator.id
        assert (await creator_service.find_by_username(db_session, "jane")).id == creator.id
        assert await creator_service.find_by_username(db_session, "nobody") is None

    @pytest.mark.asyncio
    async def test_inactive_creators_hidden(self, db_session, make_creator):
        hidden = await make_creator("Hidden", is_active=False)
        assert await creator_service.get_creator(db_session, hidden.id, active_only=True) is None
        assert hidden.id not in [c.id for c in await creator_service.list_active_creators(db_session)]

    @pytest.mark.asyncio
    async def test_backfill_usernames(self, db_session, make_creator):
        await make_creator("Jane Doe", username="janedoe")
        pending = await make_creator("Jane Doe")

        assigned = await creator_service.backfill_usernames(db_session)

        assert assigned == {pending.id: "janedoe1"}


class TestContentAndLikes:
    @pytest.mark.asyncio
    async def test_create_content_bumps_media_count(self, db_session, make_creator):
        creator = await make_creator()
        await content_service.create_content(
            db_session, creator.id, "First", "/uploads/creators/x/content/a.png", "image"
        )
        await db_session.refresh(creator)
        assert creator.media_count == 1

    @pytest.mark.asyncio
    async def test_toggle_like(self, db_session, make_creator, make_user):
        creator = await make_creator()
        user = await make_user()
        content = await content_service.create_content(db_session, creator.id, "Pic", "/u/a.png", "image")

        assert await like_service.toggle_like(db_session, user.id, content.id) is True
        assert await like_service.count_likes(db_session, content.id) == 1
        await db_session.refresh(creator)
        assert creator.total_likes == 1

        assert await like_service.toggle_like(db_session, user.id, content.id) is False
        assert await like_service.count_likes(db_session, content.id) == 0
        await db_session.refresh(creator)
        assert creator.total_likes == 0

    @pytest.mark.asyncio
    async def test_like_unknown_content(self, db_session):
        with pytest.raises(ContentNotFoundError):
            await like_service.toggle_like(db_session, uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_premium_locked_without_access(self, db_session, make_creator, make_user):
        creator = await make_creator()
        user = await make_user()
        free = await content_service.create_content(db_session, creator.id, "Free", "/u/f.png", "image")
        await content_service.create_content(
            db_session, creator.id, "Premium", "/u/p.png", "image", is_premium=True
        )
        await like_service.toggle_like(db_session, user.id, free.id)

        views = await content_service.list_creator_content(db_session, creator.id, viewer_id=user.id)

        by_title = {view.content.title: view for view in views}
        assert by_title["Premium"].is_locked is True
        assert by_title["Free"].is_locked is False
        assert by_title["Free"].is_liked is True
        assert by_title["Free"].total_likes == 1

        unlocked = await content_service.list_creator_content(db_session, creator.id, has_access=True)
        assert not any(view.is_locked for view in unlocked)


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_subscribe_and_cancel(self, db_session, make_creator, make_user):
        creator = await make_creator()
        user = await make_user()

        sub = await subscription_service.subscribe(db_session, user.id, creator.id, Decimal("5.00"), 30)

        assert await subscription_service.is_subscribed(db_session, user.id, creator.id)
        await db_session.refresh(creator)
        assert creator.total_subscribers == 1
        assert creator.total_revenue == Decimal("5.00")

        cancelled = await subscription_service.cancel(db_session, user.id, sub.id)
        assert cancelled.status == "cancelled"
        assert not await subscription_service.is_subscribed(db_session, user.id, creator.id)
        await db_session.refresh(creator)
        assert creator.total_subscribers == 0

    @pytest.mark.asyncio
    async def test_duplicate_subscription_conflicts(self, db_session, make_creator, make_user):
        creator = await make_creator()
        user = await make_user()
        await subscription_service.subscribe(db_session, user.id, creator.id, Decimal("5.00"), 30)

        with pytest.raises(ConflictError):
            await subscription_service.subscribe(db_session, user.id, creator.id, Decimal("5.00"), 30)

    @pytest.mark.asyncio
    async def test_subscribe_unknown_creator(self, db_session, make_user):
        user = await make_user()
        with pytest.raises(CreatorNotFoundError):
            await subscription_service.subscribe(db_session, user.id, uuid4(), Decimal("5.00"), 30)

    @pytest.mark.asyncio
    async def test_cancel_twice(self, db_session, make_creator, make_user):
        creator = await make_creator()
        user = await make_user()
        sub = await subscription_service.subscribe(db_session, user.id, creator.id, Decimal("5.00"), 30)
        await subscription_service.cancel(db_session, user.id, sub.id)

        with pytest.raises(ValidationError):
            await subscription_service.cancel(db_session, user.id, sub.id)

    @pytest.mark.asyncio
    async def test_cancel_other_users_subscription(self, db_session, make_creator, make_user):
        creator = await make_creator()
        user = await make_user()
        sub = await subscription_service.subscribe(db_session, user.id, creator.id, Decimal("5.00"), 30)

        with pytest.raises(NotFoundError):
            await subscription_service.cancel(db_session, uuid4(), sub.id)


class TestWallet:
    @pytest.mark.asyncio
    async def test_wallet_created_once(self, db_session, make_user):
        user = await make_user()
        first = await wallet_service.get_or_create_wallet(db_session, user.id)
        second = await wallet_service.get_or_create_wallet(db_session, user.id)
        assert first.id == second.id
        assert first.balance == 0

    @pytest.mark.asyncio
    async def test_top_up(self, db_session, make_user):
        user = await make_user()
        await wallet_service.top_up(db_session, user.id, Decimal("10.00"), "PAY-1")
        wallet, transaction = await wallet_service.top_up(db_session, user.id, Decimal("2.50"), "PAY-2")

        assert wallet.balance == Decimal("12.50")
        assert transaction.type == "topup"
        assert transaction.status == "completed"
        assert await wallet_service.count_transactions(db_session, user.id) == 2
        assert len(await wallet_service.list_transactions(db_session, user.id, limit=1)) == 1


@pytest.mark.asyncio
async def test_creator_stats(db_session, make_creator, make_user):
    creator = await make_creator()
    user = await make_user()
    content = await content_service.create_content(db_session, creator.id, "Pic", "/u/a.png", "image")
    await like_service.toggle_like(db_session, user.id, content.id)
    await subscription_service.subscribe(db_session, user.id, creator.id, Decimal("5.00"), 30)

    stats = await creator_service.get_creator_stats(db_session, creator.id)

    assert stats == {"subscriber_count": 1, "total_likes": 1, "content_count": 1}
    assert await db_session.scalar(select(func.count()).select_from(ContentLike)) == 1
    assert await db_session.scalar(select(func.count()).select_from(User)) == 1
