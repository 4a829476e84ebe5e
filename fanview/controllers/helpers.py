"""Shared request parsing and response shaping for controllers."""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

import pydantic
from litestar import Request
from litestar.datastructures import FormMultiDict, UploadFile

from fanview.db.models.content import Content
from fanview.db.models.creator import Creator
from fanview.db.models.subscription import Subscription
from fanview.db.models.user import User
from fanview.db.models.wallet import Wallet, WalletTransaction
from fanview.db.services.content_service import LOCKED_PREVIEW, ContentView
from fanview.lib.exceptions import ValidationError
from fanview.lib.slug import generate_initials

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

_TRUE = {"true", "1", "yes", "on"}


def validation_errors(exc: pydantic.ValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors(include_url=False, include_context=False, include_input=False):
        field = ".".join(str(part) for part in error["loc"]) or "body"
        errors.append({"field": field, "message": error["msg"]})
    return errors


def validate_model(model: type[ModelT], data: Any) -> ModelT:
    """Validate *data* against *model*, raising our ValidationError."""
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(errors=validation_errors(exc)) from exc


async def read_json(request: Request, model: type[ModelT]) -> ModelT:
    body = await request.body()
    try:
        data = json.loads(body) if body.strip() else {}
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    return validate_model(model, data)


async def read_form(request: Request) -> FormMultiDict:
    return await request.form()


def form_file(form: FormMultiDict, field: str, required: bool = True) -> UploadFile | None:
    value = form.get(field)
    if isinstance(value, UploadFile) and value.filename:
        return value
    if required:
        raise ValidationError(
            f"No {field} file uploaded",
            errors=[{"field": field, "message": "file is required"}],
        )
    return None


def form_text(form: FormMultiDict, field: str) -> str | None:
    value = form.get(field)
    if value is None or isinstance(value, UploadFile):
        return None
    value = str(value).strip()
    return value or None


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUE


def parse_uuid(value: str | None, field: str) -> UUID | None:
    if value is None:
        return None
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValidationError(
            f"Invalid {field}",
            errors=[{"field": field, "message": "must be a UUID"}],
        ) from exc


def money(value: Decimal | None) -> float:
    return float(value or 0)


def serialize_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "fullName": user.full_name,
        "role": user.role,
        "bio": user.bio,
        "avatarUrl": user.avatar_url,
        "initials": generate_initials(user.full_name),
        "emailVerified": user.email_verified,
        "createdAt": user.created_at,
    }


def serialize_creator(creator: Creator, stats: dict[str, int] | None = None) -> dict[str, Any]:
    data = {
        "id": creator.id,
        "userId": creator.user_id,
        "displayName": creator.display_name,
        "username": creator.username,
        "folderName": creator.folder_name,
        "bio": creator.bio,
        "location": creator.location,
        "avatarUrl": creator.avatar_url,
        "bannerUrl": creator.banner_url,
        "isActive": creator.is_active,
        "totalSubscribers": creator.total_subscribers,
        "totalLikes": creator.total_likes,
        "mediaCount": creator.media_count,
        "createdAt": creator.created_at,
    }
    if stats is not None:
        data.update(
            subscriberCount=stats["subscriber_count"],
            totalLikes=stats["total_likes"],
            contentCount=stats["content_count"],
        )
    return data


def serialize_content(content: Content) -> dict[str, Any]:
    return {
        "id": content.id,
        "creatorId": content.creator_id,
        "title": content.title,
        "description": content.description,
        "contentUrl": content.content_url,
        "contentType": content.content_type,
        "isPremium": content.is_premium,
        "createdAt": content.created_at,
    }


def serialize_content_view(view: ContentView) -> dict[str, Any]:
    data = serialize_content(view.content)
    data.update(totalLikes=view.total_likes, isLikedByUser=view.is_liked, isLocked=view.is_locked)
    if view.is_locked:
        data.update(contentUrl=None, description=LOCKED_PREVIEW)
    return data


def serialize_subscription(subscription: Subscription, creator: Creator | None = None) -> dict[str, Any]:
    data = {
        "id": subscription.id,
        "creatorId": subscription.creator_id,
        "status": subscription.status,
        "startDate": subscription.start_date,
        "endDate": subscription.end_date,
        "amount": money(subscription.amount),
        "paypalSubscriptionId": subscription.paypal_subscription_id,
    }
    if creator is not None:
        data["creator"] = {
            "id": creator.id,
            "displayName": creator.display_name,
            "username": creator.username,
            "avatarUrl": creator.avatar_url,
        }
    return data


def serialize_wallet(wallet: Wallet) -> dict[str, Any]:
    return {"id": wallet.id, "balance": money(wallet.balance), "updatedAt": wallet.updated_at}


def serialize_transaction(transaction: WalletTransaction) -> dict[str, Any]:
    return {
        "id": transaction.id,
        "type": transaction.type,
        "amount": money(transaction.amount),
        "description": transaction.description,
        "paypalTransactionId": transaction.paypal_transaction_id,
        "status": transaction.status,
        "createdAt": transaction.created_at,
    }
