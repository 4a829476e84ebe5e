"""Request body models for the JSON endpoints."""

from __future__ import annotations

from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from fanview.lib.slug import is_valid_email


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class EmailField(RequestModel):
    email: str

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        if not is_valid_email(value):
            raise ValueError("Please provide a valid email")
        return value.lower()


class RegisterRequest(EmailField):
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=2)


class LoginRequest(EmailField):
    password: str = Field(min_length=1)


class ResendVerificationRequest(EmailField):
    pass


class ForgotPasswordRequest(EmailField):
    pass


class ResetPasswordRequest(RequestModel):
    password: str = Field(min_length=6)
    confirm_password: str

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ProfileUpdateRequest(RequestModel):
    full_name: str | None = Field(default=None, min_length=2)
    bio: str | None = None
    avatar_url: AnyHttpUrl | None = None


class CreatorCreateRequest(RequestModel):
    display_name: str = Field(min_length=2)
    avatar_url: AnyHttpUrl
    bio: str | None = None
    location: str | None = None
    user_id: UUID | None = None


class CreatorUpdateRequest(RequestModel):
    display_name: str | None = Field(default=None, min_length=2)
    bio: str | None = None
    location: str | None = None
    avatar_url: AnyHttpUrl | None = None
    banner_url: AnyHttpUrl | None = None
    is_active: bool | None = None


class ContentCreateRequest(RequestModel):
    creator_id: UUID
    title: str = Field(min_length=1)
    description: str | None = None
    content_url: AnyHttpUrl
    content_type: Literal["image", "video", "text"]
    is_premium: bool = False


class SubscribeRequest(RequestModel):
    creator_id: UUID
    paypal_subscription_id: str | None = None


class TopUpRequest(RequestModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    paypal_transaction_id: str = Field(min_length=1)


class ProvisionCreatorRequest(EmailField):
    full_name: str = Field(min_length=2)
    display_name: str = Field(min_length=2)
    password: str | None = Field(default=None, min_length=6)
    bio: str | None = None
    location: str | None = None
    avatar_url: AnyHttpUrl | None = None


class ProvisionTestCreatorForm(RequestModel):
    display_name: str = Field(min_length=2)
    bio: str | None = None
    location: str | None = None
    total_subscribers: int = Field(default=0, ge=0)
    total_likes: int = Field(default=0, ge=0)
    media_count: int = Field(default=0, ge=0)
