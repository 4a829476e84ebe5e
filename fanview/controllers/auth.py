"""Account registration, login, email verification and password reset."""

from __future__ import annotations

import logging

from litestar import Controller, Request, Response, get, post
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.auth.tokens import create_access_token
from fanview.controllers.helpers import read_json, serialize_user
from fanview.controllers.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResendVerificationRequest,
    ResetPasswordRequest,
)
from fanview.db.models.user import User
from fanview.db.services import user_service
from fanview.lib.email import EmailDeliveryError
from fanview.lib.exceptions import FanviewError, ValidationError
from fanview.lib.responses import envelope

logger = logging.getLogger(__name__)

RESET_LINK_SENT = "If an account with that email exists, a password reset link has been sent"
VERIFICATION_SENT = "If that account exists and is unverified, a verification email has been sent"


class AuthController(Controller):
    path = "/api/auth"

    @post("/register")
    async def register(self, request: Request, db_session: AsyncSession) -> Response:
        settings = request.app.state.settings
        payload = await read_json(request, RegisterRequest)

        user = await user_service.create_user(
            db_session,
            email=payload.email,
            password=payload.password,
            full_name=payload.full_name,
            bcrypt_rounds=settings.auth.bcrypt_rounds,
        )
        token = await user_service.issue_verification_token(db_session, user, settings.auth.verification_ttl)

        email_sent = True
        try:
            await request.app.state.email.send_verification_email(user.email, user.full_name, token)
        except EmailDeliveryError:
            email_sent = False
            logger.warning("Verification email to %s failed", user.email, exc_info=True)

        return envelope(
            "Registration successful. Please check your email to verify your account.",
            {"user": serialize_user(user), "requiresVerification": True, "emailSent": email_sent},
            status_code=201,
        )

    @post("/login")
    async def login(self, request: Request, db_session: AsyncSession) -> Response:
        settings = request.app.state.settings
        payload = await read_json(request, LoginRequest)
        user = await user_service.authenticate(db_session, payload.email, payload.password)
        token = create_access_token(user.id, user.email, user.role, settings.secret_key, settings.auth.token_ttl)
        return envelope("Login successful", {"user": serialize_user(user), "token": token})

    @get("/me")
    async def me(self, current_user: User) -> Response:
        return envelope("User retrieved", {"user": serialize_user(current_user)})

    @get("/verify-email")
    async def verify_email(self, db_session: AsyncSession, token: str | None = None) -> Response:
        if not token:
            raise ValidationError("Verification token is required")
        user = await user_service.verify_email(db_session, token)
        if user is None:
            raise ValidationError("Invalid or expired verification token")
        logger.info("Verified email for user %s", user.id)
        return envelope("Email verified successfully. You can now log in.", {"user": serialize_user(user)})

    @post("/resend-verification")
    async def resend_verification(self, request: Request, db_session: AsyncSession) -> Response:
        settings = request.app.state.settings
        payload = await read_json(request, ResendVerificationRequest)

        user = await user_service.get_user_by_email(db_session, payload.email)
        if user is None or user.email_verified:
            return envelope(VERIFICATION_SENT)

        token = await user_service.issue_verification_token(db_session, user, settings.auth.verification_ttl)
        try:
            await request.app.state.email.send_verification_email(user.email, user.full_name, token)
        except EmailDeliveryError as exc:
            raise FanviewError("Failed to send verification email", debug={"error": str(exc)}) from exc
        return envelope(VERIFICATION_SENT)

    @post("/forgot-password")
    async def forgot_password(self, request: Request, db_session: AsyncSession) -> Response:
        settings = request.app.state.settings
        payload = await read_json(request, ForgotPasswordRequest)

        user = await user_service.get_user_by_email(db_session, payload.email)
        if user is not None:
            token = await user_service.issue_reset_token(db_session, user, settings.auth.reset_ttl)
            try:
                await request.app.state.email.send_password_reset_email(user.email, user.full_name, token)
            except EmailDeliveryError:
                logger.warning("Password reset email to %s failed", user.email, exc_info=True)

        return envelope(RESET_LINK_SENT)

    @get("/reset-password/{token:str}")
    async def check_reset_token(self, db_session: AsyncSession, token: str) -> Response:
        user = await user_service.get_user_by_reset_token(db_session, token)
        if user is None:
            raise ValidationError("Invalid or expired reset token")
        return envelope("Reset token is valid", {"email": user.email})

    @post("/reset-password/{token:str}")
    async def reset_password(self, request: Request, db_session: AsyncSession, token: str) -> Response:
        settings = request.app.state.settings
        payload = await read_json(request, ResetPasswordRequest)
        user = await user_service.reset_password(
            db_session, token, payload.password, bcrypt_rounds=settings.auth.bcrypt_rounds
        )
        if user is None:
            raise ValidationError("Invalid or expired reset token")
        logger.info("Password reset for user %s", user.id)
        return envelope("Password has been reset successfully. You can now log in.")
