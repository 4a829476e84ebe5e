"""User account service: registration, credentials and email tokens."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.auth.passwords import hash_password, verify_password
from fanview.auth.tokens import generate_email_token
from fanview.db.models.user import ROLE_USER, User
from fanview.lib.exceptions import AuthenticationError, ConflictError, PermissionDeniedError


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_id(db_session: AsyncSession, user_id: UUID) -> User | None:
    result = await db_session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db_session: AsyncSession, email: str) -> User | None:
    result = await db_session.execute(select(User).where(func.lower(User.email) == normalize_email(email)))
    return result.scalar_one_or_none()


async def create_user(
    db_session: AsyncSession,
    email: str,
    password: str,
    full_name: str,
    role: str = ROLE_USER,
    email_verified: bool = False,
    bio: str | None = None,
    avatar_url: str | None = None,
    bcrypt_rounds: int = 12,
    commit: bool = True,
) -> User:
    """Create a user account.

    Raises:
        ConflictError: An account with this email already exists.
    """
    if await get_user_by_email(db_session, email):
        raise ConflictError("User with this email already exists")

    user = User(
        email=normalize_email(email),
        password_hash=hash_password(password, bcrypt_rounds),
        full_name=full_name,
        role=role,
        email_verified=email_verified,
        bio=bio,
        avatar_url=avatar_url,
    )
    db_session.add(user)
    try:
        if commit:
            await db_session.commit()
            await db_session.refresh(user)
        else:
            await db_session.flush()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ConflictError("User with this email already exists") from exc
    return user


async def authenticate(db_session: AsyncSession, email: str, password: str) -> User:
    """Check credentials and return the user.

    Raises:
        AuthenticationError: Unknown email or wrong password.
        PermissionDeniedError: The email address is not verified yet.
    """
    user = await get_user_by_email(db_session, email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")
    if not user.email_verified:
        raise PermissionDeniedError(
            "Please verify your email address before logging in",
            debug={"requires_verification": True},
        )
    return user


async def update_profile(
    db_session: AsyncSession,
    user: User,
    full_name: str | None = None,
    bio: str | None = None,
    avatar_url: str | None = None,
) -> User:
    if full_name is not None:
        user.full_name = full_name
    if bio is not None:
        user.bio = bio
    if avatar_url is not None:
        user.avatar_url = avatar_url
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def issue_verification_token(db_session: AsyncSession, user: User, ttl: int) -> str:
    token = generate_email_token()
    user.verification_token = token
    user.verification_expires_at = datetime.now(UTC) + timedelta(seconds=ttl)
    await db_session.commit()
    return token


async def verify_email(db_session: AsyncSession, token: str) -> User | None:
    """Mark the account owning *token* as verified; ``None`` if invalid or expired."""
    result = await db_session.execute(select(User).where(User.verification_token == token))
    user = result.scalar_one_or_none()
    if user is None or not _still_valid(user.verification_expires_at):
        return None

    user.email_verified = True
    user.verification_token = None
    user.verification_expires_at = None
    await db_session.commit()
    return user


async def issue_reset_token(db_session: AsyncSession, user: User, ttl: int) -> str:
    token = generate_email_token()
    user.reset_token = token
    user.reset_expires_at = datetime.now(UTC) + timedelta(seconds=ttl)
    await db_session.commit()
    return token


async def get_user_by_reset_token(db_session: AsyncSession, token: str) -> User | None:
    result = await db_session.execute(select(User).where(User.reset_token == token))
    user = result.scalar_one_or_none()
    if user is None or not _still_valid(user.reset_expires_at):
        return None
    return user


async def reset_password(
    db_session: AsyncSession,
    token: str,
    password: str,
    bcrypt_rounds: int = 12,
) -> User | None:
    user = await get_user_by_reset_token(db_session, token)
    if user is None:
        return None
    user.password_hash = hash_password(password, bcrypt_rounds)
    user.reset_token = None
    user.reset_expires_at = None
    await db_session.commit()
    return user


def _still_valid(expires_at: datetime | None) -> bool:
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at > datetime.now(UTC)
