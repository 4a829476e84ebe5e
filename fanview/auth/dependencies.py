"""Request dependencies that resolve the calling user from a bearer token."""

from __future__ import annotations

from litestar import Request
from litestar.di import Provide
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.auth.tokens import read_access_token
from fanview.db.models.user import User
from fanview.db.services import user_service
from fanview.lib.exceptions import AuthenticationError, PermissionDeniedError


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def provide_optional_user(request: Request, db_session: AsyncSession) -> User | None:
    """The authenticated user, or ``None`` for anonymous or invalid tokens."""
    token = _bearer_token(request)
    if token is None:
        return None
    user_id = read_access_token(token, request.app.state.settings.secret_key)
    if user_id is None:
        return None
    return await user_service.get_user_by_id(db_session, user_id)


async def provide_current_user(request: Request, db_session: AsyncSession) -> User:
    token = _bearer_token(request)
    if token is None:
        raise AuthenticationError("Access token required")
    user_id = read_access_token(token, request.app.state.settings.secret_key)
    if user_id is None:
        raise PermissionDeniedError("Invalid or expired token")
    user = await user_service.get_user_by_id(db_session, user_id)
    if user is None:
        raise AuthenticationError("User not found")
    return user


async def provide_admin_user(current_user: User) -> User:
    if not current_user.is_admin:
        raise PermissionDeniedError("Admin access required")
    return current_user


AUTH_DEPENDENCIES = {
    "viewer": Provide(provide_optional_user),
    "current_user": Provide(provide_current_user),
    "admin_user": Provide(provide_admin_user),
}
