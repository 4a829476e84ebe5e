from __future__ import annotations

from litestar import Controller, Request, Response, get, put
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.controllers.helpers import read_json, serialize_user
from fanview.controllers.schemas import ProfileUpdateRequest
from fanview.db.models.user import User
from fanview.db.services import user_service
from fanview.lib.responses import envelope


class ProfileController(Controller):
    path = "/api/profile"

    @get("/")
    async def show(self, current_user: User) -> Response:
        return envelope("Profile retrieved", {"profile": serialize_user(current_user)})

    @put("/update")
    async def update(self, request: Request, db_session: AsyncSession, current_user: User) -> Response:
        payload = await read_json(request, ProfileUpdateRequest)
        user = await user_service.update_profile(
            db_session,
            current_user,
            full_name=payload.full_name,
            bio=payload.bio,
            avatar_url=str(payload.avatar_url) if payload.avatar_url else None,
        )
        return envelope("Profile updated successfully", {"profile": serialize_user(user)})
