"""Creator directory plus admin-only creator management."""

from __future__ import annotations

import logging
from uuid import UUID

from litestar import Controller, Request, Response, get, post, put
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.controllers.helpers import form_file, read_form, read_json, serialize_creator
from fanview.controllers.schemas import CreatorCreateRequest, CreatorUpdateRequest
from fanview.db.models.user import User
from fanview.db.services import creator_service
from fanview.lib.exceptions import CreatorNotFoundError
from fanview.lib.placement import AssetKind, check_media_type
from fanview.lib.responses import envelope

logger = logging.getLogger(__name__)


class CreatorController(Controller):
    path = "/api/creators"

    @get("/")
    async def list_creators(self, db_session: AsyncSession) -> Response:
        creators = await creator_service.list_active_creators(db_session)
        return envelope(
            "Creators retrieved",
            {"creators": [serialize_creator(creator) for creator in creators]},
        )

    @get("/{creator_id:uuid}")
    async def show(self, db_session: AsyncSession, creator_id: UUID) -> Response:
        creator = await creator_service.require_creator(db_session, creator_id, active_only=True)
        return envelope("Creator retrieved", {"creator": serialize_creator(creator)})

    @get("/username/{username:str}")
    async def show_by_username(self, db_session: AsyncSession, username: str) -> Response:
        creator = await creator_service.find_by_username(db_session, username)
        if creator is None:
            raise CreatorNotFoundError(debug={"username": username})
        stats = await creator_service.get_creator_stats(db_session, creator.id)
        return envelope("Creator retrieved", {"creator": serialize_creator(creator, stats)})

    @post("/")
    async def create(self, request: Request, db_session: AsyncSession, admin_user: User) -> Response:
        payload = await read_json(request, CreatorCreateRequest)
        creator = await creator_service.create_creator(
            db_session,
            display_name=payload.display_name,
            user_id=payload.user_id,
            bio=payload.bio,
            location=payload.location,
            avatar_url=str(payload.avatar_url),
        )
        logger.info("Admin %s created creator %s", admin_user.id, creator.id)
        return envelope("Creator created successfully", {"creator": serialize_creator(creator)}, status_code=201)

    @put("/{creator_id:uuid}")
    async def update(
        self,
        request: Request,
        db_session: AsyncSession,
        admin_user: User,
        creator_id: UUID,
    ) -> Response:
        payload = await read_json(request, CreatorUpdateRequest)
        creator = await creator_service.require_creator(db_session, creator_id)
        fields = payload.model_dump(exclude_unset=True, include={"bio", "location"})
        creator = await creator_service.update_creator(
            db_session,
            creator,
            display_name=payload.display_name,
            avatar_url=str(payload.avatar_url) if payload.avatar_url else None,
            banner_url=str(payload.banner_url) if payload.banner_url else None,
            is_active=payload.is_active,
            **fields,
        )
        return envelope("Creator updated successfully", {"creator": serialize_creator(creator)})

    @post("/{creator_id:uuid}/avatar")
    async def upload_avatar(
        self,
        request: Request,
        db_session: AsyncSession,
        admin_user: User,
        creator_id: UUID,
    ) -> Response:
        return await self._replace_image(request, db_session, creator_id, AssetKind.AVATAR)

    @post("/{creator_id:uuid}/banner")
    async def upload_banner(
        self,
        request: Request,
        db_session: AsyncSession,
        admin_user: User,
        creator_id: UUID,
    ) -> Response:
        return await self._replace_image(request, db_session, creator_id, AssetKind.BANNER)

    async def _replace_image(
        self,
        request: Request,
        db_session: AsyncSession,
        creator_id: UUID,
        kind: AssetKind,
    ) -> Response:
        settings = request.app.state.settings
        placement = request.app.state.placement

        form = await read_form(request)
        upload = form_file(form, kind.value)
        check_media_type(upload.content_type, kind, kind.value)

        staged = await placement.store.stage(upload, settings.uploads.max_image_size, prefix=kind.value)
        placed = await placement.place_staged(db_session, staged, creator_id, kind)

        try:
            creator = await creator_service.require_creator(db_session, creator_id)
            if kind is AssetKind.AVATAR:
                creator = await creator_service.update_creator(db_session, creator, avatar_url=placed.url)
            else:
                creator = await creator_service.update_creator(db_session, creator, banner_url=placed.url)
        except Exception:
            await placement.store.discard(placed.path)
            raise
        await placement.discard_replaced(placed, kind)

        return envelope(
            f"{kind.value.capitalize()} uploaded successfully",
            {
                f"{kind.value}Url": placed.url,
                "folderName": placed.folder_name,
                "creator": serialize_creator(creator),
            },
        )
