"""Content listing, uploads, URL registration and likes."""

from __future__ import annotations

import logging
from uuid import UUID

from litestar import Controller, Request, Response, get, post
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.controllers.helpers import (
    form_file,
    form_text,
    parse_bool,
    parse_uuid,
    read_form,
    read_json,
    serialize_content,
    serialize_content_view,
)
from fanview.controllers.schemas import ContentCreateRequest
from fanview.db.models.creator import Creator
from fanview.db.models.user import User
from fanview.db.services import content_service, creator_service, like_service, subscription_service
from fanview.lib.exceptions import ContentNotFoundError, CreatorNotFoundError, ValidationError
from fanview.lib.placement import AssetKind, check_media_type, content_type_for
from fanview.lib.responses import envelope

logger = logging.getLogger(__name__)


class ContentController(Controller):
    path = "/api/content"

    @get("/creator/{creator_id:uuid}")
    async def list_for_creator(
        self,
        db_session: AsyncSession,
        viewer: User | None,
        creator_id: UUID,
    ) -> Response:
        await creator_service.require_creator(db_session, creator_id)

        has_access = False
        if viewer is not None:
            has_access = viewer.is_admin or await subscription_service.is_subscribed(db_session, viewer.id, creator_id)

        views = await content_service.list_creator_content(
            db_session,
            creator_id,
            viewer_id=viewer.id if viewer else None,
            has_access=has_access,
        )
        return envelope(
            "Content retrieved",
            {"content": [serialize_content_view(view) for view in views], "hasAccess": has_access},
        )

    @post("/upload")
    async def upload(self, request: Request, db_session: AsyncSession, admin_user: User) -> Response:
        """Store an uploaded image or video and register it as content.

        Form fields: ``contentFile``, ``userId`` or ``creatorId``, ``title``,
        ``description`` and ``isPremium``.
        """
        settings = request.app.state.settings
        placement = request.app.state.placement

        form = await read_form(request)
        upload = form_file(form, "contentFile")
        user_id = parse_uuid(form_text(form, "userId"), "userId")
        creator_id = parse_uuid(form_text(form, "creatorId"), "creatorId")
        title = form_text(form, "title")

        missing = [name for name, value in (("title", title), ("userId", user_id or creator_id)) if not value]
        if missing:
            raise ValidationError(
                "Missing required fields",
                errors=[{"field": name, "message": "is required"} for name in missing],
            )
        media_type = check_media_type(upload.content_type, AssetKind.CONTENT, "contentFile")

        staged = await placement.store.stage(upload, settings.uploads.max_content_size, prefix="content")
        try:
            creator = await self._find_uploading_creator(db_session, user_id, creator_id)
            placed = await placement.place(db_session, staged.path, creator.id, AssetKind.CONTENT)
        finally:
            await placement.store.discard(staged.path)

        try:
            content = await content_service.create_content(
                db_session,
                creator_id=creator.id,
                title=title,
                description=form_text(form, "description"),
                content_url=placed.url,
                content_type=content_type_for(media_type),
                is_premium=parse_bool(form.get("isPremium")),
            )
        except Exception:
            await placement.store.discard(placed.path)
            raise

        logger.info("Content %s uploaded for creator %s", content.id, creator.id)
        return envelope(
            "Content uploaded and created successfully",
            {"content": serialize_content(content), "folderName": placed.folder_name},
            status_code=201,
        )

    async def _find_uploading_creator(
        self,
        db_session: AsyncSession,
        user_id: UUID | None,
        creator_id: UUID | None,
    ) -> Creator:
        creator = None
        if user_id is not None:
            creator = await creator_service.get_creator_by_user_id(db_session, user_id)
        if creator is None and creator_id is not None:
            creator = await creator_service.get_creator(db_session, creator_id)
        if creator is None:
            raise CreatorNotFoundError(
                "Creator not found for this user",
                debug={
                    "userId": str(user_id) if user_id else None,
                    "creatorId": str(creator_id) if creator_id else None,
                },
            )
        return creator

    @post("/")
    async def register_url(self, request: Request, db_session: AsyncSession, admin_user: User) -> Response:
        """Register content hosted elsewhere by URL."""
        payload = await read_json(request, ContentCreateRequest)
        await creator_service.require_creator(db_session, payload.creator_id)
        content = await content_service.create_content(
            db_session,
            creator_id=payload.creator_id,
            title=payload.title,
            description=payload.description,
            content_url=str(payload.content_url),
            content_type=payload.content_type,
            is_premium=payload.is_premium,
        )
        return envelope("Content created successfully", {"content": serialize_content(content)}, status_code=201)

    @post("/{content_id:uuid}/like")
    async def toggle_like(self, db_session: AsyncSession, current_user: User, content_id: UUID) -> Response:
        is_liked = await like_service.toggle_like(db_session, current_user.id, content_id)
        total = await like_service.count_likes(db_session, content_id)
        return envelope(
            "Content liked" if is_liked else "Content unliked",
            {"isLiked": is_liked, "totalLikes": total},
        )

    @get("/{content_id:uuid}/likes")
    async def likes(self, db_session: AsyncSession, content_id: UUID) -> Response:
        if await content_service.get_content(db_session, content_id) is None:
            raise ContentNotFoundError()
        total = await like_service.count_likes(db_session, content_id)
        return envelope("Likes retrieved", {"contentId": content_id, "totalLikes": total})
