"""Admin-only creator provisioning."""

from __future__ import annotations

import logging
from pathlib import Path

from litestar import Controller, Request, Response, post
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.auth.passwords import generate_temporary_password
from fanview.controllers.helpers import (
    form_file,
    form_text,
    read_form,
    read_json,
    serialize_creator,
    serialize_user,
    validate_model,
)
from fanview.controllers.schemas import ProvisionCreatorRequest, ProvisionTestCreatorForm
from fanview.db.models.user import ROLE_CREATOR, User
from fanview.db.services import creator_service, user_service
from fanview.lib.placement import AssetKind, check_media_type
from fanview.lib.responses import envelope
from fanview.lib.storage.base import StagedUpload

logger = logging.getLogger(__name__)


class AdminController(Controller):
    path = "/api/admin"

    @post("/creators/provision")
    async def provision_creator(self, request: Request, db_session: AsyncSession, admin_user: User) -> Response:
        """Create a creator login and its creator profile in one transaction."""
        settings = request.app.state.settings
        resolver = request.app.state.placement.resolver
        payload = await read_json(request, ProvisionCreatorRequest)

        password = payload.password or generate_temporary_password()
        try:
            user = await user_service.create_user(
                db_session,
                email=payload.email,
                password=password,
                full_name=payload.full_name,
                role=ROLE_CREATOR,
                email_verified=True,
                bio=payload.bio,
                avatar_url=str(payload.avatar_url) if payload.avatar_url else None,
                bcrypt_rounds=settings.auth.bcrypt_rounds,
                commit=False,
            )
            creator = await creator_service.create_creator(
                db_session,
                display_name=payload.display_name,
                user_id=user.id,
                bio=payload.bio,
                location=payload.location,
                avatar_url=str(payload.avatar_url) if payload.avatar_url else None,
                is_active=payload.avatar_url is not None,
                commit=False,
            )
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

        folder_name = await resolver.resolve(db_session, creator.id, ensure_directory=True)
        await db_session.refresh(creator)
        logger.info("Admin %s provisioned creator %s (%s)", admin_user.id, creator.id, folder_name)

        data = {"user": serialize_user(user), "creator": serialize_creator(creator)}
        if payload.password is None:
            data["tempPassword"] = password
        return envelope("Creator account provisioned successfully", data, status_code=201)

    @post("/creators/provision-test")
    async def provision_test_creator(
        self,
        request: Request,
        db_session: AsyncSession,
        admin_user: User,
    ) -> Response:
        """Create a creator from a multipart form with avatar and optional banner files."""
        settings = request.app.state.settings
        placement = request.app.state.placement

        form = await read_form(request)
        avatar = form_file(form, "avatar")
        banner = form_file(form, "banner", required=False)
        fields = validate_model(
            ProvisionTestCreatorForm,
            {
                key: value
                for key in ("displayName", "bio", "location", "total_subscribers", "total_likes", "media_count")
                if (value := form_text(form, key)) is not None
            },
        )
        check_media_type(avatar.content_type, AssetKind.AVATAR, "avatar")
        if banner is not None:
            check_media_type(banner.content_type, AssetKind.BANNER, "banner")

        max_size = settings.uploads.max_image_size
        staged: dict[AssetKind, StagedUpload] = {}
        placed_paths: list[Path] = []
        try:
            staged[AssetKind.AVATAR] = await placement.store.stage(avatar, max_size, prefix="avatar")
            if banner is not None:
                staged[AssetKind.BANNER] = await placement.store.stage(banner, max_size, prefix="banner")

            creator = await creator_service.create_creator(
                db_session,
                display_name=fields.display_name,
                bio=fields.bio,
                location=fields.location,
                is_active=True,
                total_subscribers=fields.total_subscribers,
                total_likes=fields.total_likes,
                media_count=fields.media_count,
            )

            urls = {}
            try:
                for kind, upload in staged.items():
                    placed = await placement.place(db_session, upload.path, creator.id, kind)
                    placed_paths.append(placed.path)
                    urls[kind] = placed.url
                creator = await creator_service.update_creator(
                    db_session,
                    await creator_service.require_creator(db_session, creator.id),
                    avatar_url=urls[AssetKind.AVATAR],
                    banner_url=urls.get(AssetKind.BANNER),
                )
            except Exception:
                await db_session.rollback()
                await db_session.delete(creator)
                await db_session.commit()
                for path in placed_paths:
                    await placement.store.discard(path)
                raise
        finally:
            for upload in staged.values():
                await placement.store.discard(upload.path)

        logger.info("Admin %s provisioned test creator %s", admin_user.id, creator.id)
        return envelope(
            "Test creator provisioned successfully",
            {"creator": serialize_creator(creator)},
            status_code=201,
        )
