"""Tests for moving staged uploads into creator folders."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from litestar.datastructures import UploadFile

from fanview.lib.exceptions import CreatorNotFoundError, ValidationError
from fanview.lib.folders import FolderResolver
from fanview.lib.placement import AssetKind, UploadPlacement, check_media_type, content_type_for


@pytest.fixture
def placement(store):
    resolver = FolderResolver(strategy="random", token_factory=lambda: "abcd")
    return UploadPlacement(store, resolver, clock=lambda: 1700000000.5, token_factory=lambda: "deadbeef")


async def _staged(store, data=b"bytes", filename="file.png", content_type="image/png"):
    upload = UploadFile(content_type=content_type, filename=filename, file_data=data)
    return await store.stage(upload, max_size=1024)


class TestDiscardReplaced:
    @pytest.mark.asyncio
    async def test_removes_avatar_with_old_extension(self, placement, store, db_session, make_creator):
        creator = await make_creator("Jane Doe")
        old = await placement.place(db_session, (await _staged(store, b"one")).path, creator.id, AssetKind.AVATAR)
        new = await placement.place(
            db_session,
            (await _staged(store, b"two", filename="a.gif", content_type="image/gif")).path,
            creator.id,
            AssetKind.AVATAR,
        )

        await placement.discard_replaced(new, AssetKind.AVATAR)

        assert not old.path.exists()
        assert new.path.read_bytes() == b"two"

    @pytest.mark.asyncio
    async def test_content_is_left_alone(self, placement):
        placement.store = AsyncMock()
        await placement.discard_replaced(AsyncMock(), AssetKind.CONTENT)
        placement.store.discard_siblings.assert_not_called()


class TestDestination:
    def test_content_name_from_clock_and_token(self, placement):
        assert (
            placement.destination("jane-abcd", AssetKind.CONTENT, ".mp4")
            == "creators/jane-abcd/content/content-1700000000500-deadbeef.mp4"
        )

    @pytest.mark.parametrize("kind", [AssetKind.AVATAR, AssetKind.BANNER])
    def test_profile_images_have_fixed_names(self, placement, kind):
        assert placement.destination("jane-abcd", kind, ".png") == f"creators/jane-abcd/{kind.value}.png"


class TestPlace:
    @pytest.mark.asyncio
    async def test_places_content(self, placement, store, db_session, make_creator):
        creator = await make_creator("Jane Doe")
        staged = await _staged(store, data=b"video-bytes", filename="clip.mp4", content_type="video/mp4")

        placed = await placement.place(db_session, staged.path, creator.id, AssetKind.CONTENT)

        assert placed.folder_name == "janedoe-abcd"
        assert placed.url == "/uploads/creators/janedoe-abcd/content/content-1700000000500-deadbeef.mp4"
        assert placed.path.read_bytes() == b"video-bytes"
        assert not staged.path.exists()

    @pytest.mark.asyncio
    async def test_avatar_replaced_in_place(self, placement, store, db_session, make_creator):
        creator = await make_creator("Jane Doe")
        first = await placement.place(
            db_session, (await _staged(store, b"one")).path, creator.id, AssetKind.AVATAR
        )
        second = await placement.place(
            db_session, (await _staged(store, b"two")).path, creator.id, AssetKind.AVATAR
        )

        assert first.url == second.url == "/uploads/creators/janedoe-abcd/avatar.png"
        assert second.path.read_bytes() == b"two"

    @pytest.mark.asyncio
    async def test_unknown_creator_leaves_temp_for_caller(self, placement, store, db_session):
        staged = await _staged(store)

        with pytest.raises(CreatorNotFoundError):
            await placement.place(db_session, staged.path, uuid4(), AssetKind.AVATAR)

        assert staged.path.exists()

    @pytest.mark.asyncio
    async def test_place_staged_discards_temp_on_failure(self, placement, store, db_session):
        staged = await _staged(store)

        with pytest.raises(CreatorNotFoundError):
            await placement.place_staged(db_session, staged, uuid4(), AssetKind.BANNER)

        assert not staged.path.exists()

    @pytest.mark.asyncio
    async def test_move_failure_propagates(self, placement, store, db_session, make_creator):
        creator = await make_creator("Jane Doe")
        staged = await _staged(store)
        placement.store.move = AsyncMock(side_effect=OSError("disk full"))

        with pytest.raises(OSError):
            await placement.place(db_session, staged.path, creator.id, AssetKind.AVATAR)


class TestMediaTypes:
    @pytest.mark.parametrize("media_type", ["image/jpeg", "image/png", "image/webp", "image/gif"])
    def test_images_allowed_for_avatar(self, media_type):
        assert check_media_type(media_type, AssetKind.AVATAR, "avatar") == media_type

    @pytest.mark.parametrize("media_type", ["video/mp4", "image/svg+xml", "application/pdf", None])
    def test_avatar_rejects_others(self, media_type):
        with pytest.raises(ValidationError) as exc_info:
            check_media_type(media_type, AssetKind.AVATAR, "avatar")
        assert exc_info.value.errors[0]["field"] == "avatar"

    @pytest.mark.parametrize("media_type", ["video/mp4", "video/quicktime", "video/mkv", "IMAGE/PNG"])
    def test_content_accepts_video(self, media_type):
        assert check_media_type(media_type, AssetKind.CONTENT, "contentFile") == media_type.lower()

    def test_content_rejects_documents(self):
        with pytest.raises(ValidationError):
            check_media_type("application/zip", AssetKind.CONTENT, "contentFile")

    def test_content_type_for(self):
        assert content_type_for("video/mp4") == "video"
        assert content_type_for("image/png") == "image"
