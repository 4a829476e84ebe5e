"""Move staged uploads into their creator's folder.

Layout under the upload root::

    creators/<folder>/avatar.<ext>
    creators/<folder>/banner.<ext>
    creators/<folder>/content/content-<ms>-<token>.<ext>
"""

from __future__ import annotations

import enum
import logging
import re
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from fanview.lib.exceptions import ValidationError
from fanview.lib.folders import FolderResolver, creator_dir
from fanview.lib.storage.base import StagedUpload, UploadStore

logger = logging.getLogger(__name__)

IMAGE_TYPES = re.compile(r"^image/(jpeg|png|webp|gif)$")
CONTENT_TYPES = re.compile(r"^(image|video)/(jpeg|png|webp|gif|mp4|mov|avi|mkv|quicktime)$")


class AssetKind(enum.Enum):
    AVATAR = "avatar"
    BANNER = "banner"
    CONTENT = "content"


@dataclass
class PlacedUpload:
    url: str
    folder_name: str
    path: Path


def default_token() -> str:
    return secrets.token_hex(4)


def content_type_for(media_type: str) -> str:
    """Classify a media type as ``"image"`` or ``"video"``."""
    return "video" if media_type.startswith("video/") else "image"


def check_media_type(media_type: str | None, kind: AssetKind, field: str) -> str:
    """Validate the declared media type of an upload for *kind*."""
    pattern = CONTENT_TYPES if kind is AssetKind.CONTENT else IMAGE_TYPES
    media_type = (media_type or "").lower()
    if not pattern.match(media_type):
        allowed = "image and video" if kind is AssetKind.CONTENT else "image"
        raise ValidationError(
            f"Only {allowed} files are allowed",
            errors=[{"field": field, "message": f"unsupported media type {media_type or 'unknown'}"}],
        )
    return media_type


class UploadPlacement:
    """Relocates staged files into the resolved creator folder.

    The clock and token factory name content items; both are injectable so
    generated names are reproducible in tests. Temp file cleanup on failure
    belongs to the caller.
    """

    def __init__(
        self,
        store: UploadStore,
        resolver: FolderResolver,
        clock: Callable[[], float] = time.time,
        token_factory: Callable[[], str] = default_token,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.clock = clock
        self.token_factory = token_factory

    def destination(self, folder_name: str, kind: AssetKind, extension: str) -> str:
        base = creator_dir(folder_name)
        if kind is AssetKind.CONTENT:
            stamp = int(self.clock() * 1000)
            return f"{base}/content/content-{stamp}-{self.token_factory()}{extension}"
        return f"{base}/{kind.value}{extension}"

    async def place(
        self,
        db_session: AsyncSession,
        temp_path: Path,
        creator_id: UUID,
        kind: AssetKind,
    ) -> PlacedUpload:
        """Move *temp_path* into the creator's folder.

        Raises:
            CreatorNotFoundError: The creator does not exist.
            OSError: The file could not be moved.
        """
        folder_name = await self.resolver.resolve(db_session, creator_id)
        relative = self.destination(folder_name, kind, Path(temp_path).suffix.lower())
        path = await self.store.move(Path(temp_path), relative)
        url = self.store.url_for(relative)
        logger.info("Placed %s for creator %s at %s", kind.value, creator_id, url)
        return PlacedUpload(url=url, folder_name=folder_name, path=path)

    async def discard_replaced(self, placed: PlacedUpload, kind: AssetKind) -> None:
        """Remove an earlier avatar or banner stored under another extension."""
        if kind is AssetKind.CONTENT:
            return
        for path in await self.store.discard_siblings(placed.path):
            logger.info("Removed replaced %s %s", kind.value, path)

    async def place_staged(
        self,
        db_session: AsyncSession,
        staged: StagedUpload,
        creator_id: UUID,
        kind: AssetKind,
    ) -> PlacedUpload:
        """Place a staged upload, removing the temp file if placement fails."""
        try:
            return await self.place(db_session, staged.path, creator_id, kind)
        finally:
            await self.store.discard(staged.path)
