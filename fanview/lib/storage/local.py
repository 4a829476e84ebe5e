"""Local filesystem upload store."""

from __future__ import annotations

import asyncio
import mimetypes
import os
import re
import uuid
from pathlib import Path, PurePosixPath

from litestar.datastructures import UploadFile

from fanview.lib.exceptions import ValidationError
from fanview.lib.storage.base import StagedUpload

CHUNK_SIZE = 1024 * 1024
TEMP_DIR = "temp"

_EXTENSION = re.compile(r"^\.[a-z0-9]{1,10}$")


def extension_for(filename: str | None, media_type: str | None) -> str:
    """Lower-cased extension from the file name, else guessed from the media type."""
    suffix = PurePosixPath(filename or "").suffix.lower()
    if _EXTENSION.match(suffix):
        return suffix
    return mimetypes.guess_extension(media_type or "") or ""


class LocalUploadStore:
    """Stores uploads beneath a local root directory.

    Inbound files are staged in ``<root>/temp`` and later renamed into
    their final location. Blocking filesystem calls run in a worker thread.
    """

    def __init__(self, root: str | Path, public_prefix: str = "/uploads") -> None:
        self.root = Path(root).resolve()
        self.temp_dir = self.root / TEMP_DIR
        self.public_prefix = public_prefix.rstrip("/")

    def path_for(self, relative: str) -> Path:
        path = (self.root / relative).resolve()
        if not path.is_relative_to(self.root):
            raise ValueError(f"Path escapes upload root: {relative}")
        return path

    def url_for(self, relative: str) -> str:
        return f"{self.public_prefix}/{PurePosixPath(relative).as_posix().lstrip('/')}"

    async def ensure_dir(self, relative: str) -> Path:
        path = self.path_for(relative)
        await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)
        return path

    async def stage(self, upload: UploadFile, max_size: int, prefix: str = "upload") -> StagedUpload:
        filename = upload.filename or "upload"
        media_type = upload.content_type or "application/octet-stream"
        path = self.temp_dir / f"{prefix}-{uuid.uuid4().hex}{extension_for(filename, media_type)}"
        await asyncio.to_thread(self.temp_dir.mkdir, parents=True, exist_ok=True)

        size = 0
        fh = await asyncio.to_thread(path.open, "wb")
        try:
            while chunk := await upload.read(CHUNK_SIZE):
                size += len(chunk)
                if size > max_size:
                    break
                await asyncio.to_thread(fh.write, chunk)
        finally:
            await asyncio.to_thread(fh.close)

        if size > max_size:
            await self.discard(path)
            raise ValidationError(
                f"File too large. Maximum size is {max_size} bytes",
                errors=[{"field": "file", "message": f"exceeds {max_size} bytes"}],
            )
        if size == 0:
            await self.discard(path)
            raise ValidationError("Uploaded file is empty", errors=[{"field": "file", "message": "empty file"}])

        return StagedUpload(path=path, filename=filename, media_type=media_type, size=size)

    async def move(self, source: Path, relative: str) -> Path:
        destination = self.path_for(relative)
        await asyncio.to_thread(self._move, Path(source), destination)
        return destination

    async def discard(self, path: Path | None) -> None:
        if path is None:
            return
        await asyncio.to_thread(Path(path).unlink, missing_ok=True)

    async def discard_siblings(self, path: Path) -> list[Path]:
        """Remove ``<stem>.*`` files next to *path*, keeping *path* itself."""
        path = Path(path).resolve()
        if not path.is_relative_to(self.root):
            raise ValueError(f"Path escapes upload root: {path}")
        return await asyncio.to_thread(self._discard_siblings, path)

    @staticmethod
    def _discard_siblings(path: Path) -> list[Path]:
        removed = []
        for sibling in path.parent.glob(f"{path.stem}.*"):
            if sibling != path and sibling.is_file():
                sibling.unlink(missing_ok=True)
                removed.append(sibling)
        return removed

    @staticmethod
    def _move(source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        os.replace(source, destination)
