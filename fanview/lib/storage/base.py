"""Upload store protocol and staged file descriptor."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from litestar.datastructures import UploadFile


@dataclass
class StagedUpload:
    """An inbound file fully written to the temporary staging area."""

    path: Path
    filename: str
    media_type: str
    size: int

    @property
    def extension(self) -> str:
        return self.path.suffix


@runtime_checkable
class UploadStore(Protocol):
    """Protocol for upload storage backends."""

    async def stage(self, upload: UploadFile, max_size: int, prefix: str = "upload") -> StagedUpload:
        """Write *upload* to the staging area, rejecting files over *max_size*."""
        ...

    async def move(self, source: Path, relative: str) -> Path:
        """Move a staged file to *relative* under the store root."""
        ...

    async def discard(self, path: Path | None) -> None:
        """Remove a file if it exists."""
        ...

    async def discard_siblings(self, path: Path) -> list[Path]:
        """Remove files sharing *path*'s stem but not its extension."""
        ...

    async def ensure_dir(self, relative: str) -> Path:
        ...

    def url_for(self, relative: str) -> str:
        """Return the public URL for a stored path."""
        ...
