"""Creator folder name resolution.

A creator's folder name is derived from its display name the first time
anything is stored for it and persisted with a compare-and-set update, so
every later resolution returns the same value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fanview.db.models.creator import Creator
from fanview.lib.exceptions import CreatorNotFoundError
from fanview.lib.slug import generate_slug, identifier_suffix, random_suffix
from fanview.lib.storage.base import UploadStore

logger = logging.getLogger(__name__)

SUFFIX_RANDOM = "random"
SUFFIX_IDENTIFIER = "identifier"


def creator_dir(folder_name: str) -> str:
    return f"creators/{folder_name}"


class FolderResolver:
    """Returns a creator's folder name, assigning one on first use.

    Args:
        strategy: ``"identifier"`` derives the first suffix from the creator
            id, ``"random"`` draws every suffix from *token_factory*.
        attempts: Number of candidate slugs tried when a slug is already
            owned by another creator.
        token_factory: Source of random suffixes.
        store: When given, ``resolve(..., ensure_directory=True)`` creates
            the creator directory in it.
    """

    def __init__(
        self,
        strategy: str = SUFFIX_IDENTIFIER,
        attempts: int = 5,
        token_factory: Callable[[], str] = random_suffix,
        store: UploadStore | None = None,
    ) -> None:
        if strategy not in (SUFFIX_RANDOM, SUFFIX_IDENTIFIER):
            raise ValueError(f"Unknown folder suffix strategy: {strategy}")
        self.strategy = strategy
        self.attempts = max(1, attempts)
        self.token_factory = token_factory
        self.store = store

    def candidate(self, display_name: str, creator_id: UUID, attempt: int = 0) -> str:
        """Slug to try on the given attempt."""
        if self.strategy == SUFFIX_IDENTIFIER and attempt == 0:
            return generate_slug(display_name, suffix=identifier_suffix(creator_id))
        return generate_slug(display_name, token_factory=self.token_factory)

    async def resolve(
        self,
        db_session: AsyncSession,
        creator_id: UUID,
        ensure_directory: bool = False,
    ) -> str:
        """Return the folder name for *creator_id*.

        Raises:
            CreatorNotFoundError: No creator has this id.
        """
        result = await db_session.execute(
            select(Creator.display_name, Creator.folder_name).where(Creator.id == creator_id)
        )
        row = result.one_or_none()
        if row is None:
            raise CreatorNotFoundError(debug={"creator_id": str(creator_id)})

        folder_name = row.folder_name or await self._assign(db_session, creator_id, row.display_name)

        if ensure_directory and self.store is not None:
            await self.store.ensure_dir(creator_dir(folder_name))

        return folder_name

    async def _assign(self, db_session: AsyncSession, creator_id: UUID, display_name: str) -> str:
        candidate = ""
        for attempt in range(self.attempts):
            candidate = self.candidate(display_name, creator_id, attempt)
            try:
                result = await db_session.execute(
                    update(Creator)
                    .where(Creator.id == creator_id, Creator.folder_name.is_(None))
                    .values(folder_name=candidate)
                    .execution_options(synchronize_session=False)
                )
                await db_session.commit()
            except IntegrityError:
                # Another creator already owns this slug
                await db_session.rollback()
                logger.info("Folder name %s taken, retrying for creator %s", candidate, creator_id)
                continue
            except SQLAlchemyError:
                await db_session.rollback()
                logger.warning(
                    "Could not persist folder name %s for creator %s; using it for this request only",
                    candidate,
                    creator_id,
                    exc_info=True,
                )
                return candidate

            if result.rowcount == 1:
                logger.info("Assigned folder name %s to creator %s", candidate, creator_id)
                return candidate

            # Lost the race: another request assigned a folder name first
            winner = await db_session.scalar(select(Creator.folder_name).where(Creator.id == creator_id))
            if winner is None:
                raise CreatorNotFoundError(debug={"creator_id": str(creator_id)})
            return winner

        logger.warning(
            "No free folder name for creator %s after %d attempts; using %s for this request only",
            creator_id,
            self.attempts,
            candidate,
        )
        return candidate

    async def backfill(self, db_session: AsyncSession) -> dict[UUID, str]:
        """Assign folder names to every creator that lacks one."""
        result = await db_session.execute(select(Creator.id).where(Creator.folder_name.is_(None)))
        creator_ids = list(result.scalars().all())
        assigned = {}
        for creator_id in creator_ids:
            assigned[creator_id] = await self.resolve(db_session, creator_id, ensure_directory=True)
        return assigned
