"""
Load episodes with insert-if-absent semantics (idempotency)
"""

from typing import Sequence, Set
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from models.episode import Episode
from schemas.records import EpisodeCreate
from core.exceptions import PersistenceError
import logging

logger = logging.getLogger(__name__)


class EpisodeLoader:
    """
    Natural-key lookups and inserts against the episodes table.

    Ensures:
    - No duplicate rows on repeated runs (INSERT ... ON CONFLICT DO NOTHING)
    - Each insert commits on its own, so one bad episode never takes its
      siblings down with it
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def existing_episode_ids(self, episode_ids: Sequence[str]) -> Set[str]:
        """Return the subset of episode_ids already stored."""
        if not episode_ids:
            return set()

        try:
            result = await self.db.execute(
                select(Episode.episode_id).where(Episode.episode_id.in_(list(episode_ids)))
            )
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                "Failed to look up existing episodes",
                context={"operation": "SELECT", "table_name": "episodes", "ids": len(episode_ids)},
                original_exception=e
            )

    async def insert(self, episode: EpisodeCreate) -> bool:
        """
        Insert one episode unless its episode_id already exists.

        Returns:
            True when a row was written, False when the natural key was taken

        Raises:
            PersistenceError: The insert or commit failed
        """
        stmt = (
            self._insert()
            .values(**episode.model_dump())
            .on_conflict_do_nothing(index_elements=["episode_id"])
            .returning(Episode.id)
        )

        try:
            result = await self.db.execute(stmt)
            inserted_id = result.scalar_one_or_none()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to insert episode {episode.episode_id}",
                context={
                    "operation": "INSERT",
                    "table_name": "episodes",
                    "episode_id": episode.episode_id
                },
                original_exception=e
            )

        if inserted_id is None:
            logger.debug(f"Episode {episode.episode_id} already stored, skipped")
            return False
        return True

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "sqlite":
            return sqlite_insert(Episode)
        return pg_insert(Episode)
