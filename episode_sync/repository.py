"""
Podcast table access: due-set selection, schedule writes, admin operations.

Rows leave this module as PodcastRecord snapshots, never as ORM instances,
so a rollback later in the run cannot expire state the orchestrator holds.
"""

from datetime import datetime
from typing import List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from sqlalchemy.exc import SQLAlchemyError
from pydantic import ValidationError
from models.podcast import Podcast
from models.base import PodcastStatus
from schemas.records import PodcastRecord
from core.exceptions import PersistenceError
import logging

logger = logging.getLogger(__name__)


class PodcastRepository:
    """Podcast reads and writes used by the sync engine and the API"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        # Primary keys of due rows the last fetch_due could not load
        self.rejected_ids: List[int] = []

    async def fetch_due(
        self,
        now: datetime,
        limit: int,
        force: bool = False,
        podcast_ids: Optional[Sequence[int]] = None
    ) -> List[PodcastRecord]:
        """
        Select podcasts to check this run.

        Active and not paused, next_check_at <= now (unless force), oldest
        due first, at most `limit` rows. podcast_ids narrows the selection
        to those internal ids.

        Rows that do not load as a PodcastRecord are logged, skipped and
        listed in rejected_ids so the caller can count them as errors.
        """
        filters = [
            Podcast.status == PodcastStatus.ACTIVE,
            Podcast.is_paused.is_(False),
        ]
        if not force:
            filters.append(Podcast.next_check_at <= now)
        if podcast_ids is not None:
            filters.append(Podcast.id.in_(list(podcast_ids)))

        result = await self.db.execute(
            select(Podcast)
            .where(and_(*filters))
            .order_by(Podcast.next_check_at.asc(), Podcast.id.asc())
            .limit(limit)
        )

        self.rejected_ids = []
        podcasts = []
        for row in result.scalars().all():
            try:
                podcasts.append(PodcastRecord.model_validate(row))
            except ValidationError as e:
                self.rejected_ids.append(row.id)
                logger.error(
                    f"Skipping podcast row {row.id}: invalid record ({e.error_count()} errors)",
                    extra={"podcast_pk": row.id}
                )
        return podcasts

    async def get(self, podcast_pk: int) -> Optional[PodcastRecord]:
        podcast = await self.db.get(Podcast, podcast_pk)
        return PodcastRecord.model_validate(podcast) if podcast else None

    async def update_schedule(
        self,
        podcast_pk: int,
        check_frequency_hours: int,
        consecutive_empty_checks: int,
        next_check_at: datetime,
        last_synced_at: Optional[datetime] = None
    ):
        """
        Persist schedule fields. Called only by FrequencyController.

        Raises:
            PersistenceError: The update or commit failed
        """
        values = {
            "check_frequency_hours": check_frequency_hours,
            "consecutive_empty_checks": consecutive_empty_checks,
            "next_check_at": next_check_at,
        }
        if last_synced_at is not None:
            values["last_synced_at"] = last_synced_at

        try:
            await self.db.execute(
                update(Podcast).where(Podcast.id == podcast_pk).values(**values)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to update schedule for podcast {podcast_pk}",
                context={"operation": "UPDATE", "table_name": "podcasts", "podcast_pk": podcast_pk},
                original_exception=e
            )

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    async def list_podcasts(self, status: Optional[PodcastStatus] = None) -> List[PodcastRecord]:
        query = select(Podcast).order_by(Podcast.name.asc())
        if status is not None:
            query = query.where(Podcast.status == status)
        result = await self.db.execute(query)
        return [PodcastRecord.model_validate(row) for row in result.scalars().all()]

    async def get_by_podscan_id(self, podcast_id: str) -> Optional[PodcastRecord]:
        result = await self.db.execute(
            select(Podcast).where(Podcast.podcast_id == podcast_id)
        )
        podcast = result.scalar_one_or_none()
        return PodcastRecord.model_validate(podcast) if podcast else None

    async def create(self, podcast_id: str, name: str, now: datetime) -> PodcastRecord:
        """Start tracking a podcast. It is due for a check immediately."""
        podcast = Podcast(
            podcast_id=podcast_id,
            name=name,
            status=PodcastStatus.ACTIVE,
            is_paused=False,
            check_frequency_hours=24,
            consecutive_empty_checks=0,
            next_check_at=now,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(podcast)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to create podcast {podcast_id}",
                context={"operation": "INSERT", "table_name": "podcasts", "podcast_id": podcast_id},
                original_exception=e
            )
        return PodcastRecord.model_validate(podcast)

    async def set_paused(self, podcast_pk: int, paused: bool) -> Optional[PodcastRecord]:
        podcast = await self.db.get(Podcast, podcast_pk)
        if podcast is None:
            return None

        podcast.is_paused = paused
        podcast.status = PodcastStatus.PAUSED if paused else PodcastStatus.ACTIVE
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to update pause state for podcast {podcast_pk}",
                context={"operation": "UPDATE", "table_name": "podcasts", "podcast_pk": podcast_pk},
                original_exception=e
            )
        logger.info(f"Podcast {podcast.podcast_id} {'paused' if paused else 'resumed'}")
        return PodcastRecord.model_validate(podcast)
