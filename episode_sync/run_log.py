"""
SyncRun bookkeeping: open as RUNNING, close exactly once.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from models.sync_run import SyncRun
from models.base import SyncRunStatus, SyncTrigger
from schemas.api import SyncTotals
from core.clock import Clock
from core.exceptions import PersistenceError
import logging

logger = logging.getLogger(__name__)


class SyncRunRecorder:
    """
    Owns one SyncRun row from open to close.

    The recorder keeps only the row id; finalize issues an UPDATE by id so
    it works after the session has been rolled back.
    """

    def __init__(self, db_session: AsyncSession, clock: Clock):
        self.db = db_session
        self.clock = clock
        self.run_id: Optional[int] = None
        self.started_at = None
        self.finalized = False

    async def open(self, trigger: SyncTrigger) -> int:
        """
        Insert the RUNNING row.

        Raises:
            PersistenceError: The row could not be written
        """
        self.started_at = self.clock.now()
        run = SyncRun(
            trigger=trigger,
            status=SyncRunStatus.RUNNING,
            started_at=self.started_at,
        )
        try:
            self.db.add(run)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                "Failed to open sync run",
                context={"operation": "INSERT", "table_name": "episode_sync_runs"},
                original_exception=e
            )

        self.run_id = run.id
        logger.info(f"Sync run {self.run_id} started ({trigger.value})")
        return self.run_id

    async def finalize(
        self,
        status: SyncRunStatus,
        totals: SyncTotals,
        error_message: Optional[str] = None
    ):
        """
        Close the run with its final status and counts.

        Raises:
            RuntimeError: The run was never opened or is already closed
            PersistenceError: The update failed
        """
        if self.run_id is None:
            raise RuntimeError("Sync run was never opened")
        if self.finalized:
            raise RuntimeError(f"Sync run {self.run_id} is already finalized")

        completed_at = self.clock.now()
        try:
            await self.db.execute(
                update(SyncRun)
                .where(SyncRun.id == self.run_id)
                .values(
                    status=status,
                    completed_at=completed_at,
                    duration_seconds=(completed_at - self.started_at).total_seconds(),
                    podcasts_checked=totals.total_podcasts_checked,
                    podcasts_with_new_episodes=totals.podcasts_with_new_episodes,
                    episodes_synced=totals.total_synced,
                    episodes_failed=totals.total_errors,
                    episodes_skipped=totals.total_skipped,
                    api_calls_made=totals.api_calls_used,
                    error_message=error_message,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise PersistenceError(
                f"Failed to finalize sync run {self.run_id}",
                context={"operation": "UPDATE", "table_name": "episode_sync_runs", "run_id": self.run_id},
                original_exception=e
            )

        self.finalized = True
        logger.info(f"Sync run {self.run_id} finalized as {status.value}")
