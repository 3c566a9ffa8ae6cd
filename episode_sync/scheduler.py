import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import async_sessionmaker
from core.config import settings
from core.database import async_session_maker
from core.exceptions import SyncException
from episode_sync.runner import SyncOrchestrator
from models.base import SyncTrigger

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "episode_sync"


class SyncScheduler:
    """Runs a scheduled sync pass every SYNC_INTERVAL_MINUTES"""

    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_maker,
        interval_minutes: int = settings.SYNC_INTERVAL_MINUTES
    ):
        self.scheduler = AsyncIOScheduler()
        self.session_factory = session_factory
        self.interval_minutes = interval_minutes

    async def run_sync_job(self):
        """Job to run one scheduled sync pass"""
        logger.info("Scheduler: Starting episode sync job")
        async with self.session_factory() as session:
            try:
                orchestrator = SyncOrchestrator(session)
                summary = await orchestrator.run(trigger=SyncTrigger.SCHEDULED)
                logger.info(f"Scheduler: {summary.message}")
            except SyncException as e:
                logger.error(
                    f"Scheduler: episode sync job failed - {e.message}",
                    extra={"error_context": e.to_dict()}
                )
            except Exception as e:
                logger.exception(f"Scheduler: episode sync job failed - {e}")

    def start(self):
        """Start the scheduler"""
        # One pass at a time; a late tick is merged rather than queued
        self.scheduler.add_job(
            self.run_sync_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id=SYNC_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(f"Episode sync scheduler started (every {self.interval_minutes} minutes)")

    def stop(self):
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Episode sync scheduler stopped")
