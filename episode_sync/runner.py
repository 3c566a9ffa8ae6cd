# ============================================================================
# File: episode_sync/runner.py
# Description: Sync orchestrator with run-level error handling
# ============================================================================
"""
Sync Orchestrator - drives one sync pass over the tracked podcasts.

This module provides:
- Due-set selection bounded by MAX_PODCASTS_PER_SYNC
- Optional batch probing to skip quiet podcasts cheaply
- Strictly sequential per-podcast sync with courtesy delays
- Schedule advancement for every podcast touched, success or failure
- An auditable SyncRun row, opened before any upstream call and closed
  exactly once on every exit path
"""

from typing import Callable, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from core.clock import Clock, SystemClock
from core.config import settings
from core.runtime_config import ConfigKey, ConfigProvider, DatabaseConfigProvider, SyncConfig
from core.exceptions import SyncException, PersistenceError, UnhandledSyncError
from episode_sync.extractors.podscan_client import PodscanClient
from episode_sync.loaders.episode_loader import EpisodeLoader
from episode_sync.frequency import FrequencyController
from episode_sync.probe import ProbeService, PROBE_BATCH_SIZE
from episode_sync.repository import PodcastRepository
from episode_sync.run_log import SyncRunRecorder
from episode_sync.syncer import PodcastSyncer
from models.base import SyncRunStatus, SyncTrigger
from schemas.api import SyncSummary, SyncTotals
from schemas.records import PodcastRecord, PodcastSyncResult

logger = logging.getLogger(__name__)

# Probing only pays off above this many due podcasts
PROBE_MIN_PODCASTS = 10


def derive_status(total_synced: int, total_errors: int) -> SyncRunStatus:
    """completed without errors, partial with errors and some success, failed otherwise."""
    if total_errors == 0:
        return SyncRunStatus.COMPLETED
    if total_synced > 0:
        return SyncRunStatus.PARTIAL
    return SyncRunStatus.FAILED


def default_client_factory(config: SyncConfig) -> PodscanClient:
    return PodscanClient(
        api_url=config.api_url,
        api_key=config.api_key,
        timeout=settings.HTTP_TIMEOUT_SECONDS
    )


class SyncOrchestrator:
    """
    Episode sync orchestrator

    Responsibilities:
    - Own the SyncRun lifecycle end to end
    - Select and optionally probe the due set
    - Hand candidates to PodcastSyncer one at a time
    - Apply FrequencyController to every podcast touched
    - Convert anything unexpected into a failed run and an error summary
    """

    def __init__(
        self,
        db_session: AsyncSession,
        config_provider: Optional[ConfigProvider] = None,
        clock: Optional[Clock] = None,
        client_factory: Callable[[SyncConfig], PodscanClient] = default_client_factory,
        podcast_delay_seconds: float = settings.SYNC_PODCAST_DELAY_SECONDS,
        batch_delay_seconds: float = settings.SYNC_BATCH_DELAY_SECONDS,
        probe_delay_seconds: float = settings.PROBE_BATCH_DELAY_SECONDS
    ):
        self.db = db_session
        self.config_provider = config_provider or DatabaseConfigProvider(db_session)
        self.clock = clock or SystemClock()
        self.client_factory = client_factory
        self.podcast_delay_seconds = podcast_delay_seconds
        self.batch_delay_seconds = batch_delay_seconds
        self.probe_delay_seconds = probe_delay_seconds
        self.repository = PodcastRepository(db_session)

    async def run(
        self,
        trigger: SyncTrigger = SyncTrigger.SCHEDULED,
        force: bool = False,
        podcast_ids: Optional[Sequence[int]] = None
    ) -> SyncSummary:
        """
        Execute one sync pass.

        Args:
            trigger: What started the run, recorded on the SyncRun
            force: Ignore next_check_at and take every active podcast
            podcast_ids: Restrict the pass to these internal podcast ids

        Returns:
            SyncSummary for every handled outcome, including failed runs

        Raises:
            PersistenceError: The SyncRun row could not be opened
        """
        if not await self.config_provider.get_bool(ConfigKey.DAILY_SYNC_ENABLED):
            logger.info("Episode sync is disabled, skipping run")
            return SyncSummary(
                success=False,
                message="Daily sync is disabled",
                trigger=trigger,
                status="disabled",
            )

        recorder = SyncRunRecorder(self.db, self.clock)
        await recorder.open(trigger)

        totals = SyncTotals()
        results: List[PodcastSyncResult] = []
        client: Optional[PodscanClient] = None

        try:
            config = await SyncConfig.load(self.config_provider)
            client = self.client_factory(config)
            return await self._execute(
                recorder, config, client, trigger, force, podcast_ids, totals, results
            )

        except Exception as e:
            if isinstance(e, SyncException):
                error = e
            else:
                error = UnhandledSyncError(
                    "Unexpected error in sync run",
                    context={"run_id": recorder.run_id, "trigger": trigger.value},
                    original_exception=e
                )
            logger.exception(
                f"Sync run {recorder.run_id} failed: {error.message}",
                extra={"error_context": error.to_dict()}
            )

            error_text = str(e) if error is not e else e.message
            if client is not None:
                totals.api_calls_used = client.requests_made
            await self._fail_run(recorder, totals, error_text)

            return SyncSummary(
                success=False,
                message=f"Sync run failed: {error_text}",
                trigger=trigger,
                run_id=recorder.run_id,
                status=SyncRunStatus.FAILED.value,
                results=results,
                summary=totals,
                error=error_text,
            )

        finally:
            if client is not None:
                await client.aclose()

    async def _execute(
        self,
        recorder: SyncRunRecorder,
        config: SyncConfig,
        client: PodscanClient,
        trigger: SyncTrigger,
        force: bool,
        podcast_ids: Optional[Sequence[int]],
        totals: SyncTotals,
        results: List[PodcastSyncResult]
    ) -> SyncSummary:
        podcasts = await self.repository.fetch_due(
            now=self.clock.now(),
            limit=config.max_podcasts_per_sync,
            force=force,
            podcast_ids=podcast_ids,
        )
        totals.total_podcasts_checked = len(podcasts)
        totals.total_errors += len(self.repository.rejected_ids)

        if not podcasts:
            logger.info("No podcasts due for checking")
            status = derive_status(0, totals.total_errors)
            await recorder.finalize(
                status,
                totals,
                error_message=f"{totals.total_errors} errors" if totals.total_errors else None
            )
            return SyncSummary(
                success=True,
                message="No podcasts due for checking",
                trigger=trigger,
                run_id=recorder.run_id,
                status=status.value,
                summary=totals,
            )

        logger.info(f"Found {len(podcasts)} podcasts to check")

        controller = FrequencyController(
            self.repository, self.clock, config.adaptive_frequency_enabled
        )

        # --------------------------------------------------
        # PHASE 1: PROBE (optional)
        # --------------------------------------------------
        candidates = podcasts
        if config.batch_probe_enabled and len(podcasts) > PROBE_MIN_PODCASTS:
            candidates = await self._probe(podcasts, ProbeService(client), controller, totals)

        # --------------------------------------------------
        # PHASE 2: SEQUENTIAL PER-PODCAST SYNC
        # --------------------------------------------------
        syncer = PodcastSyncer(
            client,
            EpisodeLoader(self.db),
            self.clock,
            batch_delay_seconds=self.batch_delay_seconds
        )

        for index, podcast in enumerate(candidates):
            if index > 0:
                await self.clock.sleep(self.podcast_delay_seconds)

            result = await syncer.sync(podcast)

            try:
                await controller.advance(podcast, result.had_new_episodes)
            except PersistenceError as e:
                logger.error(
                    f"Failed to advance schedule for {podcast.name}: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                result.errors += 1
                result.error = result.error or e.message

            results.append(result)
            totals.add(result)

        # --------------------------------------------------
        # PHASE 3: FINALIZE RUN
        # --------------------------------------------------
        totals.api_calls_used = client.requests_made
        status = derive_status(totals.total_synced, totals.total_errors)
        await recorder.finalize(
            status,
            totals,
            error_message=f"{totals.total_errors} errors" if totals.total_errors else None
        )

        message = (
            f"Daily sync complete: {totals.total_synced} episodes synced from "
            f"{totals.podcasts_with_new_episodes} podcasts (checked {totals.total_podcasts_checked} total)"
        )
        if totals.total_skipped:
            message += f", {totals.total_skipped} already existed"
        if totals.total_errors:
            message += f", {totals.total_errors} errors"
        message += f". API calls: {totals.api_calls_used}"
        logger.info(message)

        return SyncSummary(
            success=True,
            message=message,
            trigger=trigger,
            run_id=recorder.run_id,
            status=status.value,
            results=results,
            summary=totals,
        )

    async def _probe(
        self,
        podcasts: List[PodcastRecord],
        probe_service: ProbeService,
        controller: FrequencyController,
        totals: SyncTotals
    ) -> List[PodcastRecord]:
        """
        Drop podcasts the probe does not confirm as having new episodes.

        Dropped podcasts still get an empty check recorded, so their
        schedule moves forward.
        """
        logger.info("Using batch probe to identify podcasts with new episodes")
        confirmed: List[PodcastRecord] = []

        for start in range(0, len(podcasts), PROBE_BATCH_SIZE):
            if start > 0:
                await self.clock.sleep(self.probe_delay_seconds)

            batch = podcasts[start:start + PROBE_BATCH_SIZE]
            probed = await probe_service.probe([p.podcast_id for p in batch])

            for podcast in batch:
                if probed.get(podcast.podcast_id):
                    confirmed.append(podcast)
                    continue
                try:
                    await controller.advance(podcast, had_new=False)
                except PersistenceError as e:
                    logger.error(
                        f"Failed to advance schedule for {podcast.name}: {e.message}",
                        extra={"error_context": e.to_dict()}
                    )
                    totals.total_errors += 1

        logger.info(f"Batch probe found {len(confirmed)} podcasts with new episodes")
        return confirmed

    async def _fail_run(self, recorder: SyncRunRecorder, totals: SyncTotals, error_text: str):
        """Best-effort close of a failed run. If this fails the row stays RUNNING."""
        try:
            await self.db.rollback()
            await recorder.finalize(SyncRunStatus.FAILED, totals, error_message=error_text)
        except Exception:
            logger.exception(
                f"Could not mark sync run {recorder.run_id} as failed; "
                f"it will stay in running state"
            )
