"""
Unit tests for the sync orchestrator
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from episode_sync.runner import SyncOrchestrator, derive_status
from episode_sync.run_log import SyncRunRecorder
from core.runtime_config import MappingConfigProvider
from core.exceptions import PersistenceError
from models.base import SyncRunStatus, SyncTrigger
from models.podcast import Podcast
from models.sync_run import SyncRun


async def fetch_runs(session):
    result = await session.execute(
        select(SyncRun).order_by(SyncRun.id).execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def fetch_podcast(session, podcast_id):
    result = await session.execute(
        select(Podcast)
        .where(Podcast.podcast_id == podcast_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


def make_orchestrator(db_session, config_provider, clock, podscan):
    return SyncOrchestrator(
        db_session,
        config_provider=config_provider,
        clock=clock,
        client_factory=lambda config: podscan.client(),
        podcast_delay_seconds=0.5,
        batch_delay_seconds=1.0,
        probe_delay_seconds=0.5,
    )


class TestDeriveStatus:

    @pytest.mark.parametrize("synced,errors,expected", [
        (0, 0, SyncRunStatus.COMPLETED),
        (10, 0, SyncRunStatus.COMPLETED),
        (10, 2, SyncRunStatus.PARTIAL),
        (0, 2, SyncRunStatus.FAILED),
    ])
    def test_status(self, synced, errors, expected):
        assert derive_status(synced, errors) == expected


class TestSyncOrchestrator:

    @pytest.mark.asyncio
    async def test_disabled_records_no_run(self, db_session, sync_config_values, clock, podscan, add_podcast):
        await add_podcast("pd_1")
        sync_config_values["DAILY_SYNC_ENABLED"] = "false"
        orchestrator = make_orchestrator(
            db_session, MappingConfigProvider(sync_config_values), clock, podscan
        )

        summary = await orchestrator.run(trigger=SyncTrigger.MANUAL)

        assert summary.success is False
        assert summary.status == "disabled"
        assert summary.run_id is None
        assert await fetch_runs(db_session) == []
        assert podscan.requests == []

    @pytest.mark.asyncio
    async def test_nothing_due_is_completed(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_1", next_check_at=clock.now() + timedelta(hours=3))
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)

        summary = await orchestrator.run()

        assert summary.success is True
        assert summary.status == "completed"
        assert summary.message == "No podcasts due for checking"
        assert summary.summary.total_podcasts_checked == 0

        runs = await fetch_runs(db_session)
        assert len(runs) == 1
        assert runs[0].status == SyncRunStatus.COMPLETED
        assert runs[0].trigger == SyncTrigger.SCHEDULED
        assert runs[0].api_calls_made == 0

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_run(self, db_session, sync_config_values, clock, podscan, add_podcast):
        await add_podcast("pd_1")
        del sync_config_values["PODSCAN_API_KEY"]
        orchestrator = make_orchestrator(
            db_session, MappingConfigProvider(sync_config_values), clock, podscan
        )

        summary = await orchestrator.run()

        assert summary.success is False
        assert summary.status == "failed"
        assert "PODSCAN_API_KEY" in summary.error
        assert podscan.requests == []

        runs = await fetch_runs(db_session)
        assert runs[0].status == SyncRunStatus.FAILED
        assert "PODSCAN_API_KEY" in runs[0].error_message
        assert runs[0].completed_at is not None

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_run(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_1")
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)
        orchestrator.repository.fetch_due = AsyncMock(side_effect=RuntimeError("query exploded"))

        summary = await orchestrator.run()

        assert summary.success is False
        assert summary.status == "failed"
        assert summary.error == "query exploded"

        runs = await fetch_runs(db_session)
        assert len(runs) == 1
        assert runs[0].status == SyncRunStatus.FAILED
        assert runs[0].error_message == "query exploded"

    @pytest.mark.asyncio
    async def test_fail_run_leaves_row_running_when_finalize_fails(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_1")
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)
        orchestrator.repository.fetch_due = AsyncMock(side_effect=RuntimeError("boom"))

        with patch.object(
            SyncRunRecorder, "finalize",
            AsyncMock(side_effect=PersistenceError("run log unreachable"))
        ):
            summary = await orchestrator.run()

        assert summary.success is False
        assert summary.status == "failed"
        assert summary.error == "boom"

        runs = await fetch_runs(db_session)
        assert len(runs) == 1
        assert runs[0].status == SyncRunStatus.RUNNING
        assert runs[0].completed_at is None

    @pytest.mark.asyncio
    async def test_run_open_failure_propagates(self, config_provider, clock, podscan):
        session = AsyncMock()
        session.add = lambda obj: None
        session.commit.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        orchestrator = make_orchestrator(session, config_provider, clock, podscan)

        with pytest.raises(PersistenceError):
            await orchestrator.run()
        assert podscan.requests == []

    @pytest.mark.asyncio
    async def test_podcasts_synced_sequentially_with_delay(self, db_session, config_provider, clock, podscan, add_podcast):
        for name in ["pd_a", "pd_b", "pd_c"]:
            await add_podcast(name)
        podscan.listings["pd_b"] = ["ep_1", "ep_2"]
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)

        summary = await orchestrator.run(trigger=SyncTrigger.MANUAL)

        assert summary.status == "completed"
        assert summary.trigger == "manual"
        assert summary.summary.total_podcasts_checked == 3
        assert summary.summary.podcasts_with_new_episodes == 1
        assert summary.summary.total_synced == 2
        assert clock.sleeps == [0.5, 0.5]

        # 3 listings + 1 bulk download
        assert summary.summary.api_calls_used == 4
        assert len(podscan.requests) == 4
        runs = await fetch_runs(db_session)
        assert runs[0].api_calls_made == 4
        assert runs[0].episodes_synced == 2
        assert runs[0].trigger == SyncTrigger.MANUAL

    @pytest.mark.asyncio
    async def test_failing_podcast_still_advances(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_ok")
        await add_podcast("pd_broken")
        podscan.listings["pd_ok"] = ["ep_1"]
        podscan.fail[podscan.list_path("pd_broken")] = 500
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)

        summary = await orchestrator.run()

        assert summary.status == "partial"
        assert summary.summary.total_errors == 1
        assert summary.summary.total_synced == 1

        broken = await fetch_podcast(db_session, "pd_broken")
        assert broken.consecutive_empty_checks == 1
        assert broken.next_check_at > clock.now()

    @pytest.mark.asyncio
    async def test_all_errors_nothing_synced_is_failed(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_1")
        podscan.fail[podscan.list_path("pd_1")] = 401
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)

        summary = await orchestrator.run()

        assert summary.success is True
        assert summary.status == "failed"
        assert summary.results[0].errors == 1
        runs = await fetch_runs(db_session)
        assert runs[0].status == SyncRunStatus.FAILED

    @pytest.mark.asyncio
    async def test_invalid_podcast_row_does_not_abort_run(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_good")
        await add_podcast("")
        podscan.listings["pd_good"] = ["ep_1"]
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)

        summary = await orchestrator.run()

        assert [r.podcast_name for r in summary.results] == ["Podcast pd_good"]
        assert summary.summary.total_synced == 1
        assert summary.summary.total_errors == 1
        assert summary.status == "partial"
        assert (await fetch_podcast(db_session, "pd_good")).next_check_at > clock.now()

        runs = await fetch_runs(db_session)
        assert runs[0].status == SyncRunStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_only_invalid_rows_due_is_failed(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("")
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)

        summary = await orchestrator.run()

        assert summary.success is True
        assert summary.status == "failed"
        assert summary.summary.total_errors == 1
        assert (await fetch_runs(db_session))[0].status == SyncRunStatus.FAILED

    @pytest.mark.asyncio
    async def test_schedule_write_failure_counts_error(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_1")
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)
        orchestrator.repository.update_schedule = AsyncMock(
            side_effect=PersistenceError("schedule write failed")
        )

        summary = await orchestrator.run()

        assert summary.results[0].errors == 1
        assert summary.results[0].error == "schedule write failed"
        assert summary.summary.total_errors == 1
        assert summary.status == "failed"

    @pytest.mark.asyncio
    async def test_probe_prunes_unconfirmed_podcasts(self, db_session, sync_config_values, clock, podscan, add_podcast):
        ids = [f"pd_{i:02d}" for i in range(12)]
        for offset, podcast_id in enumerate(ids):
            await add_podcast(podcast_id, next_check_at=clock.now() - timedelta(minutes=60 - offset))
        podscan.probe = {"pd_00": True, "pd_01": False}
        podscan.listings["pd_00"] = ["ep_new"]
        sync_config_values["BATCH_PROBE_ENABLED"] = "true"
        orchestrator = make_orchestrator(
            db_session, MappingConfigProvider(sync_config_values), clock, podscan
        )

        summary = await orchestrator.run()

        assert [r.podcast_name for r in summary.results] == ["Podcast pd_00"]
        assert summary.summary.total_podcasts_checked == 12
        assert summary.summary.total_synced == 1
        assert len(podscan.requests_to("/batch_probe_for_latest_episodes")) == 1
        assert len(podscan.requests_to("/episodes")) == 1

        quiet = await fetch_podcast(db_session, "pd_01")
        unconfirmed = await fetch_podcast(db_session, "pd_07")
        for podcast in (quiet, unconfirmed):
            assert podcast.consecutive_empty_checks == 1
            assert podcast.next_check_at > clock.now()

    @pytest.mark.asyncio
    async def test_probe_skipped_for_small_due_set(self, db_session, sync_config_values, clock, podscan, add_podcast):
        for i in range(10):
            await add_podcast(f"pd_{i}")
        sync_config_values["BATCH_PROBE_ENABLED"] = "true"
        orchestrator = make_orchestrator(
            db_session, MappingConfigProvider(sync_config_values), clock, podscan
        )

        summary = await orchestrator.run()

        assert len(summary.results) == 10
        assert podscan.requests_to("/batch_probe_for_latest_episodes") == []

    @pytest.mark.asyncio
    async def test_probe_failure_is_fail_open(self, db_session, sync_config_values, clock, podscan, add_podcast):
        for i in range(60):
            await add_podcast(f"pd_{i:02d}")
        podscan.fail["/api/v1/podcasts/batch_probe_for_latest_episodes"] = 429
        sync_config_values["BATCH_PROBE_ENABLED"] = "true"
        orchestrator = make_orchestrator(
            db_session, MappingConfigProvider(sync_config_values), clock, podscan
        )

        summary = await orchestrator.run()

        assert summary.status == "completed"
        assert summary.results == []
        assert summary.summary.api_calls_used == 2
        assert clock.sleeps == [0.5]
        podcast = await fetch_podcast(db_session, "pd_59")
        assert podcast.consecutive_empty_checks == 1

    @pytest.mark.asyncio
    async def test_max_podcasts_caps_selection(self, db_session, sync_config_values, clock, podscan, add_podcast):
        for i in range(5):
            await add_podcast(f"pd_{i}", next_check_at=clock.now() - timedelta(hours=10 - i))
        sync_config_values["MAX_PODCASTS_PER_SYNC"] = "2"
        orchestrator = make_orchestrator(
            db_session, MappingConfigProvider(sync_config_values), clock, podscan
        )

        summary = await orchestrator.run()

        assert [r.podcast_name for r in summary.results] == ["Podcast pd_0", "Podcast pd_1"]

    @pytest.mark.asyncio
    async def test_force_ignores_due_time(self, db_session, config_provider, clock, podscan, add_podcast):
        await add_podcast("pd_future", next_check_at=clock.now() + timedelta(days=2))
        orchestrator = make_orchestrator(db_session, config_provider, clock, podscan)

        summary = await orchestrator.run(trigger=SyncTrigger.MANUAL, force=True)

        assert summary.summary.total_podcasts_checked == 1
