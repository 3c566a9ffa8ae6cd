"""
Incremental episode sync from the Podscan API.

This package contains every component of a sync pass:

Modules:
    runner: SyncOrchestrator, owns the run lifecycle and the due set
    syncer: Per-podcast listing -> dedup -> bulk fetch -> insert
    probe: Batched "has anything new" check, fail-open
    frequency: Adaptive 24/48/72 hour check schedule
    repository: Podcast table reads and schedule writes
    run_log: SyncRun open/finalize bookkeeping
    scheduler: APScheduler integration for scheduled runs

Subpackages:
    extractors: Podscan HTTP client
    transformers: Payload -> EpisodeCreate normalization
    loaders: Idempotent episode inserts

Flow:
    1. Select due podcasts (active, not paused, next_check_at <= now)
    2. Optionally probe them in batches of 50 and drop the quiet ones
    3. Sync each remaining podcast in turn, pausing between podcasts
    4. Advance every touched podcast's schedule
    5. Finalize the SyncRun with totals and a derived status

    A failure inside one podcast is counted and the run moves on. Only
    an unexpected error outside the per-podcast loop fails the run.

Usage:
    from episode_sync.runner import SyncOrchestrator

    async with async_session_maker() as session:
        summary = await SyncOrchestrator(session).run(trigger=SyncTrigger.MANUAL)
        print(summary.message)
"""

__all__ = [
    "SyncOrchestrator",
    "SyncScheduler",
    "PodcastSyncer",
    "ProbeService",
    "FrequencyController",
    "PodcastRepository",
    "SyncRunRecorder",
    "PodscanClient",
    "EpisodeNormalizer",
    "EpisodeLoader",
]
