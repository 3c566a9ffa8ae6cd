"""
Pydantic schemas for data validation and serialization.

Schemas:
    records: Typed records at the store boundary (PodcastRecord,
        EpisodeCreate) and the per-podcast PodcastSyncResult
    api: API request/response models (SyncSummary, SyncRunResponse,
        PodcastResponse, HealthCheckResponse)

Usage:
    from schemas.records import PodcastRecord, EpisodeCreate
    from schemas.api import SyncSummary, SyncTotals

Validation:
    EpisodeCreate coerces upstream payload quirks (numeric ids, null
    counters, aware timestamps) before anything reaches the database.
    PodcastRecord snaps stored frequencies onto the 24/48/72 ladder.
"""

__all__ = [
    "PodcastRecord",
    "EpisodeCreate",
    "PodcastSyncResult",
    "SyncSummary",
    "SyncTotals",
    "SyncRunResponse",
    "PodcastResponse",
    "HealthCheckResponse",
]
