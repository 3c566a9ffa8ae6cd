"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (PodcastStatus, SyncRunStatus, SyncTrigger)
    podcast: Tracked podcasts and their check schedule
    episode: Synced episodes, unique by Podscan episode_id
    sync_run: Audit trail of sync orchestrator executions
    app_config: Operational key/value settings

Usage:
    from models import Podcast, Episode, SyncRun
    from models.base import SyncRunStatus

Importing this package registers every table on Base.metadata, which is what
scripts/init_db.py and alembic/env.py rely on.
"""

from models.base import Base, PodcastStatus, SyncRunStatus, SyncTrigger, FREQUENCY_LADDER
from models.podcast import Podcast
from models.episode import Episode
from models.sync_run import SyncRun
from models.app_config import AppConfig

__all__ = [
    "Base",
    "PodcastStatus",
    "SyncRunStatus",
    "SyncTrigger",
    "FREQUENCY_LADDER",
    "Podcast",
    "Episode",
    "SyncRun",
    "AppConfig",
]
