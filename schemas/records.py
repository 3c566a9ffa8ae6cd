"""
Typed records exchanged with the persistence layer.

Rows are validated here, at the store boundary, so code downstream of the
repository and loader never touches ORM instances or loosely-shaped dicts.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, Any
from datetime import datetime, timezone
from models.base import PodcastStatus, FREQUENCY_LADDER


class PodcastRecord(BaseModel):
    """Snapshot of a podcast row as read at the start of a run"""

    id: int
    podcast_id: str = Field(..., min_length=1)
    name: str
    status: PodcastStatus = PodcastStatus.ACTIVE
    is_paused: bool = False
    check_frequency_hours: int = 24
    consecutive_empty_checks: int = 0
    last_synced_at: Optional[datetime] = None
    next_check_at: Optional[datetime] = None

    @validator("check_frequency_hours", pre=True)
    def snap_to_ladder(cls, v):
        """Map any stored frequency onto the 24/48/72 ladder"""
        if v is None:
            return FREQUENCY_LADDER[0]
        v = int(v)
        for step in FREQUENCY_LADDER:
            if v <= step:
                return step
        return FREQUENCY_LADDER[-1]

    @validator("consecutive_empty_checks", pre=True)
    def non_negative_counter(cls, v):
        if v is None:
            return 0
        return max(int(v), 0)

    class Config:
        from_attributes = True


class EpisodeCreate(BaseModel):
    """
    Validated insert payload for the episodes table.

    Ensures:
    - The natural key is present
    - Numeric fields are non-negative integers
    - published_at is stored as naive UTC
    """

    podcast_id: int
    episode_id: str = Field(..., min_length=1, max_length=64)
    episode_guid: Optional[str] = None

    title: str
    slug: str = Field(..., max_length=100)
    description: str = ""

    audio_url: Optional[str] = None
    image_url: Optional[str] = None
    duration: int = Field(0, ge=0)
    word_count: int = Field(0, ge=0)

    transcript: Optional[str] = None
    transcript_word_timestamps: Optional[Any] = None

    published_at: Optional[datetime] = None

    @validator("episode_id", pre=True)
    def coerce_episode_id(cls, v):
        if v is None:
            return v
        return str(v).strip()

    @validator("description", pre=True)
    def default_description(cls, v):
        return v or ""

    @validator("duration", "word_count", pre=True)
    def default_zero(cls, v):
        if v in (None, ""):
            return 0
        return int(float(v))

    @validator("published_at")
    def to_naive_utc(cls, v):
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class PodcastSyncResult(BaseModel):
    """Outcome of syncing one podcast in one run. Never persisted on its own."""

    podcast_id: int
    podcast_name: str
    synced: int = 0
    errors: int = 0
    skipped: int = 0
    had_new_episodes: bool = False
    error: Optional[str] = None
