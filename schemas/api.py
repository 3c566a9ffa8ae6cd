"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from models.base import PodcastStatus, SyncRunStatus, SyncTrigger
from schemas.records import PodcastSyncResult
from core.clock import utcnow


# ============================================================================
# Sync Summary Schemas
# ============================================================================

class SyncTotals(BaseModel):
    """Aggregate counts for one sync run"""
    total_podcasts_checked: int = 0
    podcasts_with_new_episodes: int = 0
    total_synced: int = 0
    total_errors: int = 0
    total_skipped: int = 0
    api_calls_used: int = 0

    def add(self, result: PodcastSyncResult):
        self.total_synced += result.synced
        self.total_errors += result.errors
        self.total_skipped += result.skipped
        if result.had_new_episodes:
            self.podcasts_with_new_episodes += 1


class SyncSummary(BaseModel):
    """
    Outcome of one "execute a sync pass" request.

    status is "disabled" when sync is switched off (no run recorded),
    otherwise the final status of the recorded run.
    """
    success: bool
    message: str
    trigger: SyncTrigger
    run_id: Optional[int] = None
    status: str
    results: List[PodcastSyncResult] = Field(default_factory=list)
    summary: SyncTotals = Field(default_factory=SyncTotals)
    error: Optional[str] = None

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "success": True,
                "message": "Daily sync complete: 2 episodes synced from 1 podcasts (checked 3 total), 48 already existed. API calls: 4",
                "trigger": "scheduled",
                "run_id": 42,
                "status": "completed",
                "results": [
                    {
                        "podcast_id": 7,
                        "podcast_name": "Example Show",
                        "synced": 2,
                        "errors": 0,
                        "skipped": 48,
                        "had_new_episodes": True
                    }
                ],
                "summary": {
                    "total_podcasts_checked": 3,
                    "podcasts_with_new_episodes": 1,
                    "total_synced": 2,
                    "total_errors": 0,
                    "total_skipped": 48,
                    "api_calls_used": 4
                }
            }
        }


# ============================================================================
# Run History Schemas
# ============================================================================

class SyncRunResponse(BaseModel):
    """A recorded sync run"""
    id: int
    trigger: SyncTrigger
    status: SyncRunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    podcasts_checked: int = 0
    podcasts_with_new_episodes: int = 0
    episodes_synced: int = 0
    episodes_failed: int = 0
    episodes_skipped: int = 0
    api_calls_made: int = 0
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True


class SyncRunListResponse(BaseModel):
    runs: List[SyncRunResponse]
    total_runs: int


# ============================================================================
# Podcast Schemas
# ============================================================================

class PodcastCreateRequest(BaseModel):
    """Start tracking a Podscan podcast"""
    podcast_id: str = Field(..., min_length=1, max_length=64, description="Podscan podcast id")
    name: str = Field(..., min_length=1, max_length=500)

    @validator("podcast_id", "name")
    def strip_value(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be empty after stripping")
        return v


class PodcastResponse(BaseModel):
    id: int
    podcast_id: str
    name: str
    status: PodcastStatus
    is_paused: bool
    check_frequency_hours: int
    consecutive_empty_checks: int
    last_synced_at: Optional[datetime] = None
    next_check_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        use_enum_values = True


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=utcnow)
    database_connected: bool
    last_run: Optional[SyncRunResponse] = None
    stuck_runs: int = Field(0, description="Runs still marked running, needing manual attention")


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
