from sqlalchemy import JSON
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# ENUMS
# ============================================================================

class PodcastStatus(str, enum.Enum):
    """Tracked podcast lifecycle"""
    ACTIVE = "active"
    PAUSED = "paused"
    INACTIVE = "inactive"


class SyncRunStatus(str, enum.Enum):
    """Sync run status"""
    RUNNING = "running"
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class SyncTrigger(str, enum.Enum):
    """What started a sync run"""
    SCHEDULED = "scheduled"
    MANUAL = "manual"


# Check-frequency ladder in hours
FREQUENCY_LADDER = (24, 48, 72)
