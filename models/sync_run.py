from sqlalchemy import Column, BigInteger, Enum, DateTime, Float, Integer, Text, Index
from models.base import Base, SyncRunStatus, SyncTrigger
from core.clock import utcnow


class SyncRun(Base):
    """
    Audit record for one execution of the sync orchestrator.

    Lifecycle:
    - Inserted as RUNNING before any upstream call
    - Updated exactly once to COMPLETED, PARTIAL or FAILED
    - A row left in RUNNING means the process died mid-run and needs a human
    """
    __tablename__ = "episode_sync_runs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    trigger = Column(Enum(SyncTrigger), nullable=False, index=True)
    status = Column(Enum(SyncRunStatus), default=SyncRunStatus.RUNNING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    podcasts_checked = Column(Integer, default=0, nullable=False)
    podcasts_with_new_episodes = Column(Integer, default=0, nullable=False)
    episodes_synced = Column(Integer, default=0, nullable=False)
    episodes_failed = Column(Integer, default=0, nullable=False)
    episodes_skipped = Column(Integer, default=0, nullable=False)
    api_calls_made = Column(Integer, default=0, nullable=False)

    # Error tracking
    error_message = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_sync_run_status_started", "status", "started_at"),
    )
