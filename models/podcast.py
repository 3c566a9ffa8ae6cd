from sqlalchemy import Column, BigInteger, String, Boolean, Enum, DateTime, Integer, Index
from sqlalchemy.orm import relationship
from models.base import Base, PodcastStatus
from core.clock import utcnow


class Podcast(Base):
    """
    A podcast tracked for new episodes.

    Schedule fields (check_frequency_hours, consecutive_empty_checks,
    last_synced_at, next_check_at) are written only by the frequency
    controller. A freshly added podcast is due immediately.
    """
    __tablename__ = "podcasts"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    # Podscan identifier
    podcast_id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(500), nullable=False)

    status = Column(Enum(PodcastStatus), default=PodcastStatus.ACTIVE, nullable=False, index=True)
    is_paused = Column(Boolean, default=False, nullable=False)

    # Schedule
    check_frequency_hours = Column(Integer, default=24, nullable=False)
    consecutive_empty_checks = Column(Integer, default=0, nullable=False)
    last_synced_at = Column(DateTime, nullable=True)
    next_check_at = Column(DateTime, nullable=False, default=utcnow)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    episodes = relationship("Episode", back_populates="podcast")

    __table_args__ = (
        Index("idx_podcast_due", "status", "is_paused", "next_check_at"),
    )
