from sqlalchemy import Column, BigInteger, String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from models.base import Base, JSONType
from core.clock import utcnow


class Episode(Base):
    """
    A synced podcast episode.

    episode_id is the Podscan-assigned identifier and the only dedup key:
    inserting an episode_id that already exists is a no-op, which is what
    makes re-running a sync safe.
    """
    __tablename__ = "episodes"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    podcast_id = Column(BigInteger, ForeignKey("podcasts.id"), nullable=False, index=True)

    # Natural key
    episode_id = Column(String(64), nullable=False, unique=True, index=True)
    episode_guid = Column(String(500), nullable=True)

    title = Column(String(1000), nullable=False)
    slug = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")

    audio_url = Column(String(2048), nullable=True)
    image_url = Column(String(2048), nullable=True)
    duration = Column(Integer, nullable=False, default=0)
    word_count = Column(Integer, nullable=False, default=0)

    transcript = Column(Text, nullable=True)
    transcript_word_timestamps = Column(JSONType, nullable=True)

    published_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    podcast = relationship("Podcast", back_populates="episodes")
