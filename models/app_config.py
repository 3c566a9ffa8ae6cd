from sqlalchemy import Column, String, Text, DateTime
from models.base import Base
from core.clock import utcnow


class AppConfig(Base):
    """Operational key/value settings, editable without a redeploy."""
    __tablename__ = "app_config"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
