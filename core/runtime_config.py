"""
Operational configuration read from the app_config table.

Every key the sync engine recognizes is listed in ConfigKey with its default
in CONFIG_DEFAULTS. Lookups go through a ConfigProvider so the orchestrator
can be handed a database-backed provider in production and a plain mapping
in tests or one-off scripts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Mapping, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from models.app_config import AppConfig
from core.exceptions import ConfigMissingError
import enum
import logging

logger = logging.getLogger(__name__)


class ConfigKey(str, enum.Enum):
    """Recognized app_config keys"""
    DAILY_SYNC_ENABLED = "DAILY_SYNC_ENABLED"
    PODSCAN_API_KEY = "PODSCAN_API_KEY"
    PODSCAN_API_URL = "PODSCAN_API_URL"
    BATCH_PROBE_ENABLED = "BATCH_PROBE_ENABLED"
    MAX_PODCASTS_PER_SYNC = "MAX_PODCASTS_PER_SYNC"
    ADAPTIVE_FREQUENCY_ENABLED = "ADAPTIVE_FREQUENCY_ENABLED"


# None means the key is required
CONFIG_DEFAULTS: Dict[ConfigKey, Optional[str]] = {
    ConfigKey.DAILY_SYNC_ENABLED: "false",
    ConfigKey.PODSCAN_API_KEY: None,
    ConfigKey.PODSCAN_API_URL: "https://podscan.fm/api/v1",
    ConfigKey.BATCH_PROBE_ENABLED: "false",
    ConfigKey.MAX_PODCASTS_PER_SYNC: "500",
    ConfigKey.ADAPTIVE_FREQUENCY_ENABLED: "false",
}


class ConfigProvider(ABC):
    """Single key -> value lookup. Absent key returns None."""

    @abstractmethod
    async def get(self, key: ConfigKey) -> Optional[str]:
        pass

    async def get_bool(self, key: ConfigKey) -> bool:
        """Only the exact string "true" enables a flag."""
        value = await self.get(key)
        if value is None:
            value = CONFIG_DEFAULTS[key]
        return value == "true"


class DatabaseConfigProvider(ConfigProvider):
    """Reads values from the app_config table"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def get(self, key: ConfigKey) -> Optional[str]:
        result = await self.db.execute(
            select(AppConfig.value).where(AppConfig.key == key.value)
        )
        value = result.scalar_one_or_none()
        # Empty strings count as unset
        return value or None


class MappingConfigProvider(ConfigProvider):
    """Serves values from an in-memory mapping"""

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self.values = dict(values or {})

    async def get(self, key: ConfigKey) -> Optional[str]:
        return self.values.get(key.value) or None


@dataclass(frozen=True)
class SyncConfig:
    """Resolved operational settings for one sync run"""
    api_key: str
    api_url: str
    batch_probe_enabled: bool
    max_podcasts_per_sync: int
    adaptive_frequency_enabled: bool

    @classmethod
    async def load(cls, provider: ConfigProvider) -> "SyncConfig":
        """
        Resolve every key, applying documented defaults.

        Raises:
            ConfigMissingError: PODSCAN_API_KEY is not configured
        """
        api_key = await provider.get(ConfigKey.PODSCAN_API_KEY)
        if not api_key:
            raise ConfigMissingError(
                "PODSCAN_API_KEY not configured in app_config table",
                context={"config_key": ConfigKey.PODSCAN_API_KEY.value}
            )

        api_url = (
            await provider.get(ConfigKey.PODSCAN_API_URL)
            or CONFIG_DEFAULTS[ConfigKey.PODSCAN_API_URL]
        )

        raw_max = await provider.get(ConfigKey.MAX_PODCASTS_PER_SYNC)
        default_max = int(CONFIG_DEFAULTS[ConfigKey.MAX_PODCASTS_PER_SYNC])
        try:
            max_podcasts = int(raw_max) if raw_max is not None else default_max
        except ValueError:
            logger.warning(
                f"Invalid MAX_PODCASTS_PER_SYNC value {raw_max!r}, using {default_max}"
            )
            max_podcasts = default_max
        if max_podcasts < 1:
            max_podcasts = default_max

        return cls(
            api_key=api_key,
            api_url=api_url.rstrip("/"),
            batch_probe_enabled=await provider.get_bool(ConfigKey.BATCH_PROBE_ENABLED),
            max_podcasts_per_sync=max_podcasts,
            adaptive_frequency_enabled=await provider.get_bool(ConfigKey.ADAPTIVE_FREQUENCY_ENABLED),
        )
