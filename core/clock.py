"""
Clock abstraction used for timestamps and request pacing.

The orchestrator and syncer never call ``datetime`` or ``asyncio.sleep``
directly; they go through a Clock so tests can run without real delays.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
import asyncio


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock(ABC):
    """Source of time and courtesy delays"""

    @abstractmethod
    def now(self) -> datetime:
        pass

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        pass


class SystemClock(Clock):
    """Wall clock backed by asyncio.sleep"""

    def now(self) -> datetime:
        return utcnow()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
