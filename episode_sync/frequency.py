"""
Adaptive check-frequency ladder.

A podcast that produced new episodes is rechecked after 24 hours. With
adaptive mode on, quiet podcasts back off to 48 hours after 7 consecutive
empty checks and to 72 hours after 14. Every outcome moves next_check_at
forward, so a podcast that keeps failing can never stay due.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from core.clock import Clock
from schemas.records import PodcastRecord
from models.base import FREQUENCY_LADDER
import logging

logger = logging.getLogger(__name__)

BASE_FREQUENCY_HOURS = FREQUENCY_LADDER[0]

# (empty checks threshold, frequency hours), highest threshold first
ESCALATION_STEPS = (
    (14, FREQUENCY_LADDER[2]),
    (7, FREQUENCY_LADDER[1]),
)


@dataclass(frozen=True)
class ScheduleUpdate:
    check_frequency_hours: int
    consecutive_empty_checks: int
    next_check_at: datetime
    last_synced_at: Optional[datetime] = None


def next_schedule(
    frequency_hours: int,
    empty_checks: int,
    had_new: bool,
    adaptive_enabled: bool,
    now: datetime
) -> ScheduleUpdate:
    """Compute the schedule that follows one check outcome."""
    if had_new:
        return ScheduleUpdate(
            check_frequency_hours=BASE_FREQUENCY_HOURS,
            consecutive_empty_checks=0,
            next_check_at=now + timedelta(hours=BASE_FREQUENCY_HOURS),
            last_synced_at=now,
        )

    new_empty_checks = empty_checks + 1
    new_frequency = frequency_hours

    if adaptive_enabled:
        for threshold, hours in ESCALATION_STEPS:
            if new_empty_checks >= threshold:
                new_frequency = hours
                break

    return ScheduleUpdate(
        check_frequency_hours=new_frequency,
        consecutive_empty_checks=new_empty_checks,
        next_check_at=now + timedelta(hours=new_frequency),
    )


class FrequencyController:
    """Sole writer of podcast schedule fields"""

    def __init__(self, repository, clock: Clock, adaptive_enabled: bool):
        self.repository = repository
        self.clock = clock
        self.adaptive_enabled = adaptive_enabled

    async def advance(self, podcast: PodcastRecord, had_new: bool) -> ScheduleUpdate:
        """
        Recompute and persist the podcast's schedule.

        Raises:
            PersistenceError: The schedule write failed
        """
        update = next_schedule(
            frequency_hours=podcast.check_frequency_hours,
            empty_checks=podcast.consecutive_empty_checks,
            had_new=had_new,
            adaptive_enabled=self.adaptive_enabled,
            now=self.clock.now(),
        )

        await self.repository.update_schedule(
            podcast.id,
            check_frequency_hours=update.check_frequency_hours,
            consecutive_empty_checks=update.consecutive_empty_checks,
            next_check_at=update.next_check_at,
            last_synced_at=update.last_synced_at,
        )

        if update.check_frequency_hours != podcast.check_frequency_hours:
            logger.info(
                f"Podcast {podcast.name}: check frequency "
                f"{podcast.check_frequency_hours}h -> {update.check_frequency_hours}h "
                f"({update.consecutive_empty_checks} empty checks)"
            )
        return update
