"""
Transform Podscan episode payloads into validated insert records
"""

from typing import Dict, Any
from schemas.records import EpisodeCreate
import re

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")

SLUG_MAX_LENGTH = 100


def generate_slug(title: str) -> str:
    """
    URL slug for an episode title.

    Lowercase, collapse every run of characters outside [a-z0-9] into a
    single "-", trim leading/trailing "-", then cut to 100 characters.
    A title made only of symbols yields an empty slug.
    """
    slug = _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH]


class EpisodeNormalizer:
    """
    Map a bulk-download payload onto the episodes schema.

    Field mapping:
    - episode_id -> episode_id (natural key)
    - episode_guid -> episode_guid
    - episode_title -> title, slug
    - episode_description -> description
    - episode_audio_url / episode_image_url -> audio_url / image_url
    - episode_duration / episode_word_count -> duration / word_count
    - episode_transcript -> transcript
    - episode_transcript_word_level_timestamps -> transcript_word_timestamps
    - posted_at -> published_at
    """

    def normalize(self, payload: Dict[str, Any], podcast_pk: int) -> EpisodeCreate:
        """
        Returns:
            Validated EpisodeCreate

        Raises:
            ValueError: Missing title or natural key (pydantic ValidationError included)
        """
        title = payload.get("episode_title")
        if not isinstance(title, str):
            raise ValueError(f"Episode {payload.get('episode_id')} has no title")

        return EpisodeCreate(
            podcast_id=podcast_pk,
            episode_id=payload.get("episode_id"),
            episode_guid=payload.get("episode_guid"),
            title=title,
            slug=generate_slug(title),
            description=payload.get("episode_description"),
            audio_url=payload.get("episode_audio_url"),
            image_url=payload.get("episode_image_url"),
            duration=payload.get("episode_duration"),
            word_count=payload.get("episode_word_count"),
            transcript=payload.get("episode_transcript"),
            transcript_word_timestamps=payload.get("episode_transcript_word_level_timestamps"),
            published_at=payload.get("posted_at"),
        )
