"""
Per-podcast incremental sync: listing -> dedup -> bulk fetch -> insert.

Dedup policy is scan-all-and-count: every id on the first listing page is
checked against the episodes table in one query and every known id counts
as skipped. Unlike stopping at the first known episode, this still picks
up new episodes that Podscan lists between already-stored ones.
"""

from typing import List, Dict, Any, Tuple
from episode_sync.extractors.podscan_client import PodscanClient
from episode_sync.loaders.episode_loader import EpisodeLoader
from episode_sync.transformers.episode_normalizer import EpisodeNormalizer
from schemas.records import PodcastRecord, PodcastSyncResult
from core.clock import Clock
from core.exceptions import SyncException, UpstreamRequestError
import logging

logger = logging.getLogger(__name__)

LISTING_PAGE_SIZE = 50
BULK_BATCH_SIZE = 50


class PodcastSyncer:
    """
    Sync one podcast and report counts.

    sync() never raises: listing failures, batch failures and per-episode
    failures all end up in the error count so one broken podcast cannot
    abort the rest of the run.
    """

    def __init__(
        self,
        client: PodscanClient,
        loader: EpisodeLoader,
        clock: Clock,
        batch_delay_seconds: float = 1.0
    ):
        self.client = client
        self.loader = loader
        self.clock = clock
        self.batch_delay_seconds = batch_delay_seconds
        self.normalizer = EpisodeNormalizer()

    async def sync(self, podcast: PodcastRecord) -> PodcastSyncResult:
        synced = 0
        errors = 0
        skipped = 0
        had_new = False
        error_message = None

        try:
            logger.info(f"Checking podcast: {podcast.name}")

            listing = await self.client.list_episodes(
                podcast.podcast_id, per_page=LISTING_PAGE_SIZE
            )
            listed_ids = _listed_episode_ids(listing)

            if not listed_ids:
                logger.info(f"No episodes found for {podcast.name}")
            else:
                known = await self.loader.existing_episode_ids(listed_ids)
                new_ids = [episode_id for episode_id in listed_ids if episode_id not in known]
                skipped = len(listed_ids) - len(new_ids)

                if not new_ids:
                    logger.info(f"No new episodes for {podcast.name}")
                else:
                    had_new = True
                    logger.info(f"Found {len(new_ids)} new episodes for {podcast.name}")

                    for start in range(0, len(new_ids), BULK_BATCH_SIZE):
                        if start > 0:
                            await self.clock.sleep(self.batch_delay_seconds)

                        batch_ids = new_ids[start:start + BULK_BATCH_SIZE]
                        batch_synced, batch_errors, batch_skipped = await self._sync_batch(
                            podcast, batch_ids
                        )
                        synced += batch_synced
                        errors += batch_errors
                        skipped += batch_skipped

            logger.info(
                f"Sync complete for {podcast.name}: "
                f"{synced} synced, {errors} errors, {skipped} skipped"
            )

        except SyncException as e:
            errors += 1
            error_message = e.message
            logger.error(
                f"Error syncing podcast {podcast.name}: {e.message}",
                extra={"error_context": e.to_dict()}
            )

        except Exception as e:
            errors += 1
            error_message = str(e)
            logger.exception(f"Unexpected error syncing podcast {podcast.name}")

        return PodcastSyncResult(
            podcast_id=podcast.id,
            podcast_name=podcast.name,
            synced=synced,
            errors=errors,
            skipped=skipped,
            had_new_episodes=had_new,
            error=error_message,
        )

    async def _sync_batch(
        self,
        podcast: PodcastRecord,
        batch_ids: List[str]
    ) -> Tuple[int, int, int]:
        """
        Bulk-fetch and insert one batch.

        Returns:
            (synced, errors, skipped) for this batch. A failed bulk call
            counts every id in the batch as an error.
        """
        try:
            payloads = await self.client.bulk_fetch(batch_ids)
        except UpstreamRequestError as e:
            logger.error(
                f"Bulk download failed for batch of {len(batch_ids)} ({podcast.name}): {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return 0, len(batch_ids), 0

        if len(payloads) < len(batch_ids):
            logger.warning(
                f"Bulk download returned {len(payloads)} of {len(batch_ids)} "
                f"requested episodes for {podcast.name}"
            )

        synced = 0
        errors = 0
        skipped = 0

        for payload in payloads:
            try:
                episode = self.normalizer.normalize(payload, podcast.id)
                inserted = await self.loader.insert(episode)
            except SyncException as e:
                errors += 1
                logger.error(
                    f"Error inserting episode: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                continue
            except Exception as e:
                errors += 1
                logger.error(f"Error processing episode {payload.get('episode_id')}: {e}")
                continue

            if inserted:
                synced += 1
            else:
                skipped += 1

        return synced, errors, skipped


def _listed_episode_ids(listing: List[Dict[str, Any]]) -> List[str]:
    """Episode ids in listing order, without blanks or repeats."""
    ids = [str(episode["episode_id"]) for episode in listing if episode.get("episode_id")]
    return list(dict.fromkeys(ids))
