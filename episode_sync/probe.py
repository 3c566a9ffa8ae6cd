"""
Batched "has anything new" probe.

One upstream call answers for up to 50 podcasts, which lets the orchestrator
skip the per-podcast listing call for everything that has been quiet. The
probe is a cost heuristic only: on any failure it answers with nothing, and
the podcasts involved are simply checked again on a later run.
"""

from typing import Dict, Sequence
from episode_sync.extractors.podscan_client import PodscanClient
from core.exceptions import UpstreamRequestError
import logging

logger = logging.getLogger(__name__)

PROBE_BATCH_SIZE = 50


class ProbeService:
    """Fail-open wrapper around PodscanClient.batch_probe"""

    def __init__(self, client: PodscanClient):
        self.client = client

    async def probe(self, podcast_ids: Sequence[str]) -> Dict[str, bool]:
        """
        Probe a batch of Podscan podcast ids.

        Returns:
            Mapping podcast_id -> has_new_episodes. Ids missing from the
            mapping are unconfirmed; the whole mapping is empty on failure.
        """
        if not podcast_ids:
            return {}
        if len(podcast_ids) > PROBE_BATCH_SIZE:
            raise ValueError(
                f"Probe accepts at most {PROBE_BATCH_SIZE} podcasts, got {len(podcast_ids)}"
            )

        try:
            results = await self.client.batch_probe(list(podcast_ids))
        except UpstreamRequestError as e:
            logger.error(
                f"Batch probe failed for {len(podcast_ids)} podcasts: {e.message}",
                extra={"error_context": e.to_dict()}
            )
            return {}

        probed: Dict[str, bool] = {}
        for result in results:
            podcast_id = result.get("podcast_id")
            if podcast_id:
                probed[str(podcast_id)] = result.get("has_new_episodes") is True

        logger.debug(
            f"Probed {len(podcast_ids)} podcasts, "
            f"{sum(probed.values())} report new episodes"
        )
        return probed
