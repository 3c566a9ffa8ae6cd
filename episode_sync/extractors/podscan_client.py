"""
Podscan API client with bearer authentication and structured errors.

This module provides the three upstream calls the sync engine needs:
- Episode listing for one podcast, newest first
- Bulk download of full episodes (transcripts, word-level timestamps)
- Batch probe for "anything new" across many podcasts

No call is retried here. A failed request raises and the caller decides
whether it costs an episode, a batch or a podcast; the next scheduled run
is the retry mechanism.
"""

import httpx
from typing import List, Dict, Any, Optional, Sequence
from core.exceptions import UpstreamRequestError, UpstreamAuthenticationError, RateLimitError
import logging

logger = logging.getLogger(__name__)


class PodscanClient:
    """
    Thin async wrapper over the Podscan REST API.

    Attributes:
        api_url: Base URL, e.g. https://podscan.fm/api/v1
        requests_made: Number of HTTP requests issued, including failed ones
        rate_limit_remaining: Last X-RateLimit-Remaining value seen
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.requests_made = 0
        self.rate_limit_remaining: Optional[int] = None
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "PodscanClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Issue one request and return the decoded JSON body.

        Raises:
            RateLimitError: HTTP 429
            UpstreamRequestError: Any other non-2xx, transport error or bad JSON
        """
        url = f"{self.api_url}{path}"
        self.requests_made += 1

        try:
            response = await self._client.request(
                method,
                url,
                headers=self._headers,
                params=params,
                json=json_body,
                timeout=self.timeout
            )
        except httpx.TimeoutException as e:
            raise UpstreamRequestError(
                f"Request to {path} timed out",
                context={"api_url": url, "timeout": self.timeout},
                original_exception=e
            )
        except httpx.HTTPError as e:
            raise UpstreamRequestError(
                f"Network error calling {path}",
                context={"api_url": url},
                original_exception=e
            )

        remaining = _parse_int_header(response.headers.get("X-RateLimit-Remaining"))
        if remaining is not None:
            self.rate_limit_remaining = remaining

        if response.status_code == 429:
            retry_after = _parse_int_header(response.headers.get("Retry-After"))
            logger.warning(f"Podscan rate limit hit on {path} (retry after: {retry_after})")
            raise RateLimitError(
                f"Podscan API rate limit exceeded on {path}",
                context={"api_url": url},
                retry_after=retry_after,
                rate_limit_remaining=remaining
            )

        if response.status_code in (401, 403):
            raise UpstreamAuthenticationError(
                f"Podscan API rejected credentials on {path}",
                context={"api_url": url},
                status_code=response.status_code
            )

        if not response.is_success:
            raise UpstreamRequestError(
                f"Podscan API request to {path} failed with status {response.status_code}",
                context={"api_url": url, "response_body": response.text[:500]},
                status_code=response.status_code
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamRequestError(
                f"Failed to parse JSON response from {path}",
                context={"api_url": url, "response_body": response.text[:500]},
                original_exception=e
            )

    async def list_episodes(
        self,
        podcast_id: str,
        page: int = 1,
        per_page: int = 50
    ) -> List[Dict[str, Any]]:
        """List a podcast's episodes, newest first, including partially processed ones."""
        params = {
            "page": page,
            "per_page": per_page,
            "order_by": "posted_at",
            "order_dir": "desc",
            "show_only_fully_processed": "false",
        }
        data = await self._request("GET", f"/podcasts/{podcast_id}/episodes", params=params)
        return _records(data, "episodes")

    async def bulk_fetch(self, episode_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Download full episode payloads, with transcripts and word-level timestamps."""
        body = {
            "episode_ids": ",".join(episode_ids),
            "show_full_podcast": False,
            "word_level_timestamps": True,
        }
        data = await self._request("POST", "/episodes/bulk", json_body=body)
        return _records(data, "episodes")

    async def batch_probe(self, podcast_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Ask which podcasts have episodes newer than Podscan's last report."""
        body = {"podcast_ids": ",".join(podcast_ids)}
        data = await self._request(
            "POST", "/podcasts/batch_probe_for_latest_episodes", json_body=body
        )
        return _records(data, "results")


def _records(data: Any, key: str) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        records = data.get(key) or []
        return [r for r in records if isinstance(r, dict)]
    return []


def _parse_int_header(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
