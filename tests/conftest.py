"""
Pytest configuration and fixtures
"""

import json
import pytest
import pytest_asyncio
import httpx
from datetime import datetime, timedelta
from typing import AsyncGenerator, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from core.clock import Clock
from core.runtime_config import MappingConfigProvider
from episode_sync.extractors.podscan_client import PodscanClient
from models.base import Base, PodcastStatus
from models.podcast import Podcast

# In-memory SQLite shared across the session through a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_API_URL = "https://podscan.test/api/v1"

NOW = datetime(2025, 1, 15, 12, 0, 0)


class FakeClock(Clock):
    """Deterministic clock; sleep() records the delay and advances time"""

    def __init__(self, now: datetime = NOW):
        self._now = now
        self.sleeps: List[float] = []

    def now(self) -> datetime:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now += timedelta(seconds=seconds)

    def advance(self, **kwargs):
        self._now += timedelta(**kwargs)


class FakePodscan:
    """
    Scriptable stand-in for the Podscan API, served through httpx.MockTransport.

    listings: podcast_id -> listed episode ids, newest first
    probe: podcast_id -> has_new_episodes
    fail: path -> status code to answer with
    """

    def __init__(self):
        self.listings: Dict[str, List[str]] = {}
        self.probe: Dict[str, bool] = {}
        self.fail: Dict[str, int] = {}
        self.missing_titles: set = set()
        self.requests: List[httpx.Request] = []

    def list_path(self, podcast_id: str) -> str:
        return f"/api/v1/podcasts/{podcast_id}/episodes"

    def episode_payload(self, episode_id: str) -> dict:
        payload = {
            "episode_id": episode_id,
            "episode_guid": f"guid-{episode_id}",
            "episode_title": f"Episode {episode_id}",
            "episode_description": f"Description for {episode_id}",
            "episode_audio_url": f"https://cdn.test/{episode_id}.mp3",
            "episode_duration": 1800,
            "episode_word_count": 4200,
            "episode_transcript": "hello world",
            "episode_transcript_word_level_timestamps": [
                {"word": "hello", "start": 0.0, "end": 0.4},
                {"word": "world", "start": 0.5, "end": 0.9},
            ],
            "posted_at": "2025-01-14T08:30:00Z",
        }
        if episode_id in self.missing_titles:
            payload["episode_title"] = None
        return payload

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.fail:
            return httpx.Response(self.fail[path], json={"error": "scripted failure"})

        if request.method == "GET" and path.endswith("/episodes"):
            podcast_id = path.split("/")[-2]
            ids = self.listings.get(podcast_id, [])
            return httpx.Response(
                200,
                json={"episodes": [{"episode_id": i} for i in ids]},
                headers={"X-RateLimit-Remaining": "999"}
            )

        if request.method == "POST" and path.endswith("/episodes/bulk"):
            body = json.loads(request.content)
            ids = [i for i in body["episode_ids"].split(",") if i]
            return httpx.Response(
                200, json={"episodes": [self.episode_payload(i) for i in ids]}
            )

        if request.method == "POST" and path.endswith("/batch_probe_for_latest_episodes"):
            body = json.loads(request.content)
            ids = body["podcast_ids"].split(",")
            results = [
                {"podcast_id": i, "has_new_episodes": self.probe[i]}
                for i in ids if i in self.probe
            ]
            return httpx.Response(200, json={"results": results})

        return httpx.Response(404, json={"error": "not found"})

    def client(self) -> PodscanClient:
        return PodscanClient(
            api_url=TEST_API_URL,
            api_key="test-key",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        )

    def requests_to(self, suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def podscan() -> FakePodscan:
    return FakePodscan()


@pytest.fixture
def sync_config_values() -> Dict[str, str]:
    """Operational config with sync on, probing and adaptive frequency off"""
    return {
        "DAILY_SYNC_ENABLED": "true",
        "PODSCAN_API_KEY": "test-key",
        "PODSCAN_API_URL": TEST_API_URL,
        "BATCH_PROBE_ENABLED": "false",
        "MAX_PODCASTS_PER_SYNC": "500",
        "ADAPTIVE_FREQUENCY_ENABLED": "false",
    }


@pytest.fixture
def config_provider(sync_config_values) -> MappingConfigProvider:
    return MappingConfigProvider(sync_config_values)


@pytest.fixture
def add_podcast(db_session):
    """Factory inserting a podcast row; due at NOW unless told otherwise"""

    async def _add(
        podcast_id: str,
        name: Optional[str] = None,
        next_check_at: datetime = NOW - timedelta(minutes=5),
        **fields
    ) -> Podcast:
        podcast = Podcast(
            podcast_id=podcast_id,
            name=name or f"Podcast {podcast_id}",
            status=fields.pop("status", PodcastStatus.ACTIVE),
            is_paused=fields.pop("is_paused", False),
            check_frequency_hours=fields.pop("check_frequency_hours", 24),
            consecutive_empty_checks=fields.pop("consecutive_empty_checks", 0),
            next_check_at=next_check_at,
            created_at=NOW - timedelta(days=30),
            updated_at=NOW - timedelta(days=30),
            **fields
        )
        db_session.add(podcast)
        await db_session.commit()
        return podcast

    return _add
