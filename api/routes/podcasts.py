"""
Tracked podcast management endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, verify_api_key
from episode_sync.repository import PodcastRepository
from schemas.api import PodcastCreateRequest, PodcastResponse
from models.base import PodcastStatus
from core.clock import utcnow
from core.exceptions import PersistenceError
from typing import List, Optional
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/podcasts", tags=["Podcasts"], dependencies=[Depends(verify_api_key)])


@router.get("", response_model=List[PodcastResponse])
async def list_podcasts(
    status_filter: Optional[PodcastStatus] = Query(None, alias="status", description="Filter by status"),
    db: AsyncSession = Depends(get_db)
):
    podcasts = await PodcastRepository(db).list_podcasts(status=status_filter)
    return [PodcastResponse.model_validate(p.model_dump()) for p in podcasts]


@router.post("", response_model=PodcastResponse, status_code=status.HTTP_201_CREATED)
async def create_podcast(
    payload: PodcastCreateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Start tracking a Podscan podcast.

    The podcast is due immediately, so the next sync pass picks it up.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    repository = PodcastRepository(db)

    if await repository.get_by_podscan_id(payload.podcast_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Podcast {payload.podcast_id} is already tracked"
        )

    try:
        podcast = await repository.create(payload.podcast_id, payload.name, now=utcnow())
    except PersistenceError as e:
        # Lost a race with a concurrent create of the same podcast_id
        logger.warning(
            f"[{request_id}] Could not track podcast {payload.podcast_id}: {e.message}",
            extra={"error_context": e.to_dict()}
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Podcast {payload.podcast_id} could not be created: {e.message}"
        )
    logger.info(f"[{request_id}] Tracking podcast {podcast.podcast_id} ({podcast.name})")
    return PodcastResponse.model_validate(podcast.model_dump())


async def _set_paused(podcast_pk: int, paused: bool, db: AsyncSession) -> PodcastResponse:
    podcast = await PodcastRepository(db).set_paused(podcast_pk, paused)
    if podcast is None:
        raise HTTPException(status_code=404, detail=f"Podcast {podcast_pk} not found")
    return PodcastResponse.model_validate(podcast.model_dump())


@router.post("/{podcast_pk}/pause", response_model=PodcastResponse)
async def pause_podcast(podcast_pk: int, db: AsyncSession = Depends(get_db)):
    """Exclude a podcast from scheduled and manual runs"""
    return await _set_paused(podcast_pk, True, db)


@router.post("/{podcast_pk}/resume", response_model=PodcastResponse)
async def resume_podcast(podcast_pk: int, db: AsyncSession = Depends(get_db)):
    return await _set_paused(podcast_pk, False, db)
