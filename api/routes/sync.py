"""
Manual sync trigger endpoints
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from core.exceptions import PersistenceError
from episode_sync.runner import SyncOrchestrator
from api.dependencies import get_orchestrator, verify_api_key
from models.base import PodcastStatus, SyncTrigger
from schemas.api import SyncSummary, ErrorResponse
import uuid
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Sync"], dependencies=[Depends(verify_api_key)])


def _persistence_failure(request_id: str, e: PersistenceError) -> JSONResponse:
    logger.error(
        f"[{request_id}] Could not record sync run: {e.message}",
        extra={"error_context": e.to_dict()}
    )
    body = ErrorResponse(error="Could not record sync run", detail=e.message)
    return JSONResponse(status_code=500, content=body.model_dump(mode="json"))


@router.post(
    "/sync",
    response_model=SyncSummary,
    responses={500: {"model": ErrorResponse}}
)
async def trigger_sync(
    request: Request,
    trigger: SyncTrigger = Query(SyncTrigger.MANUAL, description="Recorded trigger kind"),
    force: bool = Query(False, description="Ignore next_check_at and check every active podcast"),
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
):
    """
    Run one sync pass now and return its summary.

    A disabled sync returns status "disabled" with no run recorded.
    """
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] POST /sync - trigger={trigger.value}, force={force}")

    try:
        return await orchestrator.run(trigger=trigger, force=force)
    except PersistenceError as e:
        return _persistence_failure(request_id, e)


@router.post(
    "/sync/podcasts/{podcast_pk}",
    response_model=SyncSummary,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def trigger_podcast_sync(
    podcast_pk: int,
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
):
    """Sync a single podcast immediately, regardless of its schedule."""
    request_id = getattr(request.state, "request_id", f"req_{uuid.uuid4().hex[:12]}")
    logger.info(f"[{request_id}] POST /sync/podcasts/{podcast_pk}")

    podcast = await orchestrator.repository.get(podcast_pk)
    if podcast is None:
        body = ErrorResponse(error="Podcast not found", detail=f"No podcast with id {podcast_pk}")
        return JSONResponse(status_code=404, content=body.model_dump(mode="json"))

    if podcast.is_paused or podcast.status != PodcastStatus.ACTIVE:
        body = ErrorResponse(
            error="Podcast is paused",
            detail=f"Podcast {podcast_pk} is {podcast.status.value}; resume it before syncing"
        )
        return JSONResponse(status_code=409, content=body.model_dump(mode="json"))

    try:
        return await orchestrator.run(
            trigger=SyncTrigger.MANUAL, force=True, podcast_ids=[podcast_pk]
        )
    except PersistenceError as e:
        return _persistence_failure(request_id, e)
