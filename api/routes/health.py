"""
Health check endpoint with database and sync run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, SyncRunResponse
from models.sync_run import SyncRun
from models.base import SyncRunStatus
from core.clock import utcnow
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])

# A run still RUNNING after this long is assumed abandoned
STUCK_RUN_THRESHOLD = timedelta(hours=6)


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - The most recent sync run
    - Count of runs stuck in running state
    """
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    if not db_connected:
        return HealthCheckResponse(status="unhealthy", database_connected=False)

    last_run = None
    stuck_runs = 0

    try:
        result = await db.execute(
            select(SyncRun).order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(1)
        )
        run = result.scalar_one_or_none()
        if run is not None:
            last_run = SyncRunResponse.model_validate(run)

        stuck_result = await db.execute(
            select(func.count()).select_from(SyncRun).where(
                SyncRun.status == SyncRunStatus.RUNNING,
                SyncRun.started_at < utcnow() - STUCK_RUN_THRESHOLD
            )
        )
        stuck_runs = stuck_result.scalar() or 0
    except Exception as e:
        logger.error(f"Failed to fetch sync run status: {str(e)}")

    degraded = stuck_runs > 0 or (
        last_run is not None and last_run.status == SyncRunStatus.FAILED.value
    )

    return HealthCheckResponse(
        status="degraded" if degraded else "healthy",
        database_connected=True,
        last_run=last_run,
        stuck_runs=stuck_runs
    )
