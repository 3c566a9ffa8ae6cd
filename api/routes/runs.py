"""
Sync run history endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from api.dependencies import get_db, verify_api_key
from schemas.api import SyncRunResponse, SyncRunListResponse
from models.sync_run import SyncRun
from models.base import SyncRunStatus
from typing import Optional
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Runs"], dependencies=[Depends(verify_api_key)])


@router.get("/runs", response_model=SyncRunListResponse)
async def list_runs(
    limit: int = Query(20, ge=1, le=100, description="Number of recent runs to return"),
    status: Optional[SyncRunStatus] = Query(None, description="Filter by run status"),
    db: AsyncSession = Depends(get_db)
):
    """Recent sync runs, newest first"""
    count_query = select(func.count()).select_from(SyncRun)
    query = select(SyncRun).order_by(SyncRun.started_at.desc(), SyncRun.id.desc()).limit(limit)

    if status is not None:
        count_query = count_query.where(SyncRun.status == status)
        query = query.where(SyncRun.status == status)

    total_runs = (await db.execute(count_query)).scalar() or 0
    runs = (await db.execute(query)).scalars().all()

    return SyncRunListResponse(
        runs=[SyncRunResponse.model_validate(run) for run in runs],
        total_runs=total_runs
    )


@router.get("/runs/{run_id}", response_model=SyncRunResponse)
async def get_run(run_id: int, db: AsyncSession = Depends(get_db)):
    run = await db.get(SyncRun, run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Sync run {run_id} not found")
    return SyncRunResponse.model_validate(run)
