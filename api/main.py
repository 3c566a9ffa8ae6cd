"""
FastAPI application initialization
"""

from typing import Optional
from fastapi import FastAPI
from api.routes import health, sync, runs, podcasts
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
from episode_sync.scheduler import SyncScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Podcast Episode Sync API",
    description="Incremental episode sync from Podscan with run history and podcast management",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Created on startup so importing the app never starts background jobs
scheduler: Optional[SyncScheduler] = None


# Include routers
app.include_router(health.router)
app.include_router(sync.router)
app.include_router(runs.router)
app.include_router(podcasts.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    global scheduler

    logger.info("Starting Podcast Episode Sync API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SCHEDULER_ENABLED:
        scheduler = SyncScheduler()
        scheduler.start()
    else:
        logger.info("Scheduler disabled; runs only start through POST /sync")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Podcast Episode Sync API")
    if scheduler is not None:
        scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Podcast Episode Sync API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "sync": "/sync",
            "runs": "/runs",
            "podcasts": "/podcasts"
        }
    }
