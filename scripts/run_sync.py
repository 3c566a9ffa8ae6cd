"""
Script to run one episode sync pass outside the API process
"""

import argparse
import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from core.config import settings
from core.exceptions import PersistenceError
from core.logging import setup_logging
from episode_sync.runner import SyncOrchestrator
from models.base import SyncTrigger

setup_logging()
logger = logging.getLogger(__name__)


async def run_sync(trigger: SyncTrigger, force: bool, podcast_ids) -> int:
    """Run one pass and return a process exit code"""

    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=False,
    )

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    try:
        async with AsyncSessionLocal() as session:
            orchestrator = SyncOrchestrator(session)
            summary = await orchestrator.run(
                trigger=trigger, force=force, podcast_ids=podcast_ids
            )

        logger.info(summary.message)
        for result in summary.results:
            if result.errors:
                logger.warning(
                    f"{result.podcast_name}: {result.errors} errors"
                    + (f" ({result.error})" if result.error else "")
                )

        if summary.status == "disabled":
            return 0
        return 0 if summary.success and summary.status != "failed" else 1

    except PersistenceError as e:
        logger.error(f"Could not record sync run: {e}")
        return 1
    finally:
        await engine.dispose()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run one episode sync pass")
    parser.add_argument(
        "--trigger",
        choices=[t.value for t in SyncTrigger],
        default=SyncTrigger.MANUAL.value,
        help="Trigger kind recorded on the run"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore next_check_at and check every active podcast"
    )
    parser.add_argument(
        "--podcast",
        type=int,
        action="append",
        dest="podcast_ids",
        help="Internal podcast id to sync (repeatable)"
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    sys.exit(asyncio.run(run_sync(SyncTrigger(args.trigger), args.force, args.podcast_ids)))
