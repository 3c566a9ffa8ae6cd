import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from core.config import settings
from core.runtime_config import CONFIG_DEFAULTS
# Importing the package registers every model on Base.metadata
from models import Base, AppConfig

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def seed_app_config(session: AsyncSession):
    """Insert defaults for config keys that are not set yet. Existing values are kept."""
    result = await session.execute(select(AppConfig.key))
    existing = set(result.scalars().all())

    for key, default in CONFIG_DEFAULTS.items():
        if key.value in existing or default is None:
            continue
        session.add(AppConfig(key=key.value, value=default))
        logger.info(f"Seeded {key.value}={default}")

    await session.commit()


async def init_database():
    logger.info("Connecting to database...")
    engine = create_async_engine(settings.DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        logger.info("Creating tables...")
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created successfully.")

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        await seed_app_config(session)

    logger.info("PODSCAN_API_KEY must be set in app_config before the first sync")
    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(init_database())
