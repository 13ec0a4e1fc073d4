import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from sqlalchemy.ext.asyncio import AsyncEngine
from core.database import build_engine
from core.logging import setup_logging
from models.base import Base
# Import all models to ensure they are registered
from models.media_record import MediaRecord
from models.harvest_run import HarvestRun
from models.checkpoint import HarvestCheckpoint

logger = logging.getLogger(__name__)


async def create_tables(engine: AsyncEngine):
    async with engine.begin() as conn:
        logger.info("Creating tables...")
        await conn.run_sync(Base.metadata.create_all)
        logger.info("Tables created successfully.")


async def init_database():
    logger.info("Connecting to database...")
    engine = build_engine()
    try:
        await create_tables(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
