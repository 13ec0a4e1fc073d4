"""
Health check endpoint with database, checkpoint and last run status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, text
from api.dependencies import get_db
from schemas.api import HealthCheckResponse, CheckpointInfo, HarvestRunSummary
from models.checkpoint import HarvestCheckpoint
from models.harvest_run import HarvestRun
from models.base import RunStatus
from core.config import settings
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Saved checkpoint (only while an interrupted run can be resumed)
    - Most recent harvest run
    """
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    checkpoint = None
    last_run = None
    status = "healthy"

    if db_connected:
        try:
            result = await db.execute(
                select(HarvestCheckpoint).where(HarvestCheckpoint.slot == settings.CHECKPOINT_SLOT)
            )
            row = result.scalar_one_or_none()
            if row is not None:
                checkpoint = CheckpointInfo.model_validate(row)

            result = await db.execute(
                select(HarvestRun).order_by(HarvestRun.started_at.desc()).limit(1)
            )
            run = result.scalar_one_or_none()
            if run is not None:
                last_run = HarvestRunSummary.model_validate(run)
                if run.status == RunStatus.FAILED:
                    status = "degraded"
        except Exception as e:
            logger.error(f"Failed to fetch harvest state: {str(e)}")
            status = "degraded"

    return HealthCheckResponse(
        status=status,
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        checkpoint=checkpoint,
        last_run=last_run
    )
