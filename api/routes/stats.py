"""
Harvest statistics endpoint
"""
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from api.dependencies import get_db
from api.middleware import new_request_id
from schemas.api import StatsResponse, HarvestRunSummary
from models.harvest_run import HarvestRun
from models.media_record import MediaRecord
from models.base import RunStatus
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


def _enum_key(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    request: Request,
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get harvest statistics.

    Returns:
    - Record counts overall and per data type, source and content type
    - Recent harvest runs
    """
    request_id = getattr(request.state, "request_id", None) or new_request_id()
    logger.info(f"[{request_id}] GET /stats")

    total_records = (await db.execute(select(func.count()).select_from(MediaRecord))).scalar() or 0

    by_data_type = await db.execute(
        select(MediaRecord.data_type, func.count()).group_by(MediaRecord.data_type)
    )
    by_source = await db.execute(
        select(MediaRecord.source, func.count()).group_by(MediaRecord.source)
    )
    by_content_type = await db.execute(
        select(MediaRecord.content_type, func.count()).group_by(MediaRecord.content_type)
    )

    total_runs = (await db.execute(select(func.count()).select_from(HarvestRun))).scalar() or 0

    avg_duration = (await db.execute(
        select(func.avg(HarvestRun.duration_seconds)).where(
            and_(
                HarvestRun.status.in_([RunStatus.SUCCESS, RunStatus.PARTIAL]),
                HarvestRun.duration_seconds.isnot(None)
            )
        )
    )).scalar()

    recent_runs_result = await db.execute(
        select(HarvestRun).order_by(HarvestRun.started_at.desc()).limit(limit)
    )
    recent_runs = [HarvestRunSummary.model_validate(run) for run in recent_runs_result.scalars().all()]

    logger.info(f"[{request_id}] Stats: {total_records} records, {total_runs} runs")

    return StatsResponse(
        timestamp=datetime.utcnow(),
        total_records=total_records,
        records_by_data_type={_enum_key(key): count for key, count in by_data_type.all()},
        records_by_source={_enum_key(key): count for key, count in by_source.all()},
        records_by_content_type={key: count for key, count in by_content_type.all()},
        total_runs=total_runs,
        recent_runs=recent_runs,
        avg_run_duration_seconds=round(avg_duration, 2) if avg_duration else None,
        request_id=request_id
    )
