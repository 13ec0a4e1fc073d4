"""
Record retrieval endpoints with pagination and filtering
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, and_
from api.dependencies import get_db
from api.middleware import new_request_id
from schemas.api import RecordsResponse, MediaRecordResponse, PaginationMetadata, ErrorResponse
from models.media_record import MediaRecord
from models.base import DataType, RecordSource
from typing import Optional
import time
import math
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Records"])


@router.get("/records", response_model=RecordsResponse)
async def list_records(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=1000, description="Items per page"),
    data_type: Optional[DataType] = Query(None, description="Filter by record type"),
    content_type: Optional[str] = Query(None, description="Filter by content type (movie, tv, person)"),
    source: Optional[RecordSource] = Query(None, description="Filter by acquisition source"),
    search: Optional[str] = Query(None, description="Search in title"),
    db: AsyncSession = Depends(get_db)
):
    """
    Retrieve paginated and filtered harvested records.
    """
    start_time = time.time()
    request_id = getattr(request.state, "request_id", None) or new_request_id()

    logger.info(
        f"[{request_id}] GET /records - page={page}, page_size={page_size}, "
        f"filters: data_type={data_type}, content_type={content_type}, source={source}, search={search}"
    )

    filters = []
    if data_type:
        filters.append(MediaRecord.data_type == data_type)
    if content_type:
        filters.append(MediaRecord.content_type == content_type)
    if source:
        filters.append(MediaRecord.source == source)
    if search:
        filters.append(MediaRecord.title.ilike(f"%{search}%"))

    query = select(MediaRecord)
    count_query = select(func.count()).select_from(MediaRecord)
    if filters:
        query = query.where(and_(*filters))
        count_query = count_query.where(and_(*filters))

    total_items = (await db.execute(count_query)).scalar() or 0
    total_pages = math.ceil(total_items / page_size) if total_items > 0 else 0
    offset = (page - 1) * page_size

    query = query.order_by(MediaRecord.id.asc()).offset(offset).limit(page_size)
    result = await db.execute(query)
    items = [MediaRecordResponse.model_validate(record) for record in result.scalars().all()]

    api_latency_ms = (time.time() - start_time) * 1000
    logger.info(f"[{request_id}] Returned {len(items)} records ({api_latency_ms:.2f}ms)")

    return RecordsResponse(
        items=items,
        pagination=PaginationMetadata(
            current_page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        ),
        filters_applied={k: v for k, v in {
            "data_type": data_type.value if data_type else None,
            "content_type": content_type,
            "source": source.value if source else None,
            "search": search
        }.items() if v is not None}
    )


@router.get(
    "/records/{record_id}",
    response_model=MediaRecordResponse,
    responses={404: {"model": ErrorResponse}}
)
async def get_record(record_id: int, db: AsyncSession = Depends(get_db)):
    """Retrieve a single harvested record"""
    record = await db.get(MediaRecord, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Record {record_id} not found")
    return MediaRecordResponse.model_validate(record)
