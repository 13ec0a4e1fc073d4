"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from models.base import DataType, RecordSource, RunMode, RunStatus


# ============================================================================
# Health Check Schemas
# ============================================================================

class CheckpointInfo(BaseModel):
    """Saved harvest state, present only while a run is resumable"""
    slot: str
    state: Dict[str, Any]
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HarvestRunSummary(BaseModel):
    run_id: str
    status: RunStatus
    initial_mode: RunMode
    final_mode: Optional[RunMode] = None
    resumed: bool = False
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    contents_collected: int = 0
    extra_items_collected: int = 0
    items_failed: int = 0
    api_failures: int = 0
    error_message: Optional[str] = None

    class Config:
        from_attributes = True
        use_enum_values = True

    @validator("run_id", pre=True)
    def stringify_run_id(cls, v):
        return str(v)

    @validator("resumed", pre=True)
    def default_resumed(cls, v):
        return bool(v)

    @validator("contents_collected", "extra_items_collected", "items_failed", "api_failures", pre=True)
    def default_counters(cls, v):
        return v or 0


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    checkpoint: Optional[CheckpointInfo] = None
    last_run: Optional[HarvestRunSummary] = None
    # Declared after database_connected so the validator can read it
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Determine overall health status"""
        if not values.get("database_connected", False):
            return "unhealthy"
        return v or "healthy"

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "checkpoint": None,
                "last_run": {
                    "run_id": "550e8400-e29b-41d4-a716-446655440000",
                    "status": "success",
                    "initial_mode": "api",
                    "final_mode": "api",
                    "started_at": "2024-01-15T10:00:00Z",
                    "contents_collected": 5
                }
            }
        }


# ============================================================================
# Record Query Schemas
# ============================================================================

class MediaRecordResponse(BaseModel):
    """Stored harvest record"""
    id: int
    data_type: DataType
    source: RecordSource
    content_type: str
    external_id: str
    title: Optional[str] = None
    payload: Dict[str, Any]
    fetched_at: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "data_type": "content",
                "source": "tmdb_api",
                "content_type": "movie",
                "external_id": "550",
                "title": "Fight Club",
                "payload": {"tmdb_id": 550, "title": "Fight Club", "release_date": "1999-10-15"},
                "fetched_at": "2024-01-15T10:30:00Z",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z"
            }
        }


class PaginationMetadata(BaseModel):
    """Pagination metadata"""
    total_items: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool


class RecordsResponse(BaseModel):
    """Paginated records response"""
    items: List[MediaRecordResponse]
    pagination: PaginationMetadata
    filters_applied: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Statistics Schemas
# ============================================================================

class StatsResponse(BaseModel):
    """Statistics response model"""
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    total_records: int
    records_by_data_type: Dict[str, int]
    records_by_source: Dict[str, int]
    records_by_content_type: Dict[str, int]
    total_runs: int
    recent_runs: List[HarvestRunSummary] = Field(default_factory=list)
    avg_run_duration_seconds: Optional[float] = None
    request_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "timestamp": "2024-01-15T10:30:00Z",
                "total_records": 12,
                "records_by_data_type": {"content": 5, "credits": 5, "person": 2},
                "records_by_source": {"tmdb_api": 12},
                "records_by_content_type": {"movie": 10, "person": 2},
                "total_runs": 1,
                "avg_run_duration_seconds": 45.2
            }
        }


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
