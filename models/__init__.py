"""
SQLAlchemy ORM models for database tables.

Models:
    base: Base declarative class and shared enums (ContentType, DataType,
          RecordSource, RunMode, RunStatus)
    media_record: Every stored output record with its JSON payload
    harvest_run: Harvest execution tracking and metrics
    checkpoint: Named checkpoint slot for resumable runs

Database Schema:
    JSON columns use JSONB on PostgreSQL and plain JSON on other
    backends, so the same models work against SQLite in tests.

Usage:
    from models import MediaRecord, HarvestRun, HarvestCheckpoint
    from models.base import DataType, RecordSource

Relationships:
    - HarvestRun → MediaRecord (one-to-many tracking)
"""

from models.base import Base, ContentType, DataType, RecordSource, RunMode, RunStatus
from models.media_record import MediaRecord
from models.harvest_run import HarvestRun
from models.checkpoint import HarvestCheckpoint

__all__ = [
    "Base",
    "ContentType",
    "DataType",
    "RecordSource",
    "RunMode",
    "RunStatus",
    "MediaRecord",
    "HarvestRun",
    "HarvestCheckpoint",
]
