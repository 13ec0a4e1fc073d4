from sqlalchemy import Column, String, Enum, DateTime, Float, Integer, Text, Index, Boolean, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from models.base import Base, BigIntegerPK, JSONType, RunMode, RunStatus


class HarvestRun(Base):
    """
    Tracks metadata for each harvest invocation.

    Purpose:
    - Audit trail of all runs (including interrupted ones)
    - Final mode and API failure count per run
    - Record counts for the stats endpoint
    """
    __tablename__ = "harvest_runs"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    run_id = Column(Uuid(as_uuid=True), default=uuid.uuid4, unique=True, nullable=False, index=True)

    # Run metadata
    status = Column(Enum(RunStatus), default=RunStatus.RUNNING, nullable=False, index=True)
    initial_mode = Column(Enum(RunMode), nullable=False)
    final_mode = Column(Enum(RunMode), nullable=True)
    resumed = Column(Boolean, default=False)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    contents_collected = Column(Integer, default=0)
    extra_items_collected = Column(Integer, default=0)
    items_failed = Column(Integer, default=0)
    api_failures = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)

    # Input snapshot (API key removed)
    config_snapshot = Column(JSONType, nullable=True)
    checkpoint_slot = Column(String(100), nullable=True)

    records = relationship("MediaRecord", back_populates="harvest_run")

    __table_args__ = (
        Index("idx_harvest_run_status", "status", "started_at"),
    )
