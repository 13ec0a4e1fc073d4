from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime
from models.base import Base, JSONType


class HarvestCheckpoint(Base):
    """
    Durable cursor for resumable harvests.

    Purpose:
    - Resume a run from the (type, query, page) it was interrupted at
    - Skip (type, query) pairs that were already finished
    - Remember a permanent API failover across restarts

    Design:
    - One row per named slot
    - state holds the serialized checkpoint; a missing row means
      "no run in progress"
    """
    __tablename__ = "harvest_checkpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slot = Column(String(100), nullable=False, unique=True, index=True)
    state = Column(JSONType, nullable=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
