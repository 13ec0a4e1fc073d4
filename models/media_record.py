from sqlalchemy import Column, String, BigInteger, Enum, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base, BigIntegerPK, JSONType, DataType, RecordSource


class MediaRecord(Base):
    """
    One stored output record (content or any enrichment dimension).

    Design Decisions:
    - payload keeps the full record exactly as emitted
    - (data_type, source, content_type, external_id) is unique so
      re-processing a page after a resume overwrites instead of duplicating
    - external_id is the TMDb id of the primary item (content id for
      extras, collection id for collections, person id for people)
    """
    __tablename__ = "media_records"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)

    # Record identification
    data_type = Column(Enum(DataType), nullable=False, index=True)
    source = Column(Enum(RecordSource), nullable=False, index=True)
    content_type = Column(String(20), nullable=False, index=True)
    external_id = Column(String(64), nullable=False)
    title = Column(String(500), nullable=True, index=True)

    # Record body
    payload = Column(JSONType, nullable=False)
    fetched_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    # Tracking
    harvest_run_id = Column(BigInteger, ForeignKey("harvest_runs.id"), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    harvest_run = relationship("HarvestRun", back_populates="records")

    __table_args__ = (
        Index(
            "uq_media_record_identity",
            "data_type", "source", "content_type", "external_id",
            unique=True,
        ),
    )
