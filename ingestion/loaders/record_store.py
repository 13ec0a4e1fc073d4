"""
Store harvested records with upsert logic (idempotency)
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.dialects import postgresql, sqlite
from models.base import RecordSource
from models.media_record import MediaRecord
from schemas.records import HarvestRecord
from core.exceptions import StoreError
import logging

logger = logging.getLogger(__name__)

UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class RecordStore(ABC):
    """Durable sink for output records"""

    @abstractmethod
    async def save(self, records: Sequence[HarvestRecord]) -> int:
        """
        Store all records of one item atomically.

        Returns:
            Number of records written
        """
        pass


class SQLRecordStore(RecordStore):
    """
    Store records in the media_records table.

    Ensures:
    - No duplicate rows when a page is re-processed after a resume
    - All records of one item land in one transaction
    """

    def __init__(self, session_maker: async_sessionmaker, harvest_run_id: Optional[int] = None):
        self.session_maker = session_maker
        self.harvest_run_id = harvest_run_id

    def _row_values(self, record: HarvestRecord) -> dict:
        payload = record.to_payload()
        return {
            "data_type": record.data_type,
            "source": RecordSource(record.source),
            "content_type": record.content_type,
            "external_id": record.external_id,
            "title": (record.title or "")[:500] or None,
            "payload": payload,
            "fetched_at": datetime.utcnow(),
            "harvest_run_id": self.harvest_run_id,
            "updated_at": datetime.utcnow(),
        }

    async def save(self, records: Sequence[HarvestRecord]) -> int:
        if not records:
            return 0

        try:
            async with self.session_maker() as session:
                insert = UPSERT_DIALECTS.get(session.bind.dialect.name)
                if insert is None:
                    raise StoreError(
                        f"Unsupported database dialect: {session.bind.dialect.name}",
                        context={"dialect": session.bind.dialect.name}
                    )

                for record in records:
                    values = self._row_values(record)
                    stmt = insert(MediaRecord).values(**values)

                    # Unique identity: (data_type, source, content_type, external_id)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=["data_type", "source", "content_type", "external_id"],
                        set_={
                            "title": stmt.excluded.title,
                            "payload": stmt.excluded.payload,
                            "fetched_at": stmt.excluded.fetched_at,
                            "harvest_run_id": stmt.excluded.harvest_run_id,
                            "updated_at": stmt.excluded.updated_at,
                        }
                    )
                    await session.execute(stmt)

                await session.commit()

        except StoreError:
            raise

        except Exception as e:
            raise StoreError(
                "Failed to store records",
                context={
                    "data_types": [record.data_type.value for record in records],
                    "external_id": records[0].external_id,
                },
                original_exception=e
            )

        logger.debug(
            f"Stored {len(records)} records for "
            f"{records[0].content_type} {records[0].external_id}"
        )
        return len(records)

