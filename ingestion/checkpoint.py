"""
Resumable checkpoint state machine.

The checkpoint is the only state that survives a restart. It is persisted
(and awaited) at every transition: entering a content type, entering a
query, finishing a listing page, failing over to web scraping, entering a
person query. A persisted page cursor therefore never runs ahead of the
pages actually processed.

Phases:
    idle → type-active → query-active → page-in-progress → ... →
    people-active → done
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Tuple, Sequence
import enum
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import async_sessionmaker
from models.base import ContentType
from models.checkpoint import HarvestCheckpoint
from core.exceptions import CheckpointError
import logging

logger = logging.getLogger(__name__)

# Stored in place of a query when a pair runs in discover mode
DISCOVER_KEY = "<discover>"


def query_key(query: Optional[str]) -> str:
    return DISCOVER_KEY if query is None else query


def query_label(query: Optional[str]) -> str:
    return f'query "{query}"' if query is not None else "discover mode"


class HarvestPhase(str, enum.Enum):
    IDLE = "idle"
    TYPE_ACTIVE = "type-active"
    QUERY_ACTIVE = "query-active"
    PAGE_IN_PROGRESS = "page-in-progress"
    PEOPLE_ACTIVE = "people-active"
    DONE = "done"


class Checkpoint(BaseModel):
    """Durable cursor, serialized with camelCase keys"""

    current_type: Optional[str] = None
    current_query: Optional[str] = None
    current_page: int = 1
    collected_for_current_query: int = 0
    api_available: bool = True
    people_current_query: Optional[str] = None
    people_page: int = 1
    people_collected: int = 0
    collected_total: int = 0

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    def to_state(self) -> dict:
        return self.model_dump(by_alias=True)


# ============================================================================
# Persistence
# ============================================================================

class CheckpointStore(ABC):
    """A single named slot holding a Checkpoint or nothing"""

    @abstractmethod
    async def load(self) -> Optional[Checkpoint]:
        pass

    @abstractmethod
    async def save(self, checkpoint: Checkpoint) -> None:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass


class SQLCheckpointStore(CheckpointStore):
    """Checkpoint slot stored in the harvest_checkpoints table"""

    def __init__(self, session_maker: async_sessionmaker, slot: str):
        self.session_maker = session_maker
        self.slot = slot

    async def load(self) -> Optional[Checkpoint]:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(HarvestCheckpoint).where(HarvestCheckpoint.slot == self.slot)
                )
                row = result.scalar_one_or_none()
        except Exception as e:
            raise CheckpointError(
                "Failed to load checkpoint",
                context={"slot": self.slot, "operation": "load"},
                original_exception=e
            )

        if row is None or not row.state:
            return None
        return Checkpoint.model_validate(row.state)

    async def save(self, checkpoint: Checkpoint) -> None:
        try:
            async with self.session_maker() as session:
                result = await session.execute(
                    select(HarvestCheckpoint).where(HarvestCheckpoint.slot == self.slot)
                )
                row = result.scalar_one_or_none()
                if row is None:
                    session.add(HarvestCheckpoint(slot=self.slot, state=checkpoint.to_state()))
                else:
                    row.state = checkpoint.to_state()
                await session.commit()
        except Exception as e:
            raise CheckpointError(
                "Failed to save checkpoint",
                context={"slot": self.slot, "operation": "save"},
                original_exception=e
            )

    async def clear(self) -> None:
        try:
            async with self.session_maker() as session:
                await session.execute(
                    delete(HarvestCheckpoint).where(HarvestCheckpoint.slot == self.slot)
                )
                await session.commit()
        except Exception as e:
            raise CheckpointError(
                "Failed to clear checkpoint",
                context={"slot": self.slot, "operation": "clear"},
                original_exception=e
            )


# ============================================================================
# State machine
# ============================================================================

class CheckpointTracker:
    """
    Owns the in-memory checkpoint and persists it at every transition.

    Every mutating method awaits the store before returning, so callers
    never make progress the store has not recorded.
    """

    def __init__(self, store: CheckpointStore, checkpoint: Optional[Checkpoint] = None):
        self.store = store
        self.checkpoint = checkpoint or Checkpoint()
        self.resumed = checkpoint is not None
        self._done = False

    @classmethod
    async def load(cls, store: CheckpointStore) -> "CheckpointTracker":
        checkpoint = await store.load()
        if checkpoint is not None:
            logger.info(
                f"Resuming from saved state: type {checkpoint.current_type}, "
                f"query {checkpoint.current_query}, page {checkpoint.current_page}"
            )
        return cls(store, checkpoint)

    @property
    def phase(self) -> HarvestPhase:
        cp = self.checkpoint
        if self._done:
            return HarvestPhase.DONE
        if cp.people_current_query is not None:
            return HarvestPhase.PEOPLE_ACTIVE
        if cp.current_query is not None:
            if cp.current_page > 1 or cp.collected_for_current_query > 0:
                return HarvestPhase.PAGE_IN_PROGRESS
            return HarvestPhase.QUERY_ACTIVE
        if cp.current_type is not None:
            return HarvestPhase.TYPE_ACTIVE
        return HarvestPhase.IDLE

    async def persist(self) -> None:
        await self.store.save(self.checkpoint)

    # ------------------------------------------------------------------
    # Content pairs
    # ------------------------------------------------------------------

    @property
    def content_finished(self) -> bool:
        """People collection only starts once every content pair is done"""
        return self.checkpoint.people_current_query is not None

    def resume_index(self, pairs: Sequence[Tuple[ContentType, Optional[str]]]) -> int:
        """
        Index of the first pair to run.

        Pairs before the checkpointed one are treated as complete. A
        checkpoint that matches none of the pairs (changed input) is
        discarded and the run starts from the first pair.
        """
        cp = self.checkpoint
        if self.content_finished:
            return len(pairs)
        if cp.current_type is None:
            return 0

        for index, (content_type, query) in enumerate(pairs):
            if content_type.value != cp.current_type:
                continue
            if cp.current_query is None or cp.current_query == query_key(query):
                return index

        logger.warning(
            f"Saved state (type {cp.current_type}, query {cp.current_query}) does not match "
            f"the requested work; starting from the beginning"
        )
        self.checkpoint = Checkpoint(
            api_available=cp.api_available,
            collected_total=cp.collected_total,
        )
        return 0

    def is_resuming(self, content_type: ContentType, query: Optional[str]) -> bool:
        cp = self.checkpoint
        return (
            cp.current_type == content_type.value
            and cp.current_query == query_key(query)
        )

    async def enter_type(self, content_type: ContentType) -> None:
        cp = self.checkpoint
        cp.current_type = content_type.value
        cp.current_query = None
        cp.current_page = 1
        cp.collected_for_current_query = 0
        await self.persist()

    async def enter_query(self, query: Optional[str]) -> None:
        cp = self.checkpoint
        cp.current_query = query_key(query)
        cp.current_page = 1
        cp.collected_for_current_query = 0
        await self.persist()

    async def record_page(self, next_page: int, stored: int) -> None:
        """A listing page was fully processed"""
        cp = self.checkpoint
        cp.current_page = next_page
        cp.collected_for_current_query += stored
        cp.collected_total += stored
        await self.persist()

    async def mark_api_unavailable(self) -> None:
        self.checkpoint.api_available = False
        await self.persist()

    # ------------------------------------------------------------------
    # People
    # ------------------------------------------------------------------

    def people_resume_index(self, queries: List[str]) -> int:
        current = self.checkpoint.people_current_query
        if current is None:
            return 0
        if current in queries:
            return queries.index(current)
        logger.warning(f"Saved people query {current!r} not requested; starting people from the beginning")
        return 0

    def is_resuming_people(self, query: str) -> bool:
        return self.checkpoint.people_current_query == query

    async def enter_people_query(self, query: str) -> None:
        cp = self.checkpoint
        cp.people_current_query = query
        cp.people_page = 1
        cp.people_collected = 0
        await self.persist()

    async def record_people_page(self, next_page: int, stored: int) -> None:
        cp = self.checkpoint
        cp.people_page = next_page
        cp.people_collected += stored
        await self.persist()

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    async def complete(self) -> None:
        """Clear the slot so the next run starts fresh"""
        await self.store.clear()
        self._done = True
