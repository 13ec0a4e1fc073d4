"""
Abstract base class for content pipelines with page progress reporting
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, List, Optional, Sequence
from models.base import ContentType, RecordSource
from schemas.harvest import DiscoverFilters, ExtrasConfig, DelayRange
from schemas.records import HarvestRecord
from ingestion.checkpoint import query_label
from ingestion.concurrency import bounded_batches, random_delay
from ingestion.context import RunStats
from ingestion.loaders.record_store import RecordStore
from ingestion.transformers.record_mapper import RecordMapper
from core.exceptions import HarvestException, ItemProcessingError
import logging

logger = logging.getLogger(__name__)

# (next_page, items_stored_on_page)
PageCallback = Callable[[int, int], Awaitable[None]]


async def ignore_page(next_page: int, stored: int) -> None:
    return None


class ContentPipeline(ABC):
    """
    Paginated fetch-and-store loop for one (content type, query) pair.

    Responsibilities:
    - Walk listing pages sequentially from a start page
    - Process at most ``limit - collected`` items per page in bounded batches
    - Store every record of an item in one call, or nothing on failure
    - Report each processed page through ``on_page`` before fetching the next
    """

    source: RecordSource

    def __init__(
        self,
        store: RecordStore,
        content_type: ContentType,
        query: Optional[str],
        filters: DiscoverFilters,
        extras: ExtrasConfig,
        delays: DelayRange,
        stats: RunStats,
        concurrency: int = 1,
        max_pages: int = 5,
        on_page: Optional[PageCallback] = None
    ):
        self.store = store
        self.content_type = content_type
        self.query = query
        self.filters = filters
        self.extras = extras
        self.delays = delays
        self.stats = stats
        self.concurrency = max(1, concurrency)
        self.max_pages = max_pages
        self.on_page = on_page or ignore_page
        self.mapper = RecordMapper(content_type, self.source)

    @property
    def label(self) -> str:
        return f"{self.content_type.value} :: {query_label(self.query)}"

    @abstractmethod
    async def build_records(self, item: Any) -> List[HarvestRecord]:
        """
        Fetch everything for one item and map it to records.

        The content record comes first. Raises on any failure.
        """
        pass

    @abstractmethod
    def item_label(self, item: Any) -> str:
        pass

    @abstractmethod
    async def run(self, limit: int, start_page: int = 1) -> int:
        """
        Collect up to ``limit`` content items starting at ``start_page``.

        Returns:
            Number of content items stored
        """
        pass

    async def process_item(self, item: Any) -> int:
        """Build and store one item; 1 when stored, 0 on failure"""
        try:
            records = await self.build_records(item)
            await self.store.save(records)
        except Exception as e:
            self.stats.items_failed += 1
            error = ItemProcessingError(
                f"Failed to process {self.item_label(item)}",
                context={
                    "content_type": self.content_type.value,
                    "query": self.query,
                    "source": self.source.value,
                },
                original_exception=e
            )
            reason = e.message if isinstance(e, HarvestException) else str(e)
            logger.warning(f"{error.message}: {reason}", extra={"error_context": error.to_dict()})
            return 0

        self.stats.extra_items += len(records) - 1
        await random_delay(self.delays.min_delay_ms, self.delays.max_delay_ms)
        return 1

    async def process_page(self, items: Sequence[Any], remaining: int) -> int:
        """Process up to ``remaining`` items in batches of ``concurrency``"""
        results = await bounded_batches(items[:max(0, remaining)], self.process_item, self.concurrency)
        return sum(results)
