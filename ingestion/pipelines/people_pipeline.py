"""
People collection through the TMDb API
"""

from typing import Optional
from schemas.harvest import DelayRange
from ingestion.base import PageCallback, ignore_page
from ingestion.concurrency import random_delay
from ingestion.context import RunStats
from ingestion.extractors.tmdb_api import TMDbApiClient
from ingestion.loaders.record_store import RecordStore
from ingestion.transformers.record_mapper import map_person
from core.exceptions import HarvestException, ItemProcessingError
import logging

logger = logging.getLogger(__name__)

MAX_PERSON_PAGES = 5


class PeoplePipeline:
    """
    Search people by name and store one record per person.

    Persons are processed one at a time. A failing person is logged and
    skipped; a failing search page ends the query.
    """

    def __init__(
        self,
        client: TMDbApiClient,
        store: RecordStore,
        delays: DelayRange,
        stats: RunStats,
        on_page: Optional[PageCallback] = None
    ):
        self.client = client
        self.store = store
        self.delays = delays
        self.stats = stats
        self.on_page = on_page or ignore_page

    async def run(self, query: str, limit: int, start_page: int = 1) -> int:
        collected = 0
        page = start_page

        while collected < limit and page <= MAX_PERSON_PAGES:
            try:
                response = await self.client.search_person(query, page)
            except HarvestException as e:
                logger.warning(
                    f'People search failed for "{query}" page {page}: {e.message}',
                    extra={"error_context": e.to_dict()}
                )
                break

            persons = response.get("results") or []
            if not persons:
                break

            stored = 0
            for person in persons:
                if collected >= limit:
                    break
                try:
                    detail = await self.client.get_person(person["id"])
                    await self.store.save([map_person(detail)])
                except Exception as e:
                    self.stats.items_failed += 1
                    error = ItemProcessingError(
                        f"Failed to process person {person.get('id')}",
                        context={"query": query, "page": page, "item_id": person.get("id")},
                        original_exception=e
                    )
                    logger.warning(f"{error.message}: {e}", extra={"error_context": error.to_dict()})
                    continue

                self.stats.extra_items += 1
                collected += 1
                stored += 1
                await random_delay(self.delays.min_delay_ms, self.delays.max_delay_ms)

            await self.on_page(page + 1, stored)

            if (response.get("total_pages") or 1) <= page:
                break
            page += 1

        return collected
