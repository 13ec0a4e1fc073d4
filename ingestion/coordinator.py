"""
Strategy coordinator: walks (content type, query) pairs and dispatches each
one to the API or web pipeline.
"""

from typing import List, Optional, Tuple
from models.base import ContentType
from schemas.harvest import HarvestInput
from ingestion.checkpoint import CheckpointTracker, query_label
from ingestion.context import RunContext
from ingestion.extractors.tmdb_api import TMDbApiClient
from ingestion.extractors.tmdb_web import TMDbWebClient
from ingestion.loaders.record_store import RecordStore
from ingestion.pipelines.api_pipeline import ApiContentPipeline
from ingestion.pipelines.web_pipeline import WebContentPipeline
from core.exceptions import PageFetchError
import logging

logger = logging.getLogger(__name__)

Pair = Tuple[ContentType, Optional[str]]


class HarvestCoordinator:
    """
    Content phase of a harvest run.

    For each pair the limit is ``resultsWanted`` minus what the checkpoint
    already counted for that pair, bounded by the remaining budget. The
    restored budget already excludes those items, so they are not
    subtracted twice. A pair with nothing left to collect is skipped
    without any request. The budget only shrinks by items actually
    stored. A page-level API failure switches the run to web scraping for
    good and the same pair continues there from the page that failed.
    """

    def __init__(
        self,
        harvest_input: HarvestInput,
        store: RecordStore,
        tracker: CheckpointTracker,
        context: RunContext,
        web_client: TMDbWebClient,
        api_client: Optional[TMDbApiClient] = None
    ):
        self.input = harvest_input
        self.store = store
        self.tracker = tracker
        self.context = context
        self.web_client = web_client
        self.api_client = api_client

        self.filters = harvest_input.discover_filters()
        self.extras = harvest_input.extras_config()
        self.delays = harvest_input.delay_range()

    def pairs(self) -> List[Pair]:
        return [
            (content_type, query)
            for content_type in self.input.requested_content_types
            for query in self.input.effective_queries
        ]

    async def run(self) -> None:
        pairs = self.pairs()
        start = self.tracker.resume_index(pairs)
        current_type: Optional[ContentType] = None

        for index in range(start, len(pairs)):
            content_type, query = pairs[index]
            if self.context.budget_exhausted:
                logger.info("Result budget exhausted, stopping content collection")
                break

            cp = self.tracker.checkpoint
            if index == start and self.tracker.is_resuming(content_type, query):
                start_page = cp.current_page
                already_collected = cp.collected_for_current_query
                logger.info(
                    f"Resuming {content_type.value} :: {query_label(query)} at page {start_page} "
                    f"with {already_collected} already collected"
                )
            else:
                if content_type != current_type:
                    await self.tracker.enter_type(content_type)
                await self.tracker.enter_query(query)
                start_page, already_collected = 1, 0
            current_type = content_type

            limit = min(self.context.remaining, self.input.results_wanted - already_collected)
            if limit <= 0:
                logger.info(f"Skipping {content_type.value} :: {query_label(query)}, nothing left to collect")
                continue

            logger.info(f"Processing {content_type.value} :: {query_label(query)} :: limit {limit}")
            collected = await self.collect_pair(content_type, query, limit, start_page)
            logger.info(f"Collected {collected} {content_type.value} items for {query_label(query)}")

    async def on_page(self, next_page: int, stored: int) -> None:
        await self.tracker.record_page(next_page, stored)
        self.context.record_stored(stored)

    def _pipeline_kwargs(self, content_type: ContentType, query: Optional[str]) -> dict:
        return dict(
            store=self.store,
            content_type=content_type,
            query=query,
            filters=self.filters,
            extras=self.extras,
            delays=self.delays,
            stats=self.context.stats,
            concurrency=self.input.max_concurrency,
            max_pages=self.input.max_pages,
            on_page=self.on_page,
        )

    async def collect_pair(self, content_type: ContentType, query: Optional[str], limit: int, start_page: int) -> int:
        """Collect one pair, failing over from API to web at most once"""
        collected = 0

        if self.context.api_available and self.api_client is not None:
            pipeline = ApiContentPipeline(self.api_client, **self._pipeline_kwargs(content_type, query))
            try:
                return await pipeline.run(limit, start_page)
            except PageFetchError as e:
                logger.error(
                    f"{e.message}: {e.original_exception}",
                    extra={"error_context": e.to_dict()}
                )
                self.context.fail_over()
                await self.tracker.mark_api_unavailable()
                collected = e.collected
                start_page = e.page

        if collected >= limit:
            return collected

        pipeline = WebContentPipeline(self.web_client, **self._pipeline_kwargs(content_type, query))
        return collected + await pipeline.run(limit - collected, start_page)
