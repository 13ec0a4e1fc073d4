"""
TMDb website pipeline: listing pages, then one detail page per candidate
"""

from typing import List, Optional, Set
from models.base import RecordSource
from schemas.records import HarvestRecord
from ingestion.base import ContentPipeline
from ingestion.extras import ExtrasFanout
from ingestion.extractors.tmdb_web import TMDbWebClient, build_web_listing_url
from ingestion.extractors.html_parser import (
    CandidateItem,
    extract_detail,
    extract_listing_items,
    resolve_next_url,
)
from core.exceptions import HarvestException
import logging

logger = logging.getLogger(__name__)


class WebContentPipeline(ContentPipeline):
    """
    Collect content by scraping the TMDb website.

    Candidates are deduplicated by id across every page of the pair, so
    an item repeated on a later page is never fetched twice. A failed
    listing fetch ends pagination for the pair.
    """

    source = RecordSource.WEB

    def __init__(self, client: TMDbWebClient, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client
        self.fanout = ExtrasFanout(None, self.mapper, self.extras)
        self.seen_ids: Set[int] = set()

    def item_label(self, item: CandidateItem) -> str:
        return item.href

    async def build_records(self, item: CandidateItem) -> List[HarvestRecord]:
        detail_page = await self.client.fetch(item.href)
        detail = extract_detail(detail_page.soup, self.content_type)
        content = self.mapper.content_from_web(item, detail)
        return [content, *self.fanout.from_web(item, detail)]

    def listing_url(self, page: int) -> str:
        return build_web_listing_url(
            self.content_type, self.query, self.filters, page, base_url=self.client.base_url
        )

    async def run(self, limit: int, start_page: int = 1) -> int:
        saved = 0
        page = start_page
        next_url: Optional[str] = self.listing_url(page)

        while next_url and saved < limit:
            logger.info(f"TMDb web scraping {self.label} page {page} :: {next_url}")

            try:
                listing = await self.client.fetch(next_url)
            except HarvestException as e:
                logger.warning(
                    f"Listing fetch failed for {self.label} page {page}, ending pagination: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                break

            items = extract_listing_items(listing.soup, self.content_type, base_url=self.client.base_url)
            if not items:
                logger.info(f"No listing items on page {page} for {self.label}")
                break

            candidates = []
            for item in items:
                if item.id in self.seen_ids:
                    continue
                self.seen_ids.add(item.id)
                candidates.append(item)

            stored = await self.process_page(candidates, limit - saved)
            saved += stored
            await self.on_page(page + 1, stored)

            next_url = resolve_next_url(listing.soup, listing.final_url, base_url=self.client.base_url)
            if next_url == listing.final_url:
                logger.info(f"Next page link for {self.label} points back to {next_url}, ending pagination")
                break
            page += 1

        return saved
