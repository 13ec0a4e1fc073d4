"""
TMDb API pipeline: search or discover pages, then detail plus extras per item
"""

from typing import Any, Dict, List
from models.base import RecordSource
from schemas.records import HarvestRecord
from ingestion.base import ContentPipeline
from ingestion.extras import ExtrasFanout
from ingestion.extractors.tmdb_api import TMDbApiClient
from core.exceptions import HarvestException, PageFetchError
import logging

logger = logging.getLogger(__name__)


class ApiContentPipeline(ContentPipeline):
    """
    Collect content through the TMDb API.

    Pagination stops when the limit is reached, the source reports no
    more pages, the page cap is reached, or a page has no results. A
    listing request failure raises PageFetchError carrying the number of
    items already stored and the page that failed.
    """

    source = RecordSource.API

    def __init__(self, client: TMDbApiClient, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.client = client
        self.fanout = ExtrasFanout(client, self.mapper, self.extras)

    def item_label(self, item: Dict[str, Any]) -> str:
        return f"{self.content_type.value} {item.get('id')}"

    async def fetch_listing(self, page: int) -> Dict[str, Any]:
        if self.query is not None:
            return await self.client.search(self.content_type, self.query, page)
        return await self.client.discover(self.content_type, self.filters, page)

    async def build_records(self, item: Dict[str, Any]) -> List[HarvestRecord]:
        detail = await self.client.get_detail(self.content_type, item["id"], self.extras)
        content = self.mapper.content_from_api(detail)
        extras = await self.fanout.from_api(detail)
        return [content, *extras]

    async def run(self, limit: int, start_page: int = 1) -> int:
        saved = 0
        page = start_page

        while page <= self.max_pages and saved < limit:
            endpoint = "search" if self.query is not None else "discover"
            logger.info(f"TMDb API /{endpoint}/{self.content_type.value} page {page} ({self.label})")

            try:
                response = await self.fetch_listing(page)
            except HarvestException as e:
                raise PageFetchError(
                    f"TMDb API listing failed for {self.label} page {page}",
                    context={
                        "content_type": self.content_type.value,
                        "query": self.query,
                        "page": page,
                    },
                    original_exception=e,
                    collected=saved,
                    page=page
                )

            items = response.get("results") or []
            if not items:
                break

            stored = await self.process_page(items, limit - saved)
            saved += stored
            await self.on_page(page + 1, stored)

            if (response.get("total_pages") or 1) <= page:
                break
            page += 1

        return saved
