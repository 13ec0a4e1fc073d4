"""
Per-item enrichment fan-out.

Dimensions run in a fixed order (credits, reviews, keywords, images,
collection) and each one yields at most one record. A failing dimension
raises, which fails the whole item: callers store nothing for it.
"""

from typing import Dict, Any, List, Optional
from models.base import ContentType
from schemas.harvest import ExtrasConfig
from schemas.records import HarvestRecord
from ingestion.extractors.tmdb_api import TMDbApiClient
from ingestion.extractors.html_parser import CandidateItem, WebDetail
from ingestion.transformers.record_mapper import RecordMapper
import logging

logger = logging.getLogger(__name__)


class ExtrasFanout:
    """
    Build extras records for one content item.

    Attributes:
        client: API client for follow-up calls (review pages, collections); None in web mode
        mapper: Record mapper for the item's content type and source
        extras: Requested dimensions and caps
    """

    def __init__(self, client: Optional[TMDbApiClient], mapper: RecordMapper, extras: ExtrasConfig):
        self.client = client
        self.mapper = mapper
        self.extras = extras

    @property
    def content_type(self) -> ContentType:
        return self.mapper.content_type

    async def collect_reviews(self, detail: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Reviews from the appended first page plus follow-up pages.

        Stops once the cap is reached or the source has no more pages,
        then truncates to the cap in source order.
        """
        cap = self.extras.max_reviews
        if not cap:
            return []

        block = detail.get("reviews") or {}
        reviews = list(block.get("results") or [])
        total_pages = block.get("total_pages") or 1
        page = 1

        while len(reviews) < cap and page < total_pages:
            page += 1
            response = await self.client.get_reviews(self.content_type, detail["id"], page)
            reviews.extend(response.get("results") or [])

        return reviews[:cap]

    async def from_api(self, detail: Dict[str, Any]) -> List[HarvestRecord]:
        records: List[HarvestRecord] = []

        if self.extras.collect_credits:
            records.append(self.mapper.credits(detail))
        if self.extras.collect_reviews:
            records.append(self.mapper.reviews(detail, await self.collect_reviews(detail)))
        if self.extras.collect_keywords:
            records.append(self.mapper.keywords(detail))
        if self.extras.collect_images:
            records.append(self.mapper.images(detail, self.extras.max_images))
        if self.extras.collect_collections and self.content_type == ContentType.MOVIE:
            collection_id = (detail.get("belongs_to_collection") or {}).get("id")
            if collection_id:
                records.append(self.mapper.collection(await self.client.get_collection(collection_id)))

        return [record for record in records if record is not None]

    def from_web(self, item: CandidateItem, detail: WebDetail) -> List[HarvestRecord]:
        """Only keywords can be read from a detail page"""
        if not self.extras.collect_keywords:
            return []
        record = self.mapper.keywords_from_web(item, detail)
        return [record] if record is not None else []
