"""
Pydantic schemas for harvest run input.

The input document uses camelCase keys
(``contentType``, ``resultsWanted``...). Invalid numeric values fall back
to defaults with a warning; an invalid content type is a configuration
error.
"""

from pydantic import BaseModel, Field, ValidationError, validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from core.config import settings
from core.exceptions import ConfigurationError
from models.base import ContentType
import logging

logger = logging.getLogger(__name__)

VALID_CONTENT_TYPES = ("movie", "tv", "person", "both")


def parse_string_list(value) -> List[str]:
    """Accept a list or a comma-separated string; drop blanks"""
    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if isinstance(item, str):
                items.append(item.strip())
            elif isinstance(item, (int, float)) and not isinstance(item, bool):
                items.append(str(item))
        return [item for item in items if item]
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return [str(value)]
    return []


def parse_number_list(value) -> List[int]:
    numbers = []
    for item in parse_string_list(value):
        try:
            numbers.append(int(float(item)))
        except ValueError:
            continue
    return numbers


def _positive_or_default(value, default: int, field_name: str) -> int:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = None
    if number is None or number != number or number < 1:
        logger.warning(f"Invalid {field_name}: {value}. Using default: {default}")
        return default
    return int(number)


# ============================================================================
# Derived run configuration
# ============================================================================

class ExtrasConfig(BaseModel):
    """Enrichment dimensions requested for every content item"""
    collect_credits: bool = False
    collect_reviews: bool = False
    collect_keywords: bool = False
    collect_images: bool = False
    collect_collections: bool = False
    max_reviews: int = 25
    max_images: int = 20

    @property
    def any_requested(self) -> bool:
        return (
            self.collect_credits
            or self.collect_reviews
            or self.collect_keywords
            or self.collect_images
            or self.collect_collections
        )

    def append_to_response(self) -> List[str]:
        """Detail sub-resources fetched in the same API call"""
        blocks = []
        if self.collect_credits:
            blocks.append("credits")
        if self.collect_reviews:
            blocks.append("reviews")
        if self.collect_keywords:
            blocks.append("keywords")
        if self.collect_images:
            blocks.append("images")
        return blocks


class DiscoverFilters(BaseModel):
    """Browse criteria used when no search query is given"""
    genre_ids: List[int] = Field(default_factory=list)
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    sort_by: str = "popularity.desc"


class DelayRange(BaseModel):
    """Randomized pause after each stored item, in milliseconds"""
    min_delay_ms: int = 1000
    max_delay_ms: int = 3000


# ============================================================================
# Run input
# ============================================================================

class HarvestInput(BaseModel):
    """Validated harvest input"""

    content_type: str = "tv"
    api_key: Optional[str] = None
    use_api_first: bool = True

    search_queries: List[str] = Field(default_factory=list)
    genre_ids: List[int] = Field(default_factory=list)
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    sort_by: str = "popularity.desc"

    results_wanted: int = 5
    max_pages: int = 5
    max_concurrency: int = 10
    request_timeout_secs: float = 35.0

    collect_credits: bool = Field(False, alias="collectPeople")
    collect_reviews: bool = False
    collect_keywords: bool = False
    collect_images: bool = False
    collect_collections: bool = False
    max_reviews_per_content: int = 25
    max_images_per_content: int = 20

    min_delay_ms: int = 1000
    max_delay_ms: int = 3000

    people_query: List[str] = Field(default_factory=list)
    people_results_wanted: int = 3

    use_proxy: bool = True
    proxy_urls: Optional[List[str]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    @validator("content_type", pre=True)
    def validate_content_type(cls, v):
        value = v or "tv"
        if value not in VALID_CONTENT_TYPES:
            raise ValueError(
                f'Invalid contentType: "{value}". Must be one of: {", ".join(VALID_CONTENT_TYPES)}'
            )
        return value

    @validator("api_key", pre=True)
    def clean_api_key(cls, v):
        if isinstance(v, str) and v.strip():
            return v.strip()
        return None

    @validator("search_queries", "people_query", "proxy_urls", pre=True)
    def clean_string_lists(cls, v):
        if v is None:
            return None
        return parse_string_list(v)

    @validator("genre_ids", pre=True)
    def clean_genre_ids(cls, v):
        return parse_number_list(v)

    @validator("year_from", "year_to", pre=True)
    def clean_year(cls, v):
        if v in (None, ""):
            return None
        try:
            return int(v)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid year filter: {v}")
            return None

    @validator("results_wanted", pre=True)
    def default_results_wanted(cls, v):
        return _positive_or_default(v, 5, "resultsWanted")

    @validator("max_pages", pre=True)
    def default_max_pages(cls, v):
        return _positive_or_default(v, 5, "maxPages")

    @validator("max_concurrency", pre=True)
    def default_max_concurrency(cls, v):
        return _positive_or_default(v, 10, "maxConcurrency")

    @validator("people_results_wanted", "max_reviews_per_content", "max_images_per_content", pre=True)
    def non_negative_caps(cls, v):
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            return 0

    @validator("min_delay_ms", "max_delay_ms", pre=True)
    def non_negative_delay(cls, v):
        try:
            return max(0, int(v))
        except (TypeError, ValueError):
            return 0

    @validator("request_timeout_secs", pre=True)
    def floor_timeout(cls, v):
        try:
            seconds = float(v)
        except (TypeError, ValueError):
            return 35.0
        return max(5.0, seconds)

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "HarvestInput":
        """Validate a raw input document, raising ConfigurationError on bad selection"""
        try:
            harvest_input = cls.model_validate(payload or {})
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid harvest input",
                context={"errors": [err.get("msg") for err in e.errors()]},
                original_exception=e
            )

        if harvest_input.content_type == "person" and not harvest_input.person_queries:
            raise ConfigurationError(
                "No person queries specified. Set searchQueries or peopleQuery when contentType is person.",
                context={"content_type": harvest_input.content_type}
            )
        return harvest_input

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def active_api_key(self) -> Optional[str]:
        if self.api_key:
            return self.api_key
        if settings.TMDB_API_KEY and settings.TMDB_API_KEY.strip():
            return settings.TMDB_API_KEY.strip()
        return None

    @property
    def requested_content_types(self) -> List[ContentType]:
        if self.content_type == "both":
            return [ContentType.MOVIE, ContentType.SERIES]
        if self.content_type == "person":
            return []
        return [ContentType(self.content_type)]

    @property
    def effective_queries(self) -> List[Optional[str]]:
        """Search queries, or a single None meaning discover mode"""
        return list(self.search_queries) or [None]

    @property
    def person_queries(self) -> List[str]:
        if self.content_type == "person" and self.search_queries:
            return list(self.search_queries)
        return list(self.people_query)

    @property
    def collects_people(self) -> bool:
        return self.content_type == "person" or bool(self.people_query)

    @property
    def max_results(self) -> int:
        return min(self.results_wanted, settings.MAX_RESULTS_CAP)

    @property
    def effective_proxy_urls(self) -> List[str]:
        if not self.use_proxy:
            return []
        if self.proxy_urls is not None:
            return list(self.proxy_urls)
        return list(settings.PROXY_URLS)

    def extras_config(self) -> ExtrasConfig:
        return ExtrasConfig(
            collect_credits=self.collect_credits,
            collect_reviews=self.collect_reviews,
            collect_keywords=self.collect_keywords,
            collect_images=self.collect_images,
            collect_collections=self.collect_collections,
            max_reviews=self.max_reviews_per_content,
            max_images=self.max_images_per_content,
        )

    def discover_filters(self) -> DiscoverFilters:
        return DiscoverFilters(
            genre_ids=self.genre_ids,
            year_from=self.year_from,
            year_to=self.year_to,
            sort_by=self.sort_by,
        )

    def delay_range(self) -> DelayRange:
        return DelayRange(
            min_delay_ms=self.min_delay_ms,
            max_delay_ms=max(self.min_delay_ms, self.max_delay_ms),
        )

    def snapshot(self) -> Dict[str, Any]:
        """Input as stored on the run row, without credentials"""
        data = self.model_dump(by_alias=True, exclude={"api_key"})
        data["hasApiKey"] = bool(self.active_api_key)
        return data
