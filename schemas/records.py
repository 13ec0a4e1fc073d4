"""
Pydantic schemas for harvested output records.

Every stored record is tagged with ``data_type`` and ``source`` and carries
a ``fetchedAt`` timestamp. Content-type specific fields (movie vs series)
are only emitted when set, so a movie record never carries series keys.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, ClassVar
from datetime import datetime, timezone
from models.base import DataType, RecordSource


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class HarvestRecord(BaseModel):
    """Base for all stored records"""

    data_type: ClassVar[DataType]

    source: RecordSource
    content_type: str
    fetched_at: str = Field(default_factory=utc_timestamp, alias="fetchedAt")

    class Config:
        populate_by_name = True
        use_enum_values = True

    @property
    def external_id(self) -> str:
        """TMDb id this record is keyed on"""
        raise NotImplementedError

    @property
    def title(self) -> Optional[str]:
        return None

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready record with only the fields that were set"""
        payload = {
            "data_type": self.data_type.value,
            "source": self.source,
            "content_type": self.content_type,
            "fetchedAt": self.fetched_at,
        }
        payload.update(
            self.model_dump(
                mode="json",
                by_alias=True,
                exclude_unset=True,
                exclude={"source", "content_type", "fetched_at"},
            )
        )
        return payload


class ContentRecord(HarvestRecord):
    data_type: ClassVar[DataType] = DataType.CONTENT

    tmdb_id: int
    title_: Optional[str] = Field(None, alias="title")
    original_title: Optional[str] = None
    overview: Optional[str] = None
    tagline: Optional[str] = None
    homepage: Optional[str] = None
    status: Optional[str] = None
    in_production: Optional[bool] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    popularity: Optional[float] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    adult: Optional[bool] = None
    genres: Optional[str] = None
    genre_ids: Optional[str] = None
    spoken_languages: Optional[str] = None
    production_companies: Optional[str] = None
    production_countries: Optional[str] = None

    # Movie
    release_date: Optional[str] = None
    runtime: Optional[int] = None
    budget: Optional[int] = None
    revenue: Optional[int] = None

    # Series
    first_air_date: Optional[str] = None
    last_air_date: Optional[str] = None
    number_of_seasons: Optional[int] = None
    number_of_episodes: Optional[int] = None
    episode_run_time: Optional[str] = None
    networks: Optional[str] = None
    created_by: Optional[str] = None
    origin_country: Optional[str] = None

    @property
    def external_id(self) -> str:
        return str(self.tmdb_id)

    @property
    def title(self) -> Optional[str]:
        return self.title_


class _ContentExtra(HarvestRecord):
    """Extras record attached to one content item"""
    content_id: int
    content_title: Optional[str] = None

    @property
    def external_id(self) -> str:
        return str(self.content_id)

    @property
    def title(self) -> Optional[str]:
        return self.content_title


class CreditsRecord(_ContentExtra):
    data_type: ClassVar[DataType] = DataType.CREDITS
    cast: List[Dict[str, Any]] = Field(default_factory=list)
    crew: List[Dict[str, Any]] = Field(default_factory=list)


class ReviewsRecord(_ContentExtra):
    data_type: ClassVar[DataType] = DataType.REVIEWS
    reviews: List[Dict[str, Any]] = Field(default_factory=list)


class KeywordsRecord(_ContentExtra):
    data_type: ClassVar[DataType] = DataType.KEYWORDS
    keywords: List[Dict[str, Any]] = Field(default_factory=list)


class ImagesRecord(_ContentExtra):
    data_type: ClassVar[DataType] = DataType.IMAGES
    posters: List[Dict[str, Any]] = Field(default_factory=list)
    backdrops: List[Dict[str, Any]] = Field(default_factory=list)


class CollectionRecord(HarvestRecord):
    data_type: ClassVar[DataType] = DataType.COLLECTION

    collection_id: int
    name: Optional[str] = None
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    parts: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def external_id(self) -> str:
        return str(self.collection_id)

    @property
    def title(self) -> Optional[str]:
        return self.name


class PersonRecord(HarvestRecord):
    data_type: ClassVar[DataType] = DataType.PERSON

    person_id: int
    name: Optional[str] = None
    biography: Optional[str] = None
    birthday: Optional[str] = None
    deathday: Optional[str] = None
    gender: Optional[int] = None
    known_for_department: Optional[str] = None
    place_of_birth: Optional[str] = None
    also_known_as: Optional[List[str]] = None
    popularity: Optional[float] = None
    profile_path: Optional[str] = None
    homepage: Optional[str] = None
    combined_credits: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)

    @property
    def external_id(self) -> str:
        return str(self.person_id)

    @property
    def title(self) -> Optional[str]:
        return self.name
