"""
Map TMDb API payloads and scraped pages into output records
"""

from typing import Dict, Any, Optional, List, Iterable, Callable
from models.base import ContentType, RecordSource
from schemas.records import (
    ContentRecord,
    CreditsRecord,
    ReviewsRecord,
    KeywordsRecord,
    ImagesRecord,
    CollectionRecord,
    PersonRecord,
)
from ingestion.extractors.html_parser import CandidateItem, WebDetail

PERSON_CREDITS_CAP = 15

IMAGE_FIELDS = ("file_path", "width", "height", "aspect_ratio", "vote_average", "vote_count", "iso_639_1")


def format_list(values: Any) -> Optional[str]:
    """Join strings and finite numbers with ", "; None when nothing remains"""
    if not isinstance(values, (list, tuple)):
        return None
    items = []
    for value in values:
        if isinstance(value, str):
            if value.strip():
                items.append(value.strip())
        elif isinstance(value, (int, float)) and not isinstance(value, bool) and value == value:
            items.append(str(value))
    return ", ".join(items) if items else None


def format_object_list(values: Any, extractor: Callable[[Dict[str, Any]], Any]) -> Optional[str]:
    if not isinstance(values, (list, tuple)):
        return None
    items = [extractor(item) for item in values if isinstance(item, dict)]
    items = [str(item) for item in items if item]
    return ", ".join(items) if items else None


def _pick(item: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    return {field: item.get(field) for field in fields}


def content_title(detail: Dict[str, Any]) -> Optional[str]:
    return detail.get("title") or detail.get("name")


class RecordMapper:
    """
    Build output records for one content type and source.

    Content-type specific fields are only set for the matching type, so
    they are absent (not null) in the other type's payload.
    """

    def __init__(self, content_type: ContentType, source: RecordSource):
        self.content_type = content_type
        self.source = source

    def _base(self) -> Dict[str, Any]:
        return {"source": self.source, "content_type": self.content_type.value}

    def _extra_base(self, detail: Dict[str, Any]) -> Dict[str, Any]:
        return {**self._base(), "content_id": detail["id"], "content_title": content_title(detail)}

    # ------------------------------------------------------------------
    # API payloads
    # ------------------------------------------------------------------

    def content_from_api(self, detail: Dict[str, Any]) -> ContentRecord:
        is_movie = self.content_type == ContentType.MOVIE
        title = detail.get("title") if is_movie else detail.get("name")
        genres = detail.get("genres") if isinstance(detail.get("genres"), list) else None

        fields = {
            **self._base(),
            "tmdb_id": detail["id"],
            "title": title,
            "original_title": detail.get("original_title") or detail.get("original_name") or title,
            "overview": detail.get("overview"),
            "tagline": detail.get("tagline"),
            "homepage": detail.get("homepage"),
            "status": detail.get("status"),
            "in_production": detail.get("in_production"),
            "vote_average": detail.get("vote_average"),
            "vote_count": detail.get("vote_count"),
            "popularity": detail.get("popularity"),
            "poster_path": detail.get("poster_path"),
            "backdrop_path": detail.get("backdrop_path"),
            "adult": detail.get("adult") or False,
            "genres": format_object_list(genres, lambda genre: genre.get("name")),
            "genre_ids": format_list(
                [genre.get("id") for genre in genres or [] if isinstance(genre, dict)]
            ) if genres is not None else None,
            "spoken_languages": format_object_list(
                detail.get("spoken_languages"), lambda lang: lang.get("english_name") or lang.get("name")
            ),
            "production_companies": format_object_list(detail.get("production_companies"), lambda c: c.get("name")),
            "production_countries": format_object_list(detail.get("production_countries"), lambda c: c.get("name")),
        }

        if is_movie:
            fields.update(
                release_date=detail.get("release_date"),
                runtime=detail.get("runtime"),
                budget=detail.get("budget"),
                revenue=detail.get("revenue"),
            )
        else:
            fields.update(
                first_air_date=detail.get("first_air_date"),
                last_air_date=detail.get("last_air_date"),
                number_of_seasons=detail.get("number_of_seasons"),
                number_of_episodes=detail.get("number_of_episodes"),
                episode_run_time=format_list(detail.get("episode_run_time")),
                networks=format_object_list(detail.get("networks"), lambda n: n.get("name")),
                created_by=format_object_list(detail.get("created_by"), lambda c: c.get("name")),
                origin_country=format_list(detail.get("origin_country")),
            )

        return ContentRecord(**fields)

    def credits(self, detail: Dict[str, Any]) -> Optional[CreditsRecord]:
        block = detail.get("credits") or {}
        cast = [
            _pick(person, ("id", "name", "character", "order", "gender", "profile_path"))
            for person in block.get("cast") or []
        ]
        crew = [
            _pick(person, ("id", "name", "job", "department", "gender", "profile_path"))
            for person in block.get("crew") or []
        ]
        if not cast and not crew:
            return None
        return CreditsRecord(**self._extra_base(detail), cast=cast, crew=crew)

    def reviews(self, detail: Dict[str, Any], reviews: List[Dict[str, Any]]) -> Optional[ReviewsRecord]:
        if not reviews:
            return None
        return ReviewsRecord(
            **self._extra_base(detail),
            reviews=[
                _pick(review, ("id", "author", "author_details", "content", "created_at", "updated_at", "url"))
                for review in reviews
            ],
        )

    def keywords(self, detail: Dict[str, Any]) -> Optional[KeywordsRecord]:
        block = detail.get("keywords") or {}
        # Movies nest keywords under "keywords", series under "results"
        key = "keywords" if self.content_type == ContentType.MOVIE else "results"
        keywords = block.get(key) or []
        if not keywords:
            return None
        return KeywordsRecord(
            **self._extra_base(detail),
            keywords=[_pick(keyword, ("id", "name")) for keyword in keywords],
        )

    def images(self, detail: Dict[str, Any], max_images: int) -> Optional[ImagesRecord]:
        block = detail.get("images") or {}
        posters = [_pick(image, IMAGE_FIELDS) for image in (block.get("posters") or [])[:max_images]]
        backdrops = [_pick(image, IMAGE_FIELDS) for image in (block.get("backdrops") or [])[:max_images]]
        if not posters and not backdrops:
            return None
        return ImagesRecord(**self._extra_base(detail), posters=posters, backdrops=backdrops)

    def collection(self, collection: Dict[str, Any]) -> CollectionRecord:
        return CollectionRecord(
            **self._base(),
            collection_id=collection["id"],
            name=collection.get("name"),
            overview=collection.get("overview"),
            poster_path=collection.get("poster_path"),
            backdrop_path=collection.get("backdrop_path"),
            parts=[
                {
                    "id": part.get("id"),
                    "title": part.get("title") or part.get("name"),
                    "release_date": part.get("release_date") or part.get("first_air_date"),
                    "vote_average": part.get("vote_average"),
                    "vote_count": part.get("vote_count"),
                    "popularity": part.get("popularity"),
                }
                for part in collection.get("parts") or []
            ],
        )

    # ------------------------------------------------------------------
    # Scraped pages
    # ------------------------------------------------------------------

    def content_from_web(self, item: CandidateItem, detail: WebDetail) -> ContentRecord:
        """Detail page fields, falling back to the listing card"""
        fields = {
            **self._base(),
            "tmdb_id": item.id,
            "title": detail.title or item.title,
            "overview": detail.overview or item.overview,
            "vote_average": detail.rating,
            "poster_path": detail.poster_path or item.poster,
            "backdrop_path": detail.backdrop_path,
            "genres": format_list(detail.genres),
        }
        if self.content_type == ContentType.MOVIE:
            fields.update(
                release_date=detail.release_date or item.release_date,
                runtime=detail.runtime,
                status=detail.status,
            )
        else:
            fields.update(
                first_air_date=detail.first_air_date or item.release_date,
                last_air_date=detail.last_air_date,
                status=detail.status,
                networks=format_list(detail.networks),
                created_by=format_list(detail.created_by),
            )
        return ContentRecord(**fields)

    def keywords_from_web(self, item: CandidateItem, detail: WebDetail) -> Optional[KeywordsRecord]:
        if not detail.keywords:
            return None
        return KeywordsRecord(
            **self._base(),
            content_id=item.id,
            content_title=detail.title or item.title,
            keywords=detail.keywords,
        )


def map_person(detail: Dict[str, Any]) -> PersonRecord:
    """Person record with cast and crew credits capped in source order"""
    credits = detail.get("combined_credits") or {}
    cast = [
        {
            "id": credit.get("id"),
            "media_type": credit.get("media_type"),
            "title": credit.get("title") or credit.get("name"),
            "character": credit.get("character"),
            "release_date": credit.get("release_date") or credit.get("first_air_date"),
        }
        for credit in (credits.get("cast") or [])[:PERSON_CREDITS_CAP]
    ]
    crew = [
        {
            "id": credit.get("id"),
            "media_type": credit.get("media_type"),
            "title": credit.get("title") or credit.get("name"),
            "job": credit.get("job"),
            "department": credit.get("department"),
            "release_date": credit.get("release_date") or credit.get("first_air_date"),
        }
        for credit in (credits.get("crew") or [])[:PERSON_CREDITS_CAP]
    ]
    return PersonRecord(
        source=RecordSource.API,
        content_type="person",
        person_id=detail["id"],
        name=detail.get("name"),
        biography=detail.get("biography"),
        birthday=detail.get("birthday"),
        deathday=detail.get("deathday"),
        gender=detail.get("gender"),
        known_for_department=detail.get("known_for_department"),
        place_of_birth=detail.get("place_of_birth"),
        also_known_as=detail.get("also_known_as"),
        popularity=detail.get("popularity"),
        profile_path=detail.get("profile_path"),
        homepage=detail.get("homepage"),
        combined_credits={"cast": cast, "crew": crew},
    )
