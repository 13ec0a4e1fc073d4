"""
Unit tests for record mapping
"""

from ingestion.transformers.record_mapper import (
    RecordMapper,
    format_list,
    format_object_list,
    map_person,
    PERSON_CREDITS_CAP,
)
from ingestion.extractors.html_parser import CandidateItem, WebDetail
from models.base import ContentType, RecordSource


MOVIE_DETAIL = {
    "id": 550,
    "title": "Fight Club",
    "original_title": "Fight Club",
    "overview": "An insomniac office worker.",
    "release_date": "1999-10-15",
    "runtime": 139,
    "budget": 63000000,
    "genres": [{"id": 18, "name": "Drama"}, {"id": 53, "name": "Thriller"}],
    "spoken_languages": [{"english_name": "English", "name": "English"}],
    "credits": {
        "cast": [{"id": 819, "name": "Edward Norton", "character": "Narrator", "order": 0, "credit_id": "x"}],
        "crew": [],
    },
    "keywords": {"keywords": [{"id": 825, "name": "support group"}]},
    "images": {
        "posters": [{"file_path": f"/p{i}.jpg", "width": 500} for i in range(5)],
        "backdrops": [],
    },
}


class TestFormatting:
    """Test list flattening helpers"""

    def test_format_list(self):
        assert format_list(["US", " ", 3, True, None]) == "US, 3"
        assert format_list([]) is None
        assert format_list("US") is None

    def test_format_object_list(self):
        assert format_object_list([{"name": "HBO"}, {"name": ""}, "x"], lambda n: n.get("name")) == "HBO"
        assert format_object_list(None, lambda n: n) is None


class TestApiMapping:
    """Test API payload mapping"""

    def test_movie_content_record(self):
        record = RecordMapper(ContentType.MOVIE, RecordSource.API).content_from_api(MOVIE_DETAIL)
        payload = record.to_payload()

        assert payload["data_type"] == "content"
        assert payload["source"] == "tmdb_api"
        assert payload["content_type"] == "movie"
        assert payload["title"] == "Fight Club"
        assert payload["genres"] == "Drama, Thriller"
        assert payload["genre_ids"] == "18, 53"
        assert payload["spoken_languages"] == "English"
        assert payload["runtime"] == 139
        assert "fetchedAt" in payload
        assert "number_of_seasons" not in payload
        assert "first_air_date" not in payload

    def test_series_content_record(self):
        detail = {
            "id": 1399,
            "name": "Game of Thrones",
            "first_air_date": "2011-04-17",
            "episode_run_time": [60, 55],
            "networks": [{"name": "HBO"}],
            "origin_country": ["US"],
        }
        payload = RecordMapper(ContentType.SERIES, RecordSource.API).content_from_api(detail).to_payload()

        assert payload["title"] == "Game of Thrones"
        assert payload["original_title"] == "Game of Thrones"
        assert payload["episode_run_time"] == "60, 55"
        assert payload["networks"] == "HBO"
        assert "runtime" not in payload
        assert "release_date" not in payload

    def test_credits_keep_selected_fields(self):
        record = RecordMapper(ContentType.MOVIE, RecordSource.API).credits(MOVIE_DETAIL)

        assert record.content_id == 550
        assert record.content_title == "Fight Club"
        assert record.cast[0] == {
            "id": 819, "name": "Edward Norton", "character": "Narrator",
            "order": 0, "gender": None, "profile_path": None,
        }

    def test_empty_dimensions_yield_nothing(self):
        mapper = RecordMapper(ContentType.MOVIE, RecordSource.API)
        bare = {"id": 1, "title": "Bare"}

        assert mapper.credits(bare) is None
        assert mapper.keywords(bare) is None
        assert mapper.images(bare, 20) is None
        assert mapper.reviews(bare, []) is None

    def test_keywords_block_differs_by_type(self):
        series = RecordMapper(ContentType.SERIES, RecordSource.API)
        detail = {"id": 2, "name": "Dark", "keywords": {"results": [{"id": 9, "name": "time travel"}]}}

        assert series.keywords(detail).keywords == [{"id": 9, "name": "time travel"}]
        assert RecordMapper(ContentType.MOVIE, RecordSource.API).keywords(MOVIE_DETAIL).keywords[0]["id"] == 825

    def test_images_capped_per_kind(self):
        record = RecordMapper(ContentType.MOVIE, RecordSource.API).images(MOVIE_DETAIL, 2)

        assert [image["file_path"] for image in record.posters] == ["/p0.jpg", "/p1.jpg"]
        assert record.backdrops == []

    def test_collection_record(self):
        record = RecordMapper(ContentType.MOVIE, RecordSource.API).collection({
            "id": 10,
            "name": "Star Wars Collection",
            "parts": [{"id": 11, "title": "Star Wars", "release_date": "1977-05-25"}],
        })

        assert record.external_id == "10"
        assert record.title == "Star Wars Collection"
        assert record.parts[0]["title"] == "Star Wars"
        assert record.to_payload()["data_type"] == "collection"


class TestWebMapping:
    """Test scraped page mapping"""

    def test_detail_fields_fall_back_to_card(self):
        item = CandidateItem(
            id=603, title="Card Title", overview="Card overview",
            release_date="1999-03-31", poster="/card.jpg", href="https://www.themoviedb.org/movie/603",
        )
        detail = WebDetail(title=None, rating=8.2, genres=["Action", "Science Fiction"])
        payload = RecordMapper(ContentType.MOVIE, RecordSource.WEB).content_from_web(item, detail).to_payload()

        assert payload["source"] == "tmdb_web"
        assert payload["tmdb_id"] == 603
        assert payload["title"] == "Card Title"
        assert payload["overview"] == "Card overview"
        assert payload["release_date"] == "1999-03-31"
        assert payload["poster_path"] == "/card.jpg"
        assert payload["vote_average"] == 8.2
        assert payload["genres"] == "Action, Science Fiction"

    def test_web_keywords(self):
        item = CandidateItem(id=1, title="T", href="https://www.themoviedb.org/tv/1")
        mapper = RecordMapper(ContentType.SERIES, RecordSource.WEB)

        assert mapper.keywords_from_web(item, WebDetail()) is None
        record = mapper.keywords_from_web(item, WebDetail(keywords=[{"id": 3, "name": "k"}]))
        assert record.content_id == 1
        assert record.keywords == [{"id": 3, "name": "k"}]


def test_person_credits_are_capped():
    detail = {
        "id": 525,
        "name": "Christopher Nolan",
        "combined_credits": {
            "cast": [],
            "crew": [{"id": i, "media_type": "movie", "title": f"Film {i}", "job": "Director"} for i in range(30)],
        },
    }
    record = map_person(detail)

    assert record.external_id == "525"
    assert record.source == "tmdb_api"
    assert record.content_type == "person"
    assert len(record.combined_credits["crew"]) == PERSON_CREDITS_CAP
    assert record.combined_credits["crew"][0]["title"] == "Film 0"
