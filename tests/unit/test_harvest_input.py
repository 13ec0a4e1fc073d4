"""
Unit tests for harvest input validation and derived views
"""

import pytest
from core.config import settings
from core.exceptions import ConfigurationError
from models.base import ContentType
from schemas.harvest import HarvestInput, parse_string_list, parse_number_list


class TestHarvestInput:
    """Test input parsing"""

    def test_defaults(self):
        harvest_input = HarvestInput.from_payload({})

        assert harvest_input.content_type == "tv"
        assert harvest_input.results_wanted == 5
        assert harvest_input.max_pages == 5
        assert harvest_input.max_concurrency == 10
        assert harvest_input.requested_content_types == [ContentType.SERIES]
        assert harvest_input.effective_queries == [None]

    def test_both_expands_to_movie_then_series(self):
        harvest_input = HarvestInput.from_payload({"contentType": "both", "searchQueries": "a, b"})

        assert harvest_input.requested_content_types == [ContentType.MOVIE, ContentType.SERIES]
        assert harvest_input.effective_queries == ["a", "b"]

    def test_invalid_content_type_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            HarvestInput.from_payload({"contentType": "anime"})

    def test_person_without_queries_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            HarvestInput.from_payload({"contentType": "person"})

    def test_person_uses_search_queries(self):
        harvest_input = HarvestInput.from_payload({"contentType": "person", "searchQueries": ["Nolan"]})

        assert harvest_input.requested_content_types == []
        assert harvest_input.person_queries == ["Nolan"]
        assert harvest_input.collects_people is True

    @pytest.mark.parametrize("value", [0, -3, "abc", float("nan")])
    def test_invalid_numbers_fall_back_to_defaults(self, value):
        harvest_input = HarvestInput.from_payload({
            "resultsWanted": value,
            "maxPages": value,
            "maxConcurrency": value,
        })

        assert harvest_input.results_wanted == 5
        assert harvest_input.max_pages == 5
        assert harvest_input.max_concurrency == 10

    def test_results_capped_by_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "MAX_RESULTS_CAP", 20)
        harvest_input = HarvestInput.from_payload({"resultsWanted": 500})

        assert harvest_input.results_wanted == 500
        assert harvest_input.max_results == 20

    def test_timeout_floor(self):
        assert HarvestInput.from_payload({"requestTimeoutSecs": 1}).request_timeout_secs == 5.0

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setattr(settings, "TMDB_API_KEY", "  env_key  ")

        assert HarvestInput.from_payload({}).active_api_key == "env_key"
        assert HarvestInput.from_payload({"apiKey": "input_key"}).active_api_key == "input_key"

    def test_blank_api_key_is_absent(self):
        assert HarvestInput.from_payload({"apiKey": "   "}).active_api_key is None

    def test_extras_mapping(self):
        harvest_input = HarvestInput.from_payload({
            "collectPeople": True,
            "collectReviews": True,
            "maxReviewsPerContent": 7,
        })
        extras = harvest_input.extras_config()

        assert extras.collect_credits is True
        assert extras.collect_reviews is True
        assert extras.max_reviews == 7
        assert extras.append_to_response() == ["credits", "reviews"]
        assert extras.any_requested is True

    def test_delay_range_is_ordered(self):
        delays = HarvestInput.from_payload({"minDelayMs": 500, "maxDelayMs": 100}).delay_range()

        assert delays.min_delay_ms == 500
        assert delays.max_delay_ms == 500

    def test_proxy_urls(self, monkeypatch):
        monkeypatch.setattr(settings, "PROXY_URLS", ["http://env-proxy:8080"])

        assert HarvestInput.from_payload({}).effective_proxy_urls == ["http://env-proxy:8080"]
        assert HarvestInput.from_payload({"useProxy": False}).effective_proxy_urls == []
        assert HarvestInput.from_payload({"proxyUrls": "http://a:1"}).effective_proxy_urls == ["http://a:1"]

    def test_snapshot_hides_api_key(self):
        snapshot = HarvestInput.from_payload({"apiKey": "secret"}).snapshot()

        assert "apiKey" not in snapshot
        assert snapshot["hasApiKey"] is True
        assert snapshot["contentType"] == "tv"


def test_list_parsing_helpers():
    assert parse_string_list(" a ,, b ") == ["a", "b"]
    assert parse_string_list(["x", 3, None, " "]) == ["x", "3"]
    assert parse_number_list("18, 35, drama") == [18, 35]
