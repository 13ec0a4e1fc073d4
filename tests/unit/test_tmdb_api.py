"""
Unit tests for the TMDb API client
"""

import pytest
import httpx
from ingestion.extractors.tmdb_api import TMDbApiClient, build_discover_params
from schemas.harvest import DiscoverFilters, ExtrasConfig
from models.base import ContentType
from core.exceptions import (
    AuthenticationError,
    MissingCredentialsError,
    NetworkError,
    ResourceNotFoundError,
    APIRequestError,
)


def make_client(handler, **kwargs) -> TMDbApiClient:
    return TMDbApiClient(
        "test_key",
        base_url="https://api.test/3",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs
    )


class TestDiscoverParams:
    """Test discover query construction"""

    def test_movie_years_use_primary_release_date(self):
        filters = DiscoverFilters(genre_ids=[18, 35], year_from=2000, year_to=2005)
        params = build_discover_params(ContentType.MOVIE, filters, 2)

        assert params["page"] == 2
        assert params["with_genres"] == "18,35"
        assert params["primary_release_date.gte"] == "2000-01-01"
        assert params["primary_release_date.lte"] == "2005-12-31"
        assert params["sort_by"] == "popularity.desc"

    def test_series_years_use_first_air_date(self):
        params = build_discover_params(ContentType.SERIES, DiscoverFilters(year_from=2010), 1)

        assert params["first_air_date.gte"] == "2010-01-01"
        assert "first_air_date.lte" not in params
        assert "with_genres" not in params


class TestTMDbApiClient:
    """Test request retry and error mapping"""

    @pytest.mark.asyncio
    async def test_success_sends_api_key(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"page": 1, "results": [{"id": 1}]})

        async with make_client(handler) as client:
            data = await client.search(ContentType.MOVIE, "matrix", 1)

        assert data["results"] == [{"id": 1}]
        assert seen[0].url.path == "/3/search/movie"
        assert seen[0].url.params["api_key"] == "test_key"
        assert seen[0].url.params["query"] == "matrix"

    @pytest.mark.asyncio
    async def test_detail_appends_requested_extras(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"id": 550})

        extras = ExtrasConfig(collect_credits=True, collect_images=True)
        async with make_client(handler) as client:
            await client.get_detail(ContentType.MOVIE, 550, extras)

        assert seen[0].url.params["append_to_response"] == "credits,images"
        assert seen[0].url.params["include_image_language"] == "en,null"

    @pytest.mark.asyncio
    async def test_unauthorized_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(401, json={"status_message": "Invalid API key"})

        async with make_client(handler, max_retries=3) as client:
            with pytest.raises(AuthenticationError):
                await client.discover(ContentType.SERIES, DiscoverFilters(), 1)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_not_found(self):
        async with make_client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(ResourceNotFoundError):
                await client.get_collection(10)

    @pytest.mark.asyncio
    async def test_server_error_then_success(self):
        responses = [httpx.Response(500), httpx.Response(200, json={"id": 7})]

        async with make_client(lambda request: responses.pop(0), max_retries=2) as client:
            data = await client.get_person(7)

        assert data == {"id": 7}
        assert responses == []

    @pytest.mark.asyncio
    async def test_rate_limit_honours_retry_after(self):
        responses = [
            httpx.Response(429, headers={"Retry-After": "0"}),
            httpx.Response(200, json={"results": []}),
        ]

        async with make_client(lambda request: responses.pop(0), max_retries=1) as client:
            data = await client.search_person("Nolan", 1)

        assert data == {"results": []}

    @pytest.mark.asyncio
    async def test_persistent_timeout_raises_network_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler, max_retries=2) as client:
            with pytest.raises(NetworkError) as exc_info:
                await client.search(ContentType.MOVIE, "x", 1)

        assert len(calls) == 3
        assert exc_info.value.context["retry_count"] == 2

    @pytest.mark.asyncio
    async def test_other_client_error(self):
        async with make_client(lambda request: httpx.Response(422, text="bad")) as client:
            with pytest.raises(APIRequestError) as exc_info:
                await client.get_reviews(ContentType.MOVIE, 1, 2)

        assert exc_info.value.context["status_code"] == 422

    @pytest.mark.asyncio
    async def test_undecodable_body_is_request_error_without_retry(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.DecodingError("Error -3 while decompressing data", request=request)

        async with make_client(handler, max_retries=2) as client:
            with pytest.raises(APIRequestError) as exc_info:
                await client.get_detail(ContentType.MOVIE, 550, ExtrasConfig())

        assert len(calls) == 1
        assert isinstance(exc_info.value.original_exception, httpx.DecodingError)

    @pytest.mark.asyncio
    async def test_missing_key_fails_without_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        client = TMDbApiClient(None, transport=httpx.MockTransport(handler))
        with pytest.raises(MissingCredentialsError):
            await client.search(ContentType.MOVIE, "x", 1)
        await client.aclose()

        assert calls == []
