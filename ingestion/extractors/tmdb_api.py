"""
TMDb v3 API client with retry logic.

This module provides:
- Exponential backoff retry for transient failures (timeouts, 5xx, 429)
- Typed errors for authentication and missing resources
- Helpers for search, discover, detail, reviews, collection and people
"""

import httpx
import asyncio
from typing import Dict, Any, Optional
from models.base import ContentType
from schemas.harvest import DiscoverFilters, ExtrasConfig
from core.config import settings
from core.exceptions import (
    APIRequestError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
    MissingCredentialsError,
)
import logging

logger = logging.getLogger(__name__)


def build_discover_params(content_type: ContentType, filters: DiscoverFilters, page: int) -> Dict[str, Any]:
    """Discover endpoint parameters; date keys depend on the content type"""
    params: Dict[str, Any] = {
        "page": page,
        "sort_by": filters.sort_by or "popularity.desc",
        "include_adult": "false",
    }
    if filters.genre_ids:
        params["with_genres"] = ",".join(str(genre) for genre in filters.genre_ids)

    date_field = "primary_release_date" if content_type == ContentType.MOVIE else "first_air_date"
    if filters.year_from:
        params[f"{date_field}.gte"] = f"{filters.year_from}-01-01"
    if filters.year_to:
        params[f"{date_field}.lte"] = f"{filters.year_to}-12-31"
    return params


class TMDbApiClient:
    """
    Authenticated TMDb API client.

    Attributes:
        max_retries: Retries after the first attempt (default: settings.API_MAX_RETRIES)
        retry_delay: Initial retry delay in seconds (default: 1.0)
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = (base_url or settings.TMDB_API_BASE).rstrip("/")
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECS
        self.max_retries = settings.API_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = retry_delay
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "TMDbApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        label: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        GET a TMDb API path with retry logic and exponential backoff.

        Args:
            path: Path below the API base (e.g. "/movie/550")
            params: Query parameters; None/empty values are dropped
            label: Short description used in errors and logs

        Returns:
            Decoded JSON body

        Raises:
            MissingCredentialsError: No API key configured
            AuthenticationError: HTTP 401/403
            ResourceNotFoundError: HTTP 404
            RateLimitError: HTTP 429 after retries
            NetworkError: Timeouts, connection errors or 5xx after retries
            APIRequestError: Any other HTTP status >= 400, bad JSON or an
                unusable response (redirect loop, undecodable body, invalid URL)
        """
        if not self.api_key:
            raise MissingCredentialsError("TMDb API key is missing.", context={"path": path})

        query = {"api_key": self.api_key}
        for key, value in (params or {}).items():
            if value is None or value == "":
                continue
            query[key] = ",".join(str(v) for v in value) if isinstance(value, (list, tuple)) else str(value)

        url = f"{self.base_url}{path}"
        label = label or path
        attempts = self.max_retries + 1
        context = {"path": path, "label": label}

        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            delay = self.retry_delay * (2 ** attempt)
            try:
                logger.debug(f"Request attempt {attempt + 1}/{attempts} to {path}")
                response = await self._client.get(url, params=query)

            except httpx.TimeoutException as e:
                if not last_attempt:
                    logger.warning(f"Request timeout for {label}. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"TMDb API {label} timed out after {attempts} attempts",
                    context={**context, "timeout": self.timeout, "retry_count": attempt},
                    original_exception=e
                )

            except httpx.TransportError as e:
                if not last_attempt:
                    logger.warning(f"Network error for {label}. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"TMDb API {label} network error after {attempts} attempts",
                    context={**context, "retry_count": attempt},
                    original_exception=e
                )

            except (httpx.HTTPError, httpx.InvalidURL) as e:
                # Redirect loops, undecodable bodies and malformed URLs are not retried
                raise APIRequestError(
                    f"TMDb API {label} request failed: {type(e).__name__}",
                    context=context,
                    original_exception=e
                )

            status = response.status_code

            if status in (401, 403):
                raise AuthenticationError(
                    f"TMDb API {label} failed with HTTP {status}",
                    context={**context, "status_code": status}
                )

            if status == 404:
                raise ResourceNotFoundError(
                    f"TMDb API {label} failed with HTTP 404",
                    context={**context, "status_code": status}
                )

            if status == 429:
                retry_after = _retry_after_seconds(response, delay)
                if not last_attempt:
                    logger.warning(f"Rate limited on {label}. Retrying after {retry_after} seconds")
                    await asyncio.sleep(retry_after)
                    continue
                raise RateLimitError(
                    f"TMDb API {label} rate limit exceeded",
                    context={**context, "status_code": status, "retry_count": attempt},
                    retry_after=retry_after
                )

            if status >= 500:
                if not last_attempt:
                    logger.warning(
                        f"Server error {status} on {label}. "
                        f"Retrying in {delay} seconds (attempt {attempt + 1}/{attempts})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"TMDb API {label} failed with HTTP {status}",
                    context={
                        **context,
                        "status_code": status,
                        "retry_count": attempt,
                        "response_body": response.text[:500]
                    }
                )

            if status >= 400:
                raise APIRequestError(
                    f"TMDb API {label} failed with HTTP {status}",
                    context={**context, "status_code": status, "response_body": response.text[:500]}
                )

            try:
                return response.json()
            except ValueError as e:
                raise APIRequestError(
                    f"TMDb API {label} returned invalid JSON",
                    context={**context, "response_body": response.text[:500]},
                    original_exception=e
                )

        # Loop always returns or raises
        raise APIRequestError(f"TMDb API {label} exhausted retries", context=context)

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def search(self, content_type: ContentType, query: str, page: int) -> Dict[str, Any]:
        endpoint = f"/search/{content_type.value}"
        return await self.request(
            endpoint,
            params={"query": query, "page": page, "include_adult": "false"},
            label=f"{endpoint} page {page}"
        )

    async def discover(self, content_type: ContentType, filters: DiscoverFilters, page: int) -> Dict[str, Any]:
        endpoint = f"/discover/{content_type.value}"
        return await self.request(
            endpoint,
            params=build_discover_params(content_type, filters, page),
            label=f"{endpoint} page {page}"
        )

    async def get_detail(self, content_type: ContentType, item_id: int, extras: ExtrasConfig) -> Dict[str, Any]:
        """Detail with every requested extras block appended in one call"""
        append = extras.append_to_response()
        params = {"append_to_response": ",".join(append), "include_image_language": "en,null"} if append else {}
        return await self.request(
            f"/{content_type.value}/{item_id}",
            params=params,
            label=f"{content_type.value} {item_id}"
        )

    async def get_reviews(self, content_type: ContentType, item_id: int, page: int) -> Dict[str, Any]:
        return await self.request(
            f"/{content_type.value}/{item_id}/reviews",
            params={"page": page},
            label=f"{content_type.value} reviews"
        )

    async def get_collection(self, collection_id: int) -> Dict[str, Any]:
        return await self.request(f"/collection/{collection_id}", label="collection")

    async def search_person(self, query: str, page: int) -> Dict[str, Any]:
        return await self.request(
            "/search/person",
            params={"query": query, "page": page},
            label="search/person"
        )

    async def get_person(self, person_id: int) -> Dict[str, Any]:
        return await self.request(
            f"/person/{person_id}",
            params={"append_to_response": "combined_credits,images,external_ids"},
            label=f"person {person_id}"
        )


def _retry_after_seconds(response: httpx.Response, fallback: float) -> float:
    value = response.headers.get("Retry-After")
    if not value:
        return fallback
    try:
        return max(0.0, float(value))
    except ValueError:
        return fallback
