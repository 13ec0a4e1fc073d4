"""
TMDb website client for the scraping fallback.

Requests carry randomized desktop-browser headers and, when proxies are
configured, rotate through them. Pages are returned parsed with
BeautifulSoup together with the final URL after redirects.
"""

import asyncio
import itertools
import random
import httpx
from bs4 import BeautifulSoup
from typing import Dict, List, Optional
from urllib.parse import urlencode
from models.base import ContentType
from schemas.harvest import DiscoverFilters
from core.config import settings
from core.exceptions import WebRequestError, ProxyConfigurationError
import logging

logger = logging.getLogger(__name__)

WEB_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Pragma": "no-cache",
}


class BrowserHeaderGenerator:
    """Randomized Chrome 120-130 desktop headers (Windows or macOS)"""

    PLATFORMS = {
        "Windows": "Windows NT 10.0; Win64; x64",
        "macOS": "Macintosh; Intel Mac OS X 10_15_7",
    }

    def __init__(self, min_version: int = 120, max_version: int = 130, rng: Optional[random.Random] = None):
        self.min_version = min_version
        self.max_version = max_version
        self.rng = rng or random.Random()

    def get_headers(self) -> Dict[str, str]:
        version = self.rng.randint(self.min_version, self.max_version)
        platform = self.rng.choice(list(self.PLATFORMS))
        user_agent = (
            f"Mozilla/5.0 ({self.PLATFORMS[platform]}) AppleWebKit/537.36 "
            f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36"
        )
        return {
            "User-Agent": user_agent,
            "sec-ch-ua": f'"Chromium";v="{version}", "Google Chrome";v="{version}", "Not?A_Brand";v="99"',
            "sec-ch-ua-mobile": "?0",
            "sec-ch-ua-platform": f'"{platform}"',
            "Upgrade-Insecure-Requests": "1",
        }


class ProxyRotator:
    """Round-robin over configured proxy URLs"""

    def __init__(self, proxy_urls: List[str]):
        self.proxy_urls = list(proxy_urls)
        self._cycle = itertools.cycle(self.proxy_urls) if self.proxy_urls else None

    @classmethod
    def from_urls(cls, proxy_urls: List[str]) -> Optional["ProxyRotator"]:
        """
        Validate proxy URLs; any failure means running without a proxy.
        """
        if not proxy_urls:
            return None
        try:
            for proxy_url in proxy_urls:
                parsed = httpx.URL(proxy_url)
                if parsed.scheme not in ("http", "https", "socks5") or not parsed.host:
                    raise ProxyConfigurationError(
                        "Unsupported proxy URL",
                        context={"proxy_scheme": parsed.scheme}
                    )
        except (ProxyConfigurationError, httpx.InvalidURL) as e:
            logger.warning(f"Proxy configuration failed ({e}), continuing without proxy.")
            return None
        return cls(proxy_urls)

    def new_url(self) -> Optional[str]:
        return next(self._cycle) if self._cycle else None


def build_web_listing_url(
    content_type: ContentType,
    query: Optional[str],
    filters: DiscoverFilters,
    page: int,
    base_url: Optional[str] = None
) -> str:
    """Search URL for a query, discover URL with filters otherwise"""
    base = (base_url or settings.TMDB_WEB_BASE).rstrip("/")
    if query is not None:
        return f"{base}/search/{content_type.value}?{urlencode({'query': query, 'page': page})}"

    params = {"page": page}
    if filters.genre_ids:
        params["with_genres"] = ",".join(str(genre) for genre in filters.genre_ids)
    if filters.sort_by:
        params["sort_by"] = filters.sort_by
    date_field = "primary_release_date" if content_type == ContentType.MOVIE else "first_air_date"
    if filters.year_from:
        params[f"{date_field}.gte"] = f"{filters.year_from}-01-01"
    if filters.year_to:
        params[f"{date_field}.lte"] = f"{filters.year_to}-12-31"
    return f"{base}/discover/{content_type.value}?{urlencode(params)}"


class WebPage:
    """Parsed HTML page and the URL it was finally served from"""

    def __init__(self, soup: BeautifulSoup, final_url: str):
        self.soup = soup
        self.final_url = final_url


class TMDbWebClient:
    """Fetch and parse TMDb website pages"""

    def __init__(
        self,
        proxy_rotator: Optional[ProxyRotator] = None,
        header_generator: Optional[BrowserHeaderGenerator] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 1.0,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.proxy_rotator = proxy_rotator
        self.header_generator = header_generator or BrowserHeaderGenerator()
        self.timeout = timeout or settings.REQUEST_TIMEOUT_SECS
        self.max_retries = settings.WEB_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = retry_delay
        self.base_url = (base_url or settings.TMDB_WEB_BASE).rstrip("/")
        self._transport = transport
        self._clients: Dict[Optional[str], httpx.AsyncClient] = {}

    async def __aenter__(self) -> "TMDbWebClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

    def _client_for(self, proxy_url: Optional[str]) -> httpx.AsyncClient:
        client = self._clients.get(proxy_url)
        if client is None:
            client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                proxy=proxy_url if self._transport is None else None,
                transport=self._transport,
            )
            self._clients[proxy_url] = client
        return client

    async def fetch(self, url: str) -> WebPage:
        """
        GET a page and parse it.

        Raises:
            WebRequestError: HTTP status >= 400, transport failure after retries,
                a redirect loop, an undecodable body or an invalid URL
        """
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            delay = self.retry_delay * (2 ** attempt)
            headers = {**self.header_generator.get_headers(), **WEB_HEADERS}
            proxy_url = self.proxy_rotator.new_url() if self.proxy_rotator else None

            try:
                response = await self._client_for(proxy_url).get(url, headers=headers)
            except httpx.TransportError as e:
                if not last_attempt:
                    logger.warning(f"Web request error for {url}. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                raise WebRequestError(
                    f"TMDb web request failed for {url}",
                    context={"url": url, "retry_count": attempt},
                    original_exception=e
                )
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise WebRequestError(
                    f"TMDb web request failed for {url}: {type(e).__name__}",
                    context={"url": url},
                    original_exception=e
                )

            if response.status_code >= 500 and not last_attempt:
                logger.warning(f"Web server error {response.status_code} for {url}. Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise WebRequestError(
                    f"TMDb web request failed ({response.status_code}) for {url}",
                    context={"url": url, "status_code": response.status_code}
                )

            return WebPage(BeautifulSoup(response.text, "html.parser"), str(response.url))

        raise WebRequestError(f"TMDb web request exhausted retries for {url}", context={"url": url})
