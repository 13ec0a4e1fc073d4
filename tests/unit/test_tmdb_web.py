"""
Unit tests for the TMDb website client
"""

import random
import pytest
import httpx
from ingestion.extractors.tmdb_web import BrowserHeaderGenerator, ProxyRotator, TMDbWebClient
from core.exceptions import WebRequestError


def make_client(handler, **kwargs) -> TMDbWebClient:
    return TMDbWebClient(
        base_url="https://web.test",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs
    )


class TestBrowserHeaders:
    """Test randomized browser headers"""

    def test_chrome_desktop_headers(self):
        generator = BrowserHeaderGenerator(rng=random.Random(7))

        for _ in range(20):
            headers = generator.get_headers()
            version = int(headers["User-Agent"].split("Chrome/")[1].split(".")[0])
            assert 120 <= version <= 130
            assert headers["sec-ch-ua-platform"] in ('"Windows"', '"macOS"')
            assert headers["sec-ch-ua-mobile"] == "?0"


class TestProxyRotator:
    """Test proxy validation and rotation"""

    def test_round_robin(self):
        rotator = ProxyRotator.from_urls(["http://p1:8000", "http://p2:8000"])

        assert [rotator.new_url() for _ in range(3)] == ["http://p1:8000", "http://p2:8000", "http://p1:8000"]

    def test_no_proxies(self):
        assert ProxyRotator.from_urls([]) is None

    def test_invalid_proxy_means_no_proxy(self):
        assert ProxyRotator.from_urls(["ftp://p1:21"]) is None


class TestTMDbWebClient:
    """Test page fetching"""

    @pytest.mark.asyncio
    async def test_fetch_parses_html_with_browser_headers(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="<html><h1>Dune</h1></html>")

        async with make_client(handler) as client:
            page = await client.fetch("https://web.test/movie/438631")

        assert page.soup.select_one("h1").get_text() == "Dune"
        assert page.final_url == "https://web.test/movie/438631"
        assert "Chrome/" in seen[0].headers["User-Agent"]
        assert seen[0].headers["Accept-Language"] == "en-US,en;q=0.9"

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self):
        responses = [httpx.Response(503), httpx.Response(200, text="<p>ok</p>")]

        async with make_client(lambda request: responses.pop(0), max_retries=1) as client:
            page = await client.fetch("https://web.test/discover/tv")

        assert page.soup.p.get_text() == "ok"

    @pytest.mark.asyncio
    async def test_client_error_raises(self):
        async with make_client(lambda request: httpx.Response(404), max_retries=3) as client:
            with pytest.raises(WebRequestError) as exc_info:
                await client.fetch("https://web.test/movie/0")

        assert exc_info.value.context["status_code"] == 404

    @pytest.mark.asyncio
    async def test_connection_failure_after_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(WebRequestError):
                await client.fetch("https://web.test/search/movie?query=x")

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_redirect_loop_raises_web_request_error(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(302, headers={"Location": str(request.url)})

        async with make_client(handler, max_retries=1) as client:
            with pytest.raises(WebRequestError) as exc_info:
                await client.fetch("https://web.test/discover/movie?page=1")

        assert isinstance(exc_info.value.original_exception, httpx.TooManyRedirects)
        assert exc_info.value.context["url"] == "https://web.test/discover/movie?page=1"
        # One attempt: the redirect chain is not retried
        assert len(calls) == 21
