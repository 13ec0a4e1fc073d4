"""
Unit tests for TMDb website HTML extraction
"""

import pytest
from bs4 import BeautifulSoup
from ingestion.extractors.html_parser import (
    extract_detail,
    extract_keywords,
    extract_listing_items,
    parse_rating,
    resolve_next_url,
)
from ingestion.extractors.tmdb_web import build_web_listing_url
from schemas.harvest import DiscoverFilters
from models.base import ContentType

BASE = "https://www.themoviedb.org"


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class TestListingItems:
    """Test listing card parsing"""

    def test_extracts_cards_for_content_type(self):
        page = soup("""
            <div class="card">
              <a href="/movie/603-the-matrix"><h2>The Matrix</h2></a>
              <img class="poster" data-src="/p/603.jpg">
              <div class="overview"><p>Neo wakes up.</p></div>
              <span class="release_date">March 31, 1999</span>
            </div>
            <div class="card"><a href="/tv/1399-got"><h2>Game of Thrones</h2></a></div>
            <div class="card"><p>No link</p></div>
        """)

        items = extract_listing_items(page, ContentType.MOVIE, base_url=BASE)

        assert len(items) == 1
        assert items[0].id == 603
        assert items[0].title == "The Matrix"
        assert items[0].overview == "Neo wakes up."
        assert items[0].poster == "/p/603.jpg"
        assert items[0].href == f"{BASE}/movie/603-the-matrix"

    def test_repeated_id_on_one_page_is_collapsed(self):
        page = soup("""
            <div class="card"><a href="/tv/1-a"><h2>First</h2></a></div>
            <div class="card"><a href="/tv/1-a"><h2>Again</h2></a></div>
        """)

        items = extract_listing_items(page, ContentType.SERIES, base_url=BASE)

        assert [item.id for item in items] == [1]


class TestNextUrl:
    """Test next listing URL priority"""

    def test_infinite_scroll_marker_wins(self):
        page = soup("""
            <div id="pagination_page_1" data-next-page="3"></div>
            <a rel="next" href="/search/movie?query=x&page=2">Next</a>
        """)

        next_url = resolve_next_url(page, f"{BASE}/search/movie?query=x&page=2", base_url=BASE)

        assert next_url == f"{BASE}/search/movie?query=x&page=3"

    def test_rel_next_before_pagination_text(self):
        page = soup("""
            <div class="pagination">
              <a href="/discover/tv?page=9">Next page</a>
            </div>
            <a rel="next" href="/discover/tv?page=2">2</a>
        """)

        assert resolve_next_url(page, f"{BASE}/discover/tv", base_url=BASE) == f"{BASE}/discover/tv?page=2"

    @pytest.mark.parametrize("label", ["Next »", "›", "»", "NEXT"])
    def test_pagination_text_fallback(self, label):
        page = soup(f'<div class="pagination"><a href="/discover/tv?page=4">{label}</a></div>')

        assert resolve_next_url(page, f"{BASE}/discover/tv", base_url=BASE) == f"{BASE}/discover/tv?page=4"

    def test_no_next_link(self):
        page = soup('<div class="pagination"><a href="/discover/tv?page=1">Previous</a></div>')

        assert resolve_next_url(page, f"{BASE}/discover/tv", base_url=BASE) is None


class TestDetailExtraction:
    """Test detail page field extraction"""

    def test_movie_detail(self):
        page = soup("""
            <div class="title"><h2>Fight Club</h2></div>
            <div class="user_score_chart" data-percent="84"></div>
            <div class="overview"><p>An insomniac office worker.</p></div>
            <span class="genres"><a href="/genre/18">Drama</a><a href="/genre/18">Drama</a></span>
            <span class="release_date">10/15/1999 (US)</span>
            <section class="facts">
              <p><strong>Status</strong> Released</p>
              <p><strong>Runtime</strong> 139 min</p>
            </section>
            <div class="poster"><img src="/poster.jpg"></div>
            <section class="keywords">
              <a href="/keyword/825-support-group">support group</a>
              <a href="/keyword/825-support-group">support group</a>
            </section>
        """)

        detail = extract_detail(page, ContentType.MOVIE)

        assert detail.title == "Fight Club"
        assert detail.overview == "An insomniac office worker."
        assert detail.rating == 84
        assert detail.genres == ["Drama"]
        assert detail.status == "Released"
        assert detail.runtime == 139
        assert detail.release_date == "1999-01-01"
        assert detail.poster_path == "/poster.jpg"
        assert detail.keywords == [{"id": 825, "name": "support group"}]

    def test_series_detail(self):
        page = soup("""
            <h1>Dark</h1>
            <div data-testid="series_overview"><p>A missing child.</p></div>
            <section class="facts">
              <p>First Aired December 1, 2017</p>
              <p>Last Aired June 27, 2020</p>
              <p><strong>Status</strong> Ended</p>
            </section>
            <ul class="networks"><li>Netflix</li></ul>
            <div class="created_by"><a href="/person/1">Baran bo Odar</a></div>
        """)

        detail = extract_detail(page, ContentType.SERIES)

        assert detail.title == "Dark"
        assert detail.overview == "A missing child."
        assert detail.first_air_date == "December 1, 2017"
        assert detail.last_air_date == "June 27, 2020"
        assert detail.status == "Ended"
        assert detail.networks == ["Netflix"]
        assert detail.created_by == ["Baran bo Odar"]
        assert detail.runtime is None

    def test_missing_fields_stay_empty(self):
        detail = extract_detail(soup("<html><body></body></html>"), ContentType.MOVIE)

        assert detail.title is None
        assert detail.rating is None
        assert detail.genres == []
        assert detail.keywords == []

    def test_keywords_need_keyword_links(self):
        page = soup('<div class="keywords"><a href="/genre/1">Not a keyword</a><a href="/keyword/5">space</a></div>')

        assert extract_keywords(page) == [{"id": 5, "name": "space"}]


class TestParseRating:
    """Test rating text parsing"""

    def test_percent_text_scaled(self):
        assert parse_rating("78%") == 7.8

    def test_plain_number(self):
        assert parse_rating("7.3") == 7.3

    def test_unparseable(self):
        assert parse_rating("NR") is None
        assert parse_rating(None) is None


class TestWebListingUrl:
    """Test website listing URLs"""

    def test_search_url(self):
        url = build_web_listing_url(ContentType.MOVIE, "the matrix", DiscoverFilters(), 2, base_url=BASE)

        assert url == f"{BASE}/search/movie?query=the+matrix&page=2"

    def test_discover_url_with_filters(self):
        filters = DiscoverFilters(genre_ids=[18], year_to=2001)
        url = build_web_listing_url(ContentType.SERIES, None, filters, 1, base_url=BASE)

        assert url.startswith(f"{BASE}/discover/tv?")
        assert "with_genres=18" in url
        assert "first_air_date.lte=2001-12-31" in url
