"""
HTML extraction for TMDb listing and detail pages.

Detail fields are resolved through prioritized extractor lists: the
first extractor that yields a non-empty value wins, so layout variants of
the site can be supported by appending another extractor.
"""

import re
from typing import Callable, List, Optional, Sequence
from urllib.parse import urljoin, urlparse, parse_qsl, urlencode, urlunparse
from bs4 import BeautifulSoup, Tag
from pydantic import BaseModel, Field
from models.base import ContentType
from core.config import settings

ID_PATTERN = re.compile(r"/(movie|tv)/(\d+)")
KEYWORD_PATTERN = re.compile(r"/keyword/(\d+)")
RUNTIME_PATTERN = re.compile(r"(\d+)\s*min", re.IGNORECASE)
RELEASE_DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2}|\d{4})")
FIRST_AIRED_PATTERN = re.compile(r"First Aired\s+([A-Za-z]+\s+\d{1,2},\s+\d{4})", re.IGNORECASE)
LAST_AIRED_PATTERN = re.compile(r"Last Aired\s+([A-Za-z]+\s+\d{1,2},\s+\d{4})", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")

NEXT_LINK_SELECTORS = (
    'a[rel="next"]',
    '.pagination a[rel="next"]',
    ".pagination .next a",
    ".pagination a.next",
    'a[aria-label="next"]',
    'a[aria-label="Next"]',
)
NEXT_LINK_TEXTS = ("next", "›", "»")


class CandidateItem(BaseModel):
    """Content item discovered on a listing page"""
    id: int
    title: Optional[str] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    poster: Optional[str] = None
    href: str


class WebDetail(BaseModel):
    """Fields scraped from a detail page"""
    title: Optional[str] = None
    overview: Optional[str] = None
    rating: Optional[float] = None
    genres: List[str] = Field(default_factory=list)
    release_date: Optional[str] = None
    runtime: Optional[int] = None
    first_air_date: Optional[str] = None
    last_air_date: Optional[str] = None
    status: Optional[str] = None
    networks: List[str] = Field(default_factory=list)
    created_by: List[str] = Field(default_factory=list)
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    keywords: List[dict] = Field(default_factory=list)


Extractor = Callable[[BeautifulSoup], Optional[str]]


def _text(node: Optional[Tag]) -> Optional[str]:
    if node is None:
        return None
    text = node.get_text(" ", strip=True)
    return text or None


def _first_text(selector: str) -> Extractor:
    return lambda soup: _text(soup.select_one(selector))


def _first_match(extractors: Sequence[Extractor], soup: BeautifulSoup) -> Optional[str]:
    for extractor in extractors:
        value = extractor(soup)
        if value:
            return value
    return None


def _unique_texts(soup: BeautifulSoup, selector: str) -> List[str]:
    values = []
    for node in soup.select(selector):
        text = _text(node)
        if text and text not in values:
            values.append(text)
    return values


def _own_text(node: Tag) -> str:
    """Text of a node excluding its child elements"""
    return " ".join(
        str(child).strip() for child in node.children
        if not isinstance(child, Tag) and str(child).strip()
    )


def _score_percent(soup: BeautifulSoup) -> Optional[str]:
    chart = soup.select_one(".user_score_chart[data-percent]")
    if chart is None:
        return None
    return chart.get("data-percent") or None


def _image_src(soup: BeautifulSoup, selector: str) -> Optional[str]:
    node = soup.select_one(selector)
    if node is None:
        return None
    return node.get("src") or None


# ============================================================================
# Listing pages
# ============================================================================

def extract_listing_items(soup: BeautifulSoup, content_type: ContentType, base_url: Optional[str] = None) -> List[CandidateItem]:
    """
    Parse listing cards into candidates.

    Cards whose link points to the other content type are ignored; a
    repeated id on the same page keeps the last card.
    """
    base = base_url or settings.TMDB_WEB_BASE
    entries = {}

    for card in soup.select(".card"):
        link = card.select_one(f'a[href^="/{content_type.value}/"]')
        if link is None:
            continue
        href = link.get("href")
        match = ID_PATTERN.search(href or "")
        if not match or match.group(1) != content_type.value:
            continue
        item_id = int(match.group(2))
        if not item_id:
            continue

        poster_node = card.select_one("img.poster")
        poster = None
        if poster_node is not None:
            poster = poster_node.get("data-src") or poster_node.get("src") or None

        entries[item_id] = CandidateItem(
            id=item_id,
            title=_text(card.select_one("h2, h3")) or _text(link),
            overview=_text(card.select_one(".overview p")),
            release_date=_text(card.select_one(".release_date")),
            poster=poster,
            href=urljoin(base, href),
        )

    return list(entries.values())


def resolve_next_url(soup: BeautifulSoup, current_url: str, base_url: Optional[str] = None) -> Optional[str]:
    """
    Next listing URL, or None when there is no further page.

    Priority: infinite-scroll marker, rel=next and pagination selectors,
    then any pagination link labelled as "next".
    """
    marker = soup.select_one('[id^="pagination_page_"][data-next-page]')
    if marker is not None and marker.get("data-next-page"):
        return _with_page(current_url, marker["data-next-page"])

    base = base_url or current_url
    for selector in NEXT_LINK_SELECTORS:
        link = soup.select_one(selector)
        if link is not None and link.get("href"):
            return urljoin(base, link["href"])

    for link in soup.select(".pagination a"):
        text = (link.get_text(strip=True) or "").lower()
        if text in NEXT_LINK_TEXTS or "next" in text:
            if link.get("href"):
                return urljoin(base, link["href"])

    return None


def _with_page(url: str, page: str) -> str:
    parts = urlparse(url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "page"]
    query.append(("page", str(page)))
    return urlunparse(parts._replace(query=urlencode(query)))


# ============================================================================
# Detail pages
# ============================================================================

TITLE_EXTRACTORS: List[Extractor] = [
    _first_text(".title h2, .header h2, h1"),
    _first_text('[data-testid="hero-title"]'),
]

OVERVIEW_EXTRACTORS: List[Extractor] = [
    _first_text('[data-testid="series_overview"] p, .overview p, .plot, .summary'),
    _first_text('[data-testid="overview"]'),
    _first_text(".panel h3 + p"),
]

RATING_EXTRACTORS: List[Extractor] = [
    lambda soup: _score_percent(soup),
    _first_text('[data-testid="score"]'),
    _first_text(".vote_average"),
]

POSTER_EXTRACTORS: List[Extractor] = [
    lambda soup: _image_src(soup, ".poster img"),
    lambda soup: _image_src(soup, ".profile img"),
]

BACKDROP_EXTRACTORS: List[Extractor] = [
    lambda soup: _image_src(soup, ".backdrop img, .hero_image img"),
]


def parse_rating(text: Optional[str]) -> Optional[float]:
    """Percent scores (e.g. "78%") become a 0-10 rating"""
    if not text:
        return None
    match = NUMBER_PATTERN.search(text)
    if not match:
        return None
    value = float(match.group(1))
    return value / 10 if "%" in text else value


def extract_keywords(soup: BeautifulSoup) -> List[dict]:
    keywords = []
    seen = set()
    for link in soup.select('.keywords a[href*="/keyword/"], a[href^="/keyword/"]'):
        match = KEYWORD_PATTERN.search(link.get("href", ""))
        name = _text(link)
        if not match or not name:
            continue
        keyword_id = int(match.group(1))
        if keyword_id in seen:
            continue
        seen.add(keyword_id)
        keywords.append({"id": keyword_id, "name": name})
    return keywords


def extract_detail(soup: BeautifulSoup, content_type: ContentType) -> WebDetail:
    """Scrape every supported field from a detail page"""
    detail = WebDetail(
        title=_first_match(TITLE_EXTRACTORS, soup),
        overview=_first_match(OVERVIEW_EXTRACTORS, soup),
        rating=parse_rating(_first_match(RATING_EXTRACTORS, soup)),
        genres=_unique_texts(soup, '.genres a, .genre, [data-testid="genres"] a'),
        poster_path=_first_match(POSTER_EXTRACTORS, soup),
        backdrop_path=_first_match(BACKDROP_EXTRACTORS, soup),
        keywords=extract_keywords(soup),
    )

    facts = soup.select(".facts p")
    for fact in facts:
        label = (_text(fact.select_one("strong")) or "").lower()
        value = _own_text(fact)
        if content_type == ContentType.MOVIE and "runtime" in label:
            match = RUNTIME_PATTERN.search(value)
            if match:
                detail.runtime = int(match.group(1))
        if "status" in label:
            detail.status = value or None

    date_text = " ".join(node.get_text(" ", strip=True) for node in soup.select(
        ".release_date, .facts p" if content_type == ContentType.MOVIE else ".first_air_date, .last_air_date, .facts p"
    ))
    if content_type == ContentType.MOVIE:
        match = RELEASE_DATE_PATTERN.search(date_text)
        if match:
            value = match.group(1)
            detail.release_date = f"{value}-01-01" if len(value) == 4 else value
    else:
        first_match = FIRST_AIRED_PATTERN.search(date_text)
        if first_match:
            detail.first_air_date = first_match.group(1)
        last_match = LAST_AIRED_PATTERN.search(date_text)
        if last_match:
            detail.last_air_date = last_match.group(1)

    detail.created_by = [text for text in (_text(node) for node in soup.select(".created_by a")) if text]
    detail.networks = [text for text in (_text(node) for node in soup.select(".networks li")) if text]
    return detail
