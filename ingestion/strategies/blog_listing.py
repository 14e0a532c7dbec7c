"""Site-specific strategy for a paginated blog listing.

The listing is rendered with a headless Chromium (Playwright) because the
pagination is client-side. All parsing happens on the rendered HTML through
BeautifulSoup so it can be exercised without a browser by injecting a page
source.
"""

from __future__ import annotations

import re
from typing import Any, AsyncContextManager, Callable, List, Optional, Protocol
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from ingestion.models.domain import ScrapedArticle, ScraperOptions
from ingestion.utils.html import parse_datetime, parse_html
from ingestion.utils.logging import get_logger

from .base import ScrapeError, ScraperStrategy

logger = get_logger(__name__)

LAST_PAGE_SELECTORS: tuple[str, ...] = (
    ".pagination a:last-child",
    ".pagination li:last-child a",
    "nav[aria-label=\"pagination\"] a:last-child",
    ".page-numbers:last-child",
)
ACTIVE_PAGE_SELECTORS: tuple[str, ...] = (
    ".pagination .active",
    ".pagination li.active a",
    "nav[aria-label=\"pagination\"] .current",
)
ENTRY_SELECTORS: tuple[str, ...] = (
    "article",
    ".post",
    ".blog-post",
    ".article-item",
    "[class*=\"article\"]",
    "[class*=\"post\"]",
)
TITLE_SELECTORS: tuple[str, ...] = ("h1", "h2", "h3", ".title", "[class*=\"title\"]")
CONTENT_SELECTORS: tuple[str, ...] = (".content", ".excerpt", "p", "[class*=\"content\"]")
AUTHOR_SELECTORS: tuple[str, ...] = (".author", "[class*=\"author\"]", "[rel=\"author\"]")
DATE_SELECTORS: tuple[str, ...] = ("time", ".date", "[class*=\"date\"]")

NAVIGATION_TIMEOUT_SECONDS = 10

_LEADING_INT = re.compile(r"\s*(\d+)")


class PageSource(Protocol):
    async def fetch(self, url: str, *, timeout_seconds: Optional[int] = None) -> str: ...  # noqa: D401


PageSourceFactory = Callable[[ScraperOptions], AsyncContextManager[PageSource]]


class PlaywrightPageSource:
    """Headless Chromium page that returns rendered HTML."""

    def __init__(self, options: ScraperOptions) -> None:
        self._options = options
        self._playwright: Any = None
        self._browser: Any = None
        self._page: Any = None

    async def __aenter__(self) -> "PlaywrightPageSource":
        from playwright.async_api import async_playwright  # lazy import

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self._options.headless,
            args=["--no-sandbox", "--disable-setuid-sandbox"],
        )
        self._page = await self._browser.new_page()
        self._page.set_default_navigation_timeout(self._options.timeout_seconds * 1000)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()

    async def fetch(self, url: str, *, timeout_seconds: Optional[int] = None) -> str:
        kwargs: dict[str, Any] = {"wait_until": "networkidle"}
        if timeout_seconds is not None:
            kwargs["timeout"] = timeout_seconds * 1000
        await self._page.goto(url, **kwargs)
        return await self._page.content()


def _page_number(soup: BeautifulSoup, selectors: tuple[str, ...]) -> Optional[int]:
    for selector in selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        match = _LEADING_INT.match(element.get_text())
        if match:
            return int(match.group(1))
    return None


def find_last_page(soup: BeautifulSoup) -> int:
    """Last page number from the pagination widget, 1 when there is none."""
    number = _page_number(soup, LAST_PAGE_SELECTORS)
    if number is None:
        logger.warning("scrape.listing.no_pagination")
        return 1
    return number


def current_page_number(soup: BeautifulSoup) -> int:
    number = _page_number(soup, ACTIVE_PAGE_SELECTORS)
    return 1 if number is None else number


def page_url_candidates(base_url: str, page: int) -> list[str]:
    return [
        f"{base_url}?page={page}",
        f"{base_url}/page/{page}",
        f"{base_url}?p={page}",
    ]


def _first_text(entry: Tag, selectors: tuple[str, ...]) -> str:
    for selector in selectors:
        node = entry.select_one(selector)
        if node is not None:
            return node.get_text().strip()
    return ""


def _entry_date(entry: Tag) -> Optional[str]:
    for selector in DATE_SELECTORS:
        node = entry.select_one(selector)
        if node is not None:
            return node.get("datetime") or node.get_text().strip()
    return None


def _entry_to_article(entry: Tag, page_url: str) -> Optional[ScrapedArticle]:
    title = _first_text(entry, TITLE_SELECTORS) or "Untitled"
    content = _first_text(entry, CONTENT_SELECTORS)
    link = entry.find("a")
    href = (link.get("href") or "").strip() if link is not None else ""
    if href and not href.startswith("http"):
        href = urljoin(page_url, href)
    if not href:
        return None
    return ScrapedArticle(
        title=title,
        content=content,
        source_url=href,
        author=_first_text(entry, AUTHOR_SELECTORS) or None,
        published_at=parse_datetime(_entry_date(entry)),
    )


def extract_listing_entries(soup: BeautifulSoup, page_url: str, max_articles: int) -> List[ScrapedArticle]:
    """Extract up to ``max_articles`` entries from a rendered listing page."""
    entries: list[Tag] = []
    for selector in ENTRY_SELECTORS:
        entries = soup.select(selector)
        if entries:
            logger.info("scrape.listing.entries", extra={"selector": selector, "count": len(entries)})
            break
    if not entries:
        raise ScrapeError("No articles found on page")

    articles: List[ScrapedArticle] = []
    for index, entry in enumerate(entries[:max_articles]):
        try:
            article = _entry_to_article(entry, page_url)
        except ValueError as exc:
            logger.warning("scrape.listing.entry_failed", extra={"index": index + 1, "error": str(exc)})
            continue
        if article is not None:
            articles.append(article)
    return articles


class BlogListingStrategy(ScraperStrategy):
    """Takes the oldest entries of a paginated blog (its last listing page)."""

    name = "blog_listing"

    def __init__(self, base_url: str, page_source_factory: PageSourceFactory | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        parsed = urlparse(self._base_url)
        self._marker = f"{parsed.netloc}{parsed.path}".lower()
        self._page_source_factory: PageSourceFactory = page_source_factory or PlaywrightPageSource

    def can_handle(self, url: str) -> bool:
        return self._marker in url.lower()

    async def scrape(self, url: str, options: Optional[ScraperOptions] = None) -> List[ScrapedArticle]:
        opts = options or ScraperOptions()
        logger.info("scrape.listing.start", extra={"url": url, "max_articles": opts.max_articles})
        try:
            async with self._page_source_factory(opts) as pages:
                soup = parse_html(await pages.fetch(url))
                page_url = url
                last_page = find_last_page(soup)
                logger.info("scrape.listing.pages", extra={"last_page": last_page})
                if last_page > 1:
                    soup, page_url = await self._navigate_to_page(pages, last_page)
                articles = extract_listing_entries(soup, page_url, opts.max_articles)
        except ScrapeError:
            raise
        except Exception as exc:
            logger.error("scrape.listing.failed", extra={"url": url, "error": str(exc)})
            raise ScrapeError(f"Failed to scrape blog listing: {exc}") from exc

        logger.info("scrape.listing.done", extra={"url": url, "count": len(articles)})
        return articles

    async def _navigate_to_page(self, pages: PageSource, page: int) -> tuple[BeautifulSoup, str]:
        for candidate in page_url_candidates(self._base_url, page):
            try:
                html = await pages.fetch(candidate, timeout_seconds=NAVIGATION_TIMEOUT_SECONDS)
            except Exception as exc:  # noqa: BLE001 - next pattern
                logger.debug("scrape.listing.pattern_failed", extra={"url": candidate, "error": str(exc)})
                continue
            soup = parse_html(html)
            if current_page_number(soup) == page:
                return soup, candidate
        raise ScrapeError(f"Could not navigate to page {page}")
