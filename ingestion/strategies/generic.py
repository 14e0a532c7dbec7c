"""Fallback strategy: one page, one article."""

from __future__ import annotations

from typing import List, Optional

import httpx

from ingestion.models.domain import ScrapedArticle, ScraperOptions
from ingestion.utils.html import (
    USER_AGENT,
    extract_author,
    extract_main_content,
    extract_published_at,
    extract_title,
    parse_html,
)
from ingestion.utils.logging import get_logger

from .base import ScrapeError, ScraperStrategy

logger = get_logger(__name__)

GENERIC_CONTENT_SELECTORS: tuple[str, ...] = (
    "article",
    ".article-content",
    ".post-content",
    ".entry-content",
    "main",
    "[role=\"main\"]",
    ".content",
)


class GenericArticleStrategy(ScraperStrategy):
    """Fetches a single URL and extracts its main article text."""

    name = "generic"

    def can_handle(self, url: str) -> bool:
        return True

    async def scrape(self, url: str, options: Optional[ScraperOptions] = None) -> List[ScrapedArticle]:
        opts = options or ScraperOptions()
        logger.info("scrape.generic.start", extra={"url": url})
        try:
            async with httpx.AsyncClient(
                timeout=opts.timeout_seconds,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("scrape.generic.failed", extra={"url": url, "error": str(exc)})
            raise ScrapeError(f"Failed to scrape article: {exc}") from exc

        soup = parse_html(response.text)
        title = extract_title(soup)
        content = extract_main_content(
            soup,
            GENERIC_CONTENT_SELECTORS,
            min_length=100,
            paragraph_min_length=20,
            use_largest_block=False,
        )
        article = ScrapedArticle(
            title=title[:512],
            content=content,
            source_url=url,
            author=extract_author(soup),
            published_at=extract_published_at(soup),
        )
        logger.info("scrape.generic.done", extra={"url": url, "title": article.title})
        return [article]
