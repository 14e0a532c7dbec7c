"""Fetches reference pages and extracts their readable text."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

import httpx

from enhancement.errors import ScrapeError
from enhancement.models.domain import ScrapedContent
from ingestion.settings import Settings, get_settings
from ingestion.utils.html import USER_AGENT, extract_main_content, extract_title, parse_html
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


class ContentExtractor:
    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()

    async def scrape_article(self, url: str) -> ScrapedContent:
        """Fetch ``url`` and return its title and main content.

        Raises ScrapeError on transport failures and non-2xx responses.
        """
        logger.info("extract.start", extra={"url": url})
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.content_fetch_timeout_seconds,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("extract.failed", extra={"url": url, "error": str(exc)})
            raise ScrapeError(f"Failed to scrape article: {exc}") from exc

        soup = parse_html(resp.text)
        scraped = ScrapedContent(title=extract_title(soup), content=extract_main_content(soup), url=url)
        logger.info("extract.done", extra={"url": url, "chars": len(scraped.content)})
        return scraped

    async def scrape_many(self, urls: Sequence[str]) -> List[ScrapedContent]:
        """Extract all ``urls`` concurrently; the first failure propagates."""
        return list(await asyncio.gather(*(self.scrape_article(url) for url in urls)))
