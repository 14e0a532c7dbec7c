"""Ingestion strategy abstraction and errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ingestion.models.domain import ScrapedArticle, ScraperOptions


class ScrapeError(Exception):
    """Fetching or extracting a page failed."""


class ScraperStrategy(ABC):
    """Maps a URL to one or more extracted articles."""

    name: str

    @abstractmethod
    def can_handle(self, url: str) -> bool:
        """Return True when this strategy knows how to scrape ``url``."""

    @abstractmethod
    async def scrape(self, url: str, options: Optional[ScraperOptions] = None) -> List[ScrapedArticle]:
        """Scrape ``url`` and return extracted articles (raises ScrapeError)."""
