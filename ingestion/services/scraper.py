"""Runs ingestion strategies and stores what they extract."""

from __future__ import annotations

from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ingestion.models.domain import ScrapeSourceResult, ScrapeUrlResult, ScraperOptions
from ingestion.repositories.articles import save_scraped_article
from ingestion.settings import Settings, get_settings
from ingestion.strategies.base import ScrapeError, ScraperStrategy
from ingestion.strategies.blog_listing import BlogListingStrategy
from ingestion.strategies.generic import GenericArticleStrategy
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)


def default_strategies(settings: Settings) -> List[ScraperStrategy]:
    """Priority order; the generic strategy accepts anything and must stay last."""
    return [BlogListingStrategy(settings.source_blog_url), GenericArticleStrategy()]


class ScraperService:
    def __init__(
        self,
        session: Session,
        strategies: Optional[Sequence[ScraperStrategy]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._strategies = list(strategies) if strategies is not None else default_strategies(self._settings)

    def get_strategy(self, url: str) -> ScraperStrategy:
        for strategy in self._strategies:
            if strategy.can_handle(url):
                return strategy
        raise ScrapeError("No suitable scraping strategy found")

    def _options(self, max_articles: Optional[int] = None) -> ScraperOptions:
        return ScraperOptions(
            max_articles=max_articles or self._settings.max_articles_to_scrape,
            timeout_seconds=self._settings.scraping_timeout_seconds,
            headless=self._settings.scraping_headless,
        )

    async def scrape_source(self) -> ScrapeSourceResult:
        """Scrape the configured listing source and store each entry as ORIGINAL."""
        url = self._settings.source_blog_url
        options = self._options()
        logger.info("scrape.source.start", extra={"url": url, "max_articles": options.max_articles})

        strategy = self.get_strategy(url)
        scraped = await strategy.scrape(url, options)

        article_ids: List[str] = []
        for item in scraped:
            try:
                entity = save_scraped_article(self._session, item)
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.error("scrape.source.store_failed", extra={"url": item.source_url, "error": str(exc)})
                continue
            article_ids.append(entity.id)
            logger.info("scrape.source.stored", extra={"article_id": entity.id, "title": entity.title})

        return ScrapeSourceResult(
            message=f"Successfully scraped and stored {len(article_ids)} articles",
            count=len(article_ids),
            article_ids=article_ids,
        )

    async def scrape_url(self, url: str) -> ScrapeUrlResult:
        """Scrape one URL with the first matching strategy and store the first article."""
        logger.info("scrape.url.start", extra={"url": url})
        strategy = self.get_strategy(url)
        scraped = await strategy.scrape(url, self._options(max_articles=1))
        if not scraped:
            raise ScrapeError("No article found at URL")

        entity = save_scraped_article(self._session, scraped[0])
        self._session.commit()
        logger.info("scrape.url.stored", extra={"article_id": entity.id, "strategy": strategy.name})
        return ScrapeUrlResult(message="Article scraped and stored successfully", article_id=entity.id)
