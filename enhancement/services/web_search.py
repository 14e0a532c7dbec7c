"""Search API client returning competing articles for a title."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from enhancement.errors import SearchError
from enhancement.models.domain import SearchResult
from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

FORUM_PATTERNS: tuple[str, ...] = (
    "reddit.com",
    "stackoverflow.com",
    "quora.com",
    "stackexchange.com",
    "forum",
    "/forums/",
    "/discussion/",
)
VIDEO_PATTERNS: tuple[str, ...] = ("youtube.com", "vimeo.com", "dailymotion.com")
SOCIAL_PATTERNS: tuple[str, ...] = ("facebook.com", "twitter.com", "linkedin.com", "instagram.com")


def is_non_article_url(url: str) -> bool:
    """PDFs, forums/Q&A, video hosts and social networks are not articles."""
    lower = url.lower()
    if lower.endswith(".pdf"):
        return True
    return any(pattern in lower for pattern in FORUM_PATTERNS + VIDEO_PATTERNS + SOCIAL_PATTERNS)


class WebSearchClient:
    """Thin SerpAPI (Google engine) wrapper. No retries; the job queue retries."""

    def __init__(self, settings: Optional[Settings] = None, *, client: Optional[httpx.Client] = None) -> None:
        self._settings = settings or get_settings()
        self._client = client or httpx.Client(timeout=self._settings.search_timeout_seconds)
        if self._settings.serpapi_key is None:
            logger.warning("search.api_key_missing")

    def _api_key(self) -> str:
        key = self._settings.serpapi_key
        value = key.get_secret_value().strip() if key is not None else ""
        if not value:
            raise SearchError("SERPAPI_KEY is not configured")
        return value

    def _fetch_organic(self, query: str) -> List[Dict[str, Any]]:
        params = {
            "api_key": self._api_key(),
            "q": query,
            "num": self._settings.search_overfetch,
            "engine": "google",
        }
        try:
            resp = self._client.get(
                self._settings.serpapi_endpoint,
                params=params,
                timeout=self._settings.search_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise SearchError(f"Failed to search: {exc}") from exc
        if resp.status_code >= 400:
            raise SearchError(f"Search API error {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise SearchError("Search API returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise SearchError("Search API returned an unexpected payload")
        organic = data.get("organic_results") or []
        if not isinstance(organic, list):
            raise SearchError("Search API returned an unexpected payload")
        return organic

    def search(self, query: str, exclude_domain: Optional[str] = None, max_results: int = 2) -> List[SearchResult]:
        """Top ``max_results`` article results for ``query`` in provider order."""
        logger.info("search.start", extra={"query": query})
        organic = self._fetch_organic(query)
        exclude = exclude_domain.lower() if exclude_domain else None

        results: List[SearchResult] = []
        for item in organic:
            url = str(item.get("link") or "")
            if not url:
                continue
            if exclude and exclude in url.lower():
                logger.debug("search.excluded_domain", extra={"url": url})
                continue
            if is_non_article_url(url):
                logger.debug("search.excluded_non_article", extra={"url": url})
                continue
            results.append(
                SearchResult(
                    title=str(item.get("title") or url),
                    url=url,
                    snippet=str(item.get("snippet") or ""),
                )
            )
            if len(results) >= max_results:
                break

        logger.info("search.done", extra={"query": query, "found": len(organic), "selected": len(results)})
        return results
