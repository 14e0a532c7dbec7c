"""Error taxonomy for the enhancement workflow."""

from __future__ import annotations

from ingestion.repositories.articles import ArticleNotFoundError
from ingestion.strategies.base import ScrapeError


class EnhancementError(Exception):
    """Base enhancement error."""


class ArticleStateError(EnhancementError):
    """Article cannot enter PROCESSING from its current status (non-retryable)."""


class ArticleLockedError(EnhancementError):
    """Another job already holds the article (non-retryable)."""


class ExternalServiceError(EnhancementError):
    """Search, extraction or LLM call failure (retryable)."""


class SearchError(ExternalServiceError):
    """Search provider call failed or timed out."""


class PersistenceError(EnhancementError):
    """Store write failed."""


class JobNotFoundError(EnhancementError):
    """No job with the given id."""


# Failures that no amount of retrying fixes
PERMANENT_ERRORS: tuple[type[BaseException], ...] = (
    ArticleNotFoundError,
    ArticleStateError,
    ArticleLockedError,
)

__all__ = [
    "ArticleLockedError",
    "ArticleNotFoundError",
    "ArticleStateError",
    "EnhancementError",
    "ExternalServiceError",
    "JobNotFoundError",
    "PERMANENT_ERRORS",
    "PersistenceError",
    "ScrapeError",
    "SearchError",
]
