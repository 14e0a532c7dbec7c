"""Database utilities for the article store."""

from .models import (  # noqa: F401
    ACTIVE_JOB_STATUSES,
    Article,
    ArticleStatus,
    Base,
    JobRun,
    JobStatus,
    can_transition,
)
from .session import ensure_schema, get_engine, get_sessionmaker, session_scope  # noqa: F401

__all__ = [
    "ACTIVE_JOB_STATUSES",
    "Article",
    "ArticleStatus",
    "Base",
    "JobRun",
    "JobStatus",
    "can_transition",
    "ensure_schema",
    "get_engine",
    "get_sessionmaker",
    "session_scope",
]
