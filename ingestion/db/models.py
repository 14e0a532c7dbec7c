"""SQLAlchemy models for articles and enhancement job bookkeeping."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    JSON,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for ORM models."""


class TimestampMixin:
    """Adds created_at/updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class ArticleStatus(str, Enum):
    ORIGINAL = "ORIGINAL"
    PROCESSING = "PROCESSING"
    ENHANCED = "ENHANCED"
    FAILED = "FAILED"


_ALLOWED_TRANSITIONS: dict[ArticleStatus, frozenset[ArticleStatus]] = {
    ArticleStatus.ORIGINAL: frozenset({ArticleStatus.PROCESSING}),
    # job-level retry re-enters PROCESSING
    ArticleStatus.PROCESSING: frozenset(
        {ArticleStatus.PROCESSING, ArticleStatus.ENHANCED, ArticleStatus.FAILED}
    ),
    ArticleStatus.ENHANCED: frozenset(),
    ArticleStatus.FAILED: frozenset({ArticleStatus.PROCESSING}),
}


def can_transition(current: ArticleStatus, target: ArticleStatus) -> bool:
    """워크플로우가 허용하는 상태 전이인지 확인한다."""
    return target in _ALLOWED_TRANSITIONS[ArticleStatus(current)]


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    RETRY = "retry"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


ACTIVE_JOB_STATUSES = (JobStatus.PENDING, JobStatus.RUNNING, JobStatus.RETRY)


def _new_article_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Article(Base):
    """Scraped article tracked through the enhancement lifecycle."""

    __tablename__ = "articles"
    __table_args__ = (
        Index("ix_articles_status_scraped", "status", "scraped_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_article_id)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    source_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    status: Mapped[ArticleStatus] = mapped_column(
        SAEnum(ArticleStatus, name="article_status", native_enum=False, length=16),
        nullable=False,
        default=ArticleStatus.ORIGINAL,
    )
    updated_content: Mapped[str | None] = mapped_column(Text)
    references: Mapped[list[dict] | None] = mapped_column(JSON)
    scraped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class JobRun(TimestampMixin, Base):
    """Bookkeeping for a single queued enhancement job."""

    __tablename__ = "job_runs"
    __table_args__ = (
        Index("ix_job_runs_article_status", "article_id", "status"),
    )

    # Celery task id
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    article_id: Mapped[str] = mapped_column(String(32), nullable=False)
    task_name: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[JobStatus] = mapped_column(
        SAEnum(JobStatus, name="job_status", native_enum=False, length=16),
        nullable=False,
        default=JobStatus.PENDING,
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempts_made: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    error_message: Mapped[str | None] = mapped_column(String(512))
