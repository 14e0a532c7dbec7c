"""Enqueues enhancement jobs and reports their status."""

from __future__ import annotations

import uuid
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from enhancement.errors import (
    ArticleNotFoundError,
    ArticleStateError,
    ExternalServiceError,
    JobNotFoundError,
)
from enhancement.models.domain import EnhanceAllResult, EnhanceOneResult, JobStatusView
from enhancement.tasks.enhance import TASK_NAME, enhance_article
from ingestion.celery_app import get_celery_app
from ingestion.db.models import ArticleStatus, can_transition
from ingestion.repositories.articles import get_article, list_article_ids_by_status
from ingestion.repositories.jobs import (
    create_job_run,
    find_active_job_for_article,
    get_job_run,
    mark_job_finished,
)
from ingestion.utils.logging import get_logger

logger = get_logger(__name__)

# (article_id, job_id) -> None
Dispatcher = Callable[[str, str], None]


def celery_dispatch(article_id: str, job_id: str) -> None:
    get_celery_app()
    enhance_article.apply_async(args=[article_id], task_id=job_id)


class AutomationService:
    def __init__(self, session: Session, dispatcher: Optional[Dispatcher] = None) -> None:
        self._session = session
        self._dispatch = dispatcher or celery_dispatch

    def _enqueue(self, article_id: str) -> str:
        active = find_active_job_for_article(self._session, article_id)
        if active is not None:
            logger.info("automation.job_reused", extra={"article_id": article_id, "job_id": active.id})
            return active.id

        job_id = uuid.uuid4().hex
        create_job_run(self._session, job_id, article_id, task_name=TASK_NAME)
        # the worker must see the JobRun row
        self._session.commit()
        try:
            self._dispatch(article_id, job_id)
        except Exception as exc:
            mark_job_finished(self._session, job_id, success=False, error=f"enqueue failed: {exc}")
            self._session.commit()
            logger.error("automation.enqueue_failed", extra={"article_id": article_id, "job_id": job_id, "error": str(exc)})
            raise ExternalServiceError(f"Failed to queue enhancement job: {exc}") from exc
        logger.info("automation.job_queued", extra={"article_id": article_id, "job_id": job_id})
        return job_id

    def enhance_all_original(self) -> EnhanceAllResult:
        """Queue one job per ORIGINAL article. Zero articles is not an error."""
        article_ids = list_article_ids_by_status(self._session, ArticleStatus.ORIGINAL)
        if not article_ids:
            return EnhanceAllResult(message="No articles found with status ORIGINAL", queued=0, job_ids=[])

        job_ids: List[str] = [self._enqueue(article_id) for article_id in article_ids]
        return EnhanceAllResult(
            message=f"Successfully queued {len(job_ids)} enhancement jobs",
            queued=len(job_ids),
            job_ids=job_ids,
        )

    def enhance_article(self, article_id: str) -> EnhanceOneResult:
        """Queue a job for one article; the worker re-validates at execution time."""
        article = get_article(self._session, article_id)
        if article is None:
            raise ArticleNotFoundError(article_id)
        if not can_transition(article.status, ArticleStatus.PROCESSING):
            raise ArticleStateError(f"Article {article_id} is already {article.status.value}")

        job_id = self._enqueue(article_id)
        return EnhanceOneResult(message="Enhancement job queued successfully", job_id=job_id, article_id=article_id)

    def get_job_status(self, job_id: str) -> JobStatusView:
        job = get_job_run(self._session, job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return JobStatusView(
            job_id=job.id,
            article_id=job.article_id,
            state=job.status.value,
            progress=job.progress,
            attempts_made=job.attempts_made,
            processed_on=job.started_at,
            finished_on=job.finished_at,
            failed_reason=job.error_message,
        )
