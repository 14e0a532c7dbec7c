"""Celery task and workflow for article enhancement."""

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from celery import shared_task
from sqlalchemy.exc import SQLAlchemyError

from enhancement.errors import (
    PERMANENT_ERRORS,
    ArticleLockedError,
    ArticleNotFoundError,
    ArticleStateError,
    PersistenceError,
)
from enhancement.models.domain import (
    PLACEHOLDER_REFERENCE,
    EnhancementJobResult,
    Reference,
    ScrapedContent,
    SearchResult,
)
from enhancement.services.content_extractor import ContentExtractor
from enhancement.services.web_search import WebSearchClient
from ingestion.db.models import ArticleStatus, can_transition
from ingestion.db.session import ensure_schema, session_scope
from ingestion.repositories.articles import require_article, save_enhancement, set_status
from ingestion.repositories.jobs import mark_job_finished, mark_job_retry, mark_job_running, set_job_progress
from ingestion.services.locks import InMemoryKeyStore, KeyStore, build_lock_store
from ingestion.settings import Settings, get_settings
from ingestion.utils.logging import get_logger
from llm.service import LLMService

TASK_NAME = "enhancement.tasks.enhance.enhance_article"
REFERENCE_COUNT = 2

ProgressFn = Callable[[int], None]

logger = get_logger(__name__)


class SearchClient(Protocol):
    def search(self, query: str, exclude_domain: Optional[str] = None, max_results: int = 2) -> List[SearchResult]: ...


class Extractor(Protocol):
    async def scrape_many(self, urls: Sequence[str]) -> List[ScrapedContent]: ...


class Enhancer(Protocol):
    def enhance_article(
        self,
        original_title: str,
        original_content: str,
        ref1_title: str,
        ref1_content: str,
        ref2_title: str,
        ref2_content: str,
    ) -> str: ...

    def add_references(self, content: str, references: Sequence[Reference]) -> str: ...


def pad_references(scraped: Sequence[ScrapedContent], count: int = REFERENCE_COUNT) -> List[ScrapedContent]:
    """Pad with the placeholder reference until exactly ``count`` entries exist."""
    padded = list(scraped[:count])
    while len(padded) < count:
        padded.append(PLACEHOLDER_REFERENCE.model_copy())
    return padded


def _noop_progress(_: int) -> None:
    return None


class EnhancementWorkflow:
    """search -> extract x2 -> prompt -> LLM -> references -> persist, for one article."""

    def __init__(
        self,
        search_client: SearchClient,
        extractor: Extractor,
        llm: Enhancer,
        *,
        lock_store: Optional[KeyStore] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._search = search_client
        self._extractor = extractor
        self._llm = llm
        self._locks = lock_store or InMemoryKeyStore()
        self._exclude_domain = self._settings.exclude_domain

    def run(self, article_id: str, progress: Optional[ProgressFn] = None) -> EnhancementJobResult:
        report = progress or _noop_progress
        trace_id = str(uuid.uuid4())
        extra: Dict[str, Any] = {"trace_id": trace_id, "article_id": article_id}
        lock_key = f"article:{article_id}"
        lock_token: Optional[str] = None
        try:
            report(10)
            lock_token = self._locks.acquire(lock_key, self._settings.celery_task_soft_time_limit)
            if lock_token is None:
                raise ArticleLockedError(f"Article {article_id} is already being enhanced")

            with session_scope(self._settings) as session:
                article = require_article(session, article_id)
                if not can_transition(article.status, ArticleStatus.PROCESSING):
                    raise ArticleStateError(f"Article {article_id} is {article.status.value}")
                title, content = article.title, article.content
                set_status(session, article_id, ArticleStatus.PROCESSING)
            logger.info("enhance.start", extra={**extra, "title": title})

            report(20)
            results = self._search.search(title, exclude_domain=self._exclude_domain, max_results=REFERENCE_COUNT)
            if len(results) < REFERENCE_COUNT:
                logger.warning("enhance.few_search_results", extra={**extra, "found": len(results)})

            report(40)
            scraped = asyncio.run(self._extractor.scrape_many([r.url for r in results]))
            refs = pad_references(scraped)

            report(60)
            enhanced = self._llm.enhance_article(
                title,
                content,
                refs[0].title,
                refs[0].content,
                refs[1].title,
                refs[1].content,
            )

            report(80)
            # placeholders never reach the persisted references
            references = [Reference(title=r.title, url=r.url) for r in results]
            final_content = self._llm.add_references(enhanced, references)

            report(90)
            self._persist(article_id, final_content, references)
            report(100)
            logger.info("enhance.done", extra={**extra, "references": len(references)})
            return EnhancementJobResult(success=True, article_id=article_id)
        except PERMANENT_ERRORS as exc:
            logger.warning("enhance.rejected", extra={**extra, "error": str(exc)})
            return EnhancementJobResult(success=False, article_id=article_id, error=str(exc), retryable=False)
        except Exception as exc:  # noqa: BLE001 - job boundary
            logger.exception("enhance.failed", extra={**extra, "error": str(exc)})
            self._mark_failed(article_id, extra)
            return EnhancementJobResult(success=False, article_id=article_id, error=str(exc), retryable=True)
        finally:
            if lock_token is not None:
                self._locks.release(lock_key, lock_token)

    def _persist(self, article_id: str, content: str, references: Sequence[Reference]) -> None:
        try:
            with session_scope(self._settings) as session:
                save_enhancement(
                    session,
                    article_id,
                    updated_content=content,
                    references=[ref.model_dump() for ref in references],
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to save enhancement: {exc}") from exc

    def _mark_failed(self, article_id: str, extra: Dict[str, Any]) -> None:
        try:
            with session_scope(self._settings) as session:
                set_status(session, article_id, ArticleStatus.FAILED)
        except (SQLAlchemyError, ArticleNotFoundError) as exc:
            logger.warning("enhance.mark_failed_error", extra={**extra, "error": str(exc)})


def build_workflow(settings: Optional[Settings] = None) -> EnhancementWorkflow:
    config = settings or get_settings()
    return EnhancementWorkflow(
        WebSearchClient(config),
        ContentExtractor(config),
        LLMService(),
        lock_store=build_lock_store(config),
        settings=config,
    )


# Workflow factory injection point for tests
WORKFLOW_FACTORY: Callable[[], EnhancementWorkflow] | None = None


def run_enhancement_job(task: Any, article_id: str, workflow: Optional[EnhancementWorkflow] = None) -> Dict[str, Any]:
    """Job boundary: JobRun bookkeeping, progress forwarding and retry decisions."""
    settings = get_settings()
    ensure_schema(settings)
    job_id = task.request.id or uuid.uuid4().hex
    retries = int(task.request.retries or 0)
    attempt = retries + 1
    extra = {"job_id": job_id, "article_id": article_id, "attempt": attempt}

    with session_scope(settings) as session:
        mark_job_running(session, job_id, article_id, attempt=attempt, task_name=TASK_NAME)

    def _progress(value: int) -> None:
        with session_scope(settings) as session:
            set_job_progress(session, job_id, value)
        task.update_state(state="PROGRESS", meta={"article_id": article_id, "progress": value})

    if workflow is None:
        workflow = WORKFLOW_FACTORY() if WORKFLOW_FACTORY else build_workflow(settings)
    result = workflow.run(article_id, progress=_progress)

    if not result.success and result.retryable and attempt < settings.enhance_max_attempts:
        countdown = settings.enhance_backoff_seconds * (2**retries)
        with session_scope(settings) as session:
            mark_job_retry(session, job_id, result.error or "")
        logger.warning("enhance.retry", extra={**extra, "countdown": countdown, "error": result.error})
        raise task.retry(countdown=countdown, max_retries=settings.enhance_max_attempts - 1)

    with session_scope(settings) as session:
        mark_job_finished(session, job_id, success=result.success, error=result.error)
    logger.info("enhance.job_finished", extra={**extra, "success": result.success})
    return result.model_dump()


@shared_task(bind=True, name=TASK_NAME)
def enhance_article(self, article_id: str) -> Dict[str, Any]:  # pragma: no cover - thin wrapper
    return run_enhancement_job(self, article_id)
