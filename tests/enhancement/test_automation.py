from __future__ import annotations

import pytest

from enhancement.errors import ArticleNotFoundError, ArticleStateError, ExternalServiceError, JobNotFoundError
from enhancement.services.automation import AutomationService
from ingestion.db.models import ArticleStatus, JobStatus
from ingestion.db.session import session_scope
from ingestion.repositories.articles import create_article, save_enhancement
from ingestion.repositories.jobs import get_job_run, mark_job_finished, mark_job_running


class RecordingDispatcher:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.error = error

    def __call__(self, article_id: str, job_id: str) -> None:
        if self.error is not None:
            raise self.error
        self.calls.append((article_id, job_id))


def _article(session, title: str, status: ArticleStatus = ArticleStatus.ORIGINAL) -> str:
    if status == ArticleStatus.ENHANCED:
        article_id = _article(session, title)
        save_enhancement(session, article_id, updated_content="better", references=[])
        return article_id
    return create_article(
        session, title=title, content="body", source_url=f"https://example.com/{title}", status=status
    ).id


def test_enhance_all_without_original_articles(db_settings):
    dispatcher = RecordingDispatcher()
    with session_scope(db_settings) as session:
        _article(session, "done", ArticleStatus.ENHANCED)
        result = AutomationService(session, dispatcher).enhance_all_original()

    assert result.queued == 0
    assert result.message == "No articles found with status ORIGINAL"
    assert dispatcher.calls == []


def test_enhance_all_queues_each_original(db_settings):
    dispatcher = RecordingDispatcher()
    with session_scope(db_settings) as session:
        first = _article(session, "first")
        second = _article(session, "second")
        _article(session, "failed", ArticleStatus.FAILED)
        result = AutomationService(session, dispatcher).enhance_all_original()

    assert result.queued == 2
    assert result.message == "Successfully queued 2 enhancement jobs"
    assert sorted(a for a, _ in dispatcher.calls) == sorted([first, second])
    assert [j for _, j in dispatcher.calls] == result.job_ids
    with session_scope(db_settings) as session:
        for job_id in result.job_ids:
            assert get_job_run(session, job_id).status == JobStatus.PENDING


def test_enhance_article_reuses_active_job(db_settings):
    dispatcher = RecordingDispatcher()
    with session_scope(db_settings) as session:
        article_id = _article(session, "one")
        service = AutomationService(session, dispatcher)
        first = service.enhance_article(article_id)
        second = service.enhance_article(article_id)

    assert first.message == "Enhancement job queued successfully"
    assert first.job_id == second.job_id
    assert len(dispatcher.calls) == 1


def test_enhance_article_after_finished_job_queues_new_one(db_settings):
    dispatcher = RecordingDispatcher()
    with session_scope(db_settings) as session:
        article_id = _article(session, "one", ArticleStatus.FAILED)
        service = AutomationService(session, dispatcher)
        first = service.enhance_article(article_id)
        mark_job_finished(session, first.job_id, success=False, error="boom")
        second = service.enhance_article(article_id)

    assert first.job_id != second.job_id
    assert len(dispatcher.calls) == 2


def test_enhance_article_rejects_missing_and_enhanced(db_settings):
    with session_scope(db_settings) as session:
        enhanced_id = _article(session, "done", ArticleStatus.ENHANCED)
        service = AutomationService(session, RecordingDispatcher())

        with pytest.raises(ArticleNotFoundError):
            service.enhance_article("missing")
        with pytest.raises(ArticleStateError) as exc:
            service.enhance_article(enhanced_id)

    assert str(exc.value) == f"Article {enhanced_id} is already ENHANCED"


def test_dispatch_failure_marks_job_failed(db_settings):
    dispatcher = RecordingDispatcher(error=ConnectionError("broker down"))
    with session_scope(db_settings) as session:
        article_id = _article(session, "one")
        with pytest.raises(ExternalServiceError) as exc:
            AutomationService(session, dispatcher).enhance_article(article_id)
        # the failed job must not block a later attempt
        retry = AutomationService(session, RecordingDispatcher()).enhance_article(article_id)

    assert "broker down" in str(exc.value)
    with session_scope(db_settings) as session:
        assert get_job_run(session, retry.job_id).status == JobStatus.PENDING


def test_get_job_status(db_settings):
    with session_scope(db_settings) as session:
        article_id = _article(session, "one")
        service = AutomationService(session, RecordingDispatcher())
        queued = service.enhance_article(article_id)
        mark_job_running(session, queued.job_id, article_id, attempt=1, task_name="enhance")
        view = service.get_job_status(queued.job_id)

        with pytest.raises(JobNotFoundError):
            service.get_job_status("unknown")

    assert view.state == "running"
    assert view.article_id == article_id
    assert view.attempts_made == 1
    assert view.processed_on is not None
    assert view.finished_on is None
