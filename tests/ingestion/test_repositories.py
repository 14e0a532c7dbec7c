from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ingestion.db.models import Article, ArticleStatus, JobStatus
from ingestion.db.session import session_scope
from ingestion.models.domain import ScrapedArticle
from ingestion.repositories.articles import (
    ArticleInvariantError,
    ArticleNotFoundError,
    count_articles,
    create_article,
    delete_article,
    get_article,
    list_article_ids_by_status,
    list_articles,
    save_enhancement,
    save_scraped_article,
    set_status,
    update_article,
)
from ingestion.repositories.jobs import (
    create_job_run,
    find_active_job_for_article,
    get_job_run,
    mark_job_finished,
    mark_job_retry,
    mark_job_running,
    set_job_progress,
)


def _seed(session, title: str, *, minutes_ago: int, status=ArticleStatus.ORIGINAL) -> Article:
    entity = Article(
        title=title,
        content=f"{title} body",
        source_url=f"https://example.com/{title}",
        status=status,
        scraped_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )
    if status == ArticleStatus.ENHANCED:
        entity.updated_content = f"{title} rewrite"
        entity.references = []
    session.add(entity)
    session.flush()
    return entity


def test_create_and_get_article(db_settings):
    with session_scope(db_settings) as session:
        article = create_article(session, title="Hello", content="World", source_url="https://example.com/a")
        article_id = article.id

    with session_scope(db_settings) as session:
        loaded = get_article(session, article_id)
        assert loaded is not None
        assert loaded.title == "Hello"
        assert loaded.status == ArticleStatus.ORIGINAL
        assert loaded.updated_content is None
        assert loaded.references is None


def test_save_scraped_article_is_original(db_settings):
    dto = ScrapedArticle(title=" Listing entry ", content="text", source_url="https://example.com/x")
    with session_scope(db_settings) as session:
        article = save_scraped_article(session, dto)
        assert article.title == "Listing entry"
        assert article.status == ArticleStatus.ORIGINAL


def test_list_articles_newest_first_with_paging(db_settings):
    with session_scope(db_settings) as session:
        _seed(session, "old", minutes_ago=30)
        _seed(session, "mid", minutes_ago=20, status=ArticleStatus.ENHANCED)
        _seed(session, "new", minutes_ago=10)

    with session_scope(db_settings) as session:
        assert [a.title for a in list_articles(session)] == ["new", "mid", "old"]
        assert [a.title for a in list_articles(session, skip=1, take=1)] == ["mid"]
        assert [a.title for a in list_articles(session, status=ArticleStatus.ORIGINAL)] == ["new", "old"]
        assert count_articles(session) == 3
        assert count_articles(session, ArticleStatus.ENHANCED) == 1
        # oldest first for queueing
        original_ids = list_article_ids_by_status(session, ArticleStatus.ORIGINAL)
        assert [get_article(session, i).title for i in original_ids] == ["old", "new"]


def test_update_article_applies_partial_fields(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id

    with session_scope(db_settings) as session:
        updated = update_article(session, article_id, {"title": "renamed"})
        assert updated.title == "renamed"
        assert updated.content == "c"


def test_update_article_rejects_half_enhancement(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id

    with pytest.raises(ArticleInvariantError):
        with session_scope(db_settings) as session:
            update_article(session, article_id, {"updated_content": "only content"})

    with session_scope(db_settings) as session:
        assert get_article(session, article_id).updated_content is None


def test_create_article_rejects_enhanced_status(db_settings):
    with session_scope(db_settings) as session:
        with pytest.raises(ArticleInvariantError):
            create_article(
                session, title="t", content="c", source_url="https://e.com", status=ArticleStatus.ENHANCED
            )
        assert count_articles(session) == 0


def test_update_article_rejects_enhanced_without_content(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id

    with pytest.raises(ArticleInvariantError):
        with session_scope(db_settings) as session:
            update_article(session, article_id, {"status": ArticleStatus.ENHANCED})

    with session_scope(db_settings) as session:
        assert get_article(session, article_id).status == ArticleStatus.ORIGINAL


def test_update_article_rejects_null_required_field(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id
        with pytest.raises(ArticleInvariantError):
            update_article(session, article_id, {"title": None})


def test_set_status_enhanced_requires_content(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id
        with pytest.raises(ArticleInvariantError):
            set_status(session, article_id, ArticleStatus.ENHANCED)
        # FAILED and PROCESSING need no enhancement
        assert set_status(session, article_id, ArticleStatus.FAILED).status == ArticleStatus.FAILED


def test_update_article_rejects_unknown_fields(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id
        with pytest.raises(ValueError):
            update_article(session, article_id, {"id": "other"})


def test_update_and_delete_missing_article(db_settings):
    with session_scope(db_settings) as session:
        with pytest.raises(ArticleNotFoundError) as exc:
            update_article(session, "missing", {"title": "x"})
        assert exc.value.article_id == "missing"
        with pytest.raises(ArticleNotFoundError):
            delete_article(session, "missing")


def test_delete_article(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id

    with session_scope(db_settings) as session:
        delete_article(session, article_id)

    with session_scope(db_settings) as session:
        assert get_article(session, article_id) is None


def test_save_enhancement_sets_pair_and_status(db_settings):
    with session_scope(db_settings) as session:
        article_id = create_article(session, title="t", content="c", source_url="https://e.com").id

    with session_scope(db_settings) as session:
        save_enhancement(
            session,
            article_id,
            updated_content="better",
            references=[{"title": "Ref", "url": "https://ref.example/a", "extra": "dropped"}],
        )

    with session_scope(db_settings) as session:
        article = get_article(session, article_id)
        assert article.status == ArticleStatus.ENHANCED
        assert article.updated_content == "better"
        assert article.references == [{"title": "Ref", "url": "https://ref.example/a"}]


def test_job_run_lifecycle(db_settings):
    with session_scope(db_settings) as session:
        create_job_run(session, "job-1", "article-1", task_name="enhance")

    with session_scope(db_settings) as session:
        assert find_active_job_for_article(session, "article-1").id == "job-1"
        mark_job_running(session, "job-1", "article-1", attempt=1, task_name="enhance")
        set_job_progress(session, "job-1", 140)
        assert get_job_run(session, "job-1").progress == 100
        mark_job_retry(session, "job-1", "timeout")

    with session_scope(db_settings) as session:
        job = get_job_run(session, "job-1")
        assert job.status == JobStatus.RETRY
        assert job.error_message == "timeout"
        assert job.started_at is not None
        mark_job_running(session, "job-1", "article-1", attempt=2, task_name="enhance")
        mark_job_finished(session, "job-1", success=True)

    with session_scope(db_settings) as session:
        job = get_job_run(session, "job-1")
        assert job.status == JobStatus.SUCCEEDED
        assert job.attempts_made == 2
        assert job.progress == 0
        assert job.error_message is None
        assert job.finished_at is not None
        assert find_active_job_for_article(session, "article-1") is None


def test_mark_job_running_creates_missing_row(db_settings):
    with session_scope(db_settings) as session:
        mark_job_running(session, "job-x", "article-9", attempt=1, task_name="enhance")

    with session_scope(db_settings) as session:
        job = get_job_run(session, "job-x")
        assert job.status == JobStatus.RUNNING
        assert job.article_id == "article-9"
        mark_job_finished(session, "job-x", success=False, error="boom")

    with session_scope(db_settings) as session:
        job = get_job_run(session, "job-x")
        assert job.status == JobStatus.FAILED
        assert job.error_message == "boom"
