from __future__ import annotations

from typing import List, Optional, Sequence

from enhancement.errors import SearchError
from enhancement.models.domain import Reference, ScrapedContent, SearchResult
from enhancement.tasks.enhance import EnhancementWorkflow, pad_references
from ingestion.db.models import ArticleStatus
from ingestion.db.session import session_scope
from ingestion.repositories.articles import create_article, get_article, save_enhancement
from ingestion.services.locks import InMemoryKeyStore
from llm.client.base import LLMValidationError
from llm.service import LLMService

ENHANCED = "# Better title\n\n" + "Enhanced paragraph with more depth and structure. " * 4


class FakeSearch:
    def __init__(self, results: List[SearchResult], error: Optional[Exception] = None) -> None:
        self.results = results
        self.error = error
        self.calls: list[tuple[str, Optional[str], int]] = []

    def search(self, query: str, exclude_domain: Optional[str] = None, max_results: int = 2) -> List[SearchResult]:
        self.calls.append((query, exclude_domain, max_results))
        if self.error is not None:
            raise self.error
        return self.results[:max_results]


class FakeExtractor:
    def __init__(self) -> None:
        self.urls: list[str] = []

    async def scrape_many(self, urls: Sequence[str]) -> List[ScrapedContent]:
        self.urls = list(urls)
        return [ScrapedContent(title=f"Scraped {i}", content=f"Reference body {i}", url=u) for i, u in enumerate(urls, 1)]


class FakeProvider:
    name = "Fake"

    def __init__(self, text: str) -> None:
        self.text = text
        self.prompts: list[str] = []

    def enhance(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.text


def _article(db_settings, status: ArticleStatus = ArticleStatus.ORIGINAL) -> str:
    with session_scope(db_settings) as session:
        article_id = create_article(
            session,
            title="Chatbots for support",
            content="Original body",
            source_url="https://beyondchats.com/blogs/chatbots",
            status=ArticleStatus.ORIGINAL if status == ArticleStatus.ENHANCED else status,
        ).id
        if status == ArticleStatus.ENHANCED:
            save_enhancement(session, article_id, updated_content="Earlier rewrite", references=[])
        return article_id


def _workflow(db_settings, search: FakeSearch, provider: FakeProvider, locks=None) -> EnhancementWorkflow:
    return EnhancementWorkflow(
        search,
        FakeExtractor(),
        LLMService(provider),
        lock_store=locks or InMemoryKeyStore(),
        settings=db_settings,
    )


def test_pad_references_fills_placeholders():
    padded = pad_references([ScrapedContent(title="Only", content="body", url="https://a")])

    assert [r.title for r in padded] == ["Only", "Reference Article"]
    assert padded[1].content == "No additional reference available."


def test_workflow_enhances_and_persists(db_settings):
    article_id = _article(db_settings)
    search = FakeSearch(
        [
            SearchResult(title="Guide A", url="https://a.example/guide"),
            SearchResult(title="Guide B", url="https://b.example/guide"),
        ]
    )
    provider = FakeProvider(ENHANCED)
    seen: list[int] = []

    result = _workflow(db_settings, search, provider).run(article_id, progress=seen.append)

    assert result.success is True
    assert seen == [10, 20, 40, 60, 80, 90, 100]
    assert search.calls == [("Chatbots for support", "beyondchats.com", 2)]
    assert '### Reference Article 1: "Scraped 1"\nReference body 1' in provider.prompts[0]

    with session_scope(db_settings) as session:
        article = get_article(session, article_id)
        assert article.status == ArticleStatus.ENHANCED
        assert article.content == "Original body"
        assert article.updated_content.startswith(ENHANCED.strip())
        assert "1. [Guide A](https://a.example/guide)\n2. [Guide B](https://b.example/guide)\n" in article.updated_content
        assert article.references == [
            {"title": "Guide A", "url": "https://a.example/guide"},
            {"title": "Guide B", "url": "https://b.example/guide"},
        ]


def test_workflow_pads_missing_reference_but_persists_only_real_ones(db_settings):
    article_id = _article(db_settings)
    search = FakeSearch([SearchResult(title="Guide A", url="https://a.example/guide")])
    provider = FakeProvider(ENHANCED)

    result = _workflow(db_settings, search, provider).run(article_id)

    assert result.success is True
    assert '### Reference Article 2: "Reference Article"\nNo additional reference available.' in provider.prompts[0]
    with session_scope(db_settings) as session:
        article = get_article(session, article_id)
        assert article.references == [{"title": "Guide A", "url": "https://a.example/guide"}]
        assert "2. [" not in article.updated_content


def test_workflow_short_output_marks_failed(db_settings):
    article_id = _article(db_settings)
    search = FakeSearch([SearchResult(title="Guide A", url="https://a.example/guide")])

    result = _workflow(db_settings, search, FakeProvider("too short")).run(article_id)

    assert result.success is False
    assert result.retryable is True
    assert result.error == str(LLMValidationError("Enhanced content is too short or empty"))
    with session_scope(db_settings) as session:
        article = get_article(session, article_id)
        assert article.status == ArticleStatus.FAILED
        assert article.updated_content is None
        assert article.references is None


def test_workflow_search_failure_is_retryable(db_settings):
    article_id = _article(db_settings)
    search = FakeSearch([], error=SearchError("SERPAPI_KEY is not configured"))

    result = _workflow(db_settings, search, FakeProvider(ENHANCED)).run(article_id)

    assert result.retryable is True
    assert result.error == "SERPAPI_KEY is not configured"
    with session_scope(db_settings) as session:
        assert get_article(session, article_id).status == ArticleStatus.FAILED


def test_workflow_failed_article_can_run_again(db_settings):
    article_id = _article(db_settings, ArticleStatus.FAILED)
    search = FakeSearch([SearchResult(title="Guide A", url="https://a.example/guide")])

    result = _workflow(db_settings, search, FakeProvider(ENHANCED)).run(article_id)

    assert result.success is True


def test_workflow_missing_article_is_permanent(db_settings):
    search = FakeSearch([])

    result = _workflow(db_settings, search, FakeProvider(ENHANCED)).run("missing")

    assert result.success is False
    assert result.retryable is False
    assert result.error == "Article missing not found"
    assert search.calls == []


def test_workflow_enhanced_article_is_left_untouched(db_settings):
    article_id = _article(db_settings, ArticleStatus.ENHANCED)
    search = FakeSearch([])

    result = _workflow(db_settings, search, FakeProvider(ENHANCED)).run(article_id)

    assert result.retryable is False
    assert search.calls == []
    with session_scope(db_settings) as session:
        assert get_article(session, article_id).status == ArticleStatus.ENHANCED


def test_workflow_respects_article_lock(db_settings):
    article_id = _article(db_settings)
    locks = InMemoryKeyStore()
    assert locks.acquire(f"article:{article_id}", 60)

    result = _workflow(db_settings, FakeSearch([]), FakeProvider(ENHANCED), locks=locks).run(article_id)

    assert result.success is False
    assert result.retryable is False
    with session_scope(db_settings) as session:
        assert get_article(session, article_id).status == ArticleStatus.ORIGINAL
    # the other holder keeps its lock
    assert locks.held(f"article:{article_id}")


def test_workflow_releases_lock_after_run(db_settings):
    article_id = _article(db_settings)
    locks = InMemoryKeyStore()
    search = FakeSearch([SearchResult(title="Guide A", url="https://a.example/guide")])

    _workflow(db_settings, search, FakeProvider("short"), locks=locks).run(article_id)

    assert not locks.held(f"article:{article_id}")


def test_workflow_does_not_release_lock_taken_over_after_expiry(db_settings, monkeypatch):
    article_id = _article(db_settings)
    key = f"article:{article_id}"
    locks = InMemoryKeyStore()
    clock = {"now": 1000.0}
    monkeypatch.setattr("ingestion.services.locks.time.monotonic", lambda: clock["now"])
    taken: dict[str, Optional[str]] = {}

    class SlowProvider(FakeProvider):
        def enhance(self, prompt: str) -> str:
            # the run outlives its TTL and another worker picks the article up
            clock["now"] += db_settings.celery_task_soft_time_limit + 1
            taken["token"] = locks.acquire(key, 60)
            return super().enhance(prompt)

    search = FakeSearch([SearchResult(title="Guide A", url="https://a.example/guide")])
    _workflow(db_settings, search, SlowProvider(ENHANCED), locks=locks).run(article_id)

    assert taken["token"] is not None
    assert locks.held(key)
    assert locks.release(key, taken["token"])

def test_reference_model_dump_shape():
    assert Reference(title="A", url="https://a").model_dump() == {"title": "A", "url": "https://a"}
