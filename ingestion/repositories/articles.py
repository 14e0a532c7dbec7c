"""Repositories for persisting and querying articles."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ingestion.db.models import Article, ArticleStatus
from ingestion.models.domain import ScrapedArticle


class ArticleNotFoundError(LookupError):
    """Article does not exist (non-retryable for jobs, 404 for API callers)."""

    def __init__(self, article_id: str) -> None:
        super().__init__(f"Article {article_id} not found")
        self.article_id = article_id


class ArticleInvariantError(ValueError):
    """Enhancement fields are inconsistent.

    updated_content and references are both null or both set, and an ENHANCED
    article always carries updated_content.
    """


_EDITABLE_FIELDS = frozenset(
    {"title", "content", "source_url", "status", "updated_content", "references"}
)
_REQUIRED_FIELDS = frozenset({"title", "content", "source_url", "status"})


def _check_enhancement_fields(status: ArticleStatus, updated_content: Any, references: Any) -> None:
    if (updated_content is None) != (references is None):
        raise ArticleInvariantError(
            "updated_content and references must be set together or both cleared."
        )
    if ArticleStatus(status) == ArticleStatus.ENHANCED and updated_content is None:
        raise ArticleInvariantError("ENHANCED articles require updated_content.")


def create_article(
    session: Session,
    *,
    title: str,
    content: str,
    source_url: str,
    status: ArticleStatus = ArticleStatus.ORIGINAL,
) -> Article:
    # new articles carry no enhancement, so they cannot start as ENHANCED
    _check_enhancement_fields(status, None, None)
    entity = Article(title=title, content=content, source_url=source_url, status=status)
    session.add(entity)
    session.flush()
    return entity


def save_scraped_article(session: Session, dto: ScrapedArticle) -> Article:
    return create_article(
        session,
        title=dto.title,
        content=dto.content,
        source_url=dto.source_url,
        status=ArticleStatus.ORIGINAL,
    )


def list_articles(
    session: Session,
    *,
    skip: int = 0,
    take: int = 10,
    status: ArticleStatus | None = None,
) -> list[Article]:
    stmt = select(Article).order_by(Article.scraped_at.desc(), Article.id)
    if status is not None:
        stmt = stmt.where(Article.status == status)
    stmt = stmt.offset(skip).limit(take)
    return list(session.scalars(stmt).all())


def count_articles(session: Session, status: ArticleStatus | None = None) -> int:
    stmt = select(func.count()).select_from(Article)
    if status is not None:
        stmt = stmt.where(Article.status == status)
    return int(session.scalar(stmt) or 0)


def list_article_ids_by_status(session: Session, status: ArticleStatus) -> list[str]:
    stmt = select(Article.id).where(Article.status == status).order_by(Article.scraped_at, Article.id)
    return list(session.scalars(stmt).all())


def get_article(session: Session, article_id: str) -> Article | None:
    return session.get(Article, article_id)


def require_article(session: Session, article_id: str) -> Article:
    article = session.get(Article, article_id)
    if article is None:
        raise ArticleNotFoundError(article_id)
    return article


def update_article(session: Session, article_id: str, fields: Mapping[str, Any]) -> Article:
    """Apply a partial edit. Unknown keys are rejected.

    The enhancement fields are checked against the merged values before the
    entity is touched, so a rejected edit leaves nothing pending in the session.
    """
    unknown = set(fields) - _EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported article fields: {sorted(unknown)}")
    article = require_article(session, article_id)
    values = dict(fields)
    cleared = sorted(key for key in _REQUIRED_FIELDS & set(values) if values[key] is None)
    if cleared:
        raise ArticleInvariantError(f"Fields cannot be null: {cleared}")
    if values.get("references") is not None:
        values["references"] = [dict(ref) for ref in values["references"]]
    _check_enhancement_fields(
        values.get("status", article.status),
        values.get("updated_content", article.updated_content),
        values.get("references", article.references),
    )
    for key, value in values.items():
        setattr(article, key, value)
    session.flush()
    return article


def delete_article(session: Session, article_id: str) -> None:
    article = require_article(session, article_id)
    session.delete(article)
    session.flush()


def set_status(session: Session, article_id: str, status: ArticleStatus) -> Article:
    article = require_article(session, article_id)
    _check_enhancement_fields(status, article.updated_content, article.references)
    article.status = status
    session.flush()
    return article


def save_enhancement(
    session: Session,
    article_id: str,
    *,
    updated_content: str,
    references: Iterable[Mapping[str, str]],
) -> Article:
    """Persist enhanced content, references and ENHANCED status in one update."""
    article = require_article(session, article_id)
    article.updated_content = updated_content
    article.references = [{"title": ref["title"], "url": ref["url"]} for ref in references]
    article.status = ArticleStatus.ENHANCED
    session.flush()
    return article
