from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from enhancement.errors import (
    ArticleNotFoundError,
    ArticleStateError,
    ExternalServiceError,
    JobNotFoundError,
    ScrapeError,
)
from enhancement.models.domain import EnhanceAllResult, EnhanceOneResult, JobStatusView
from enhancement.services.automation import AutomationService, Dispatcher, celery_dispatch
from ingestion.db.models import ArticleStatus
from ingestion.models.domain import ScrapeSourceResult, ScrapeUrlResult
from ingestion.repositories.articles import (
    ArticleInvariantError,
    count_articles,
    create_article,
    delete_article,
    get_article,
    list_articles,
    update_article,
)
from ingestion.services.scraper import ScraperService
from ingestion.strategies.base import ScraperStrategy

from .database import session_dependency
from .models import ArticleCreate, ArticleOut, ArticleUpdate, ScrapeUrlRequest

articles_router = APIRouter(prefix="/api/v1/articles", tags=["articles"])
automation_router = APIRouter(prefix="/automation", tags=["automation"])

SessionDep = Annotated[Session, Depends(session_dependency)]


def get_dispatcher() -> Dispatcher:
    return celery_dispatch


def get_scraper_strategies() -> Optional[list[ScraperStrategy]]:
    # None selects the configured defaults
    return None


DispatcherDep = Annotated[Dispatcher, Depends(get_dispatcher)]
StrategiesDep = Annotated[Optional[list[ScraperStrategy]], Depends(get_scraper_strategies)]


@articles_router.post("", response_model=ArticleOut, status_code=201)
async def create_article_route(payload: ArticleCreate, session: SessionDep) -> ArticleOut:
    try:
        entity = create_article(
            session,
            title=payload.title,
            content=payload.content,
            source_url=payload.source_url,
            status=payload.status,
        )
    except ArticleInvariantError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ArticleOut.model_validate(entity)


@articles_router.get("", response_model=list[ArticleOut])
async def list_articles_route(
    session: SessionDep,
    skip: int = Query(default=0, ge=0),
    take: int = Query(default=10, ge=1, le=100),
    status: ArticleStatus | None = Query(default=None),
) -> list[ArticleOut]:
    rows = list_articles(session, skip=skip, take=take, status=status)
    return [ArticleOut.model_validate(row) for row in rows]


@articles_router.get("/count", response_model=int)
async def count_articles_route(
    session: SessionDep,
    status: ArticleStatus | None = Query(default=None),
) -> int:
    return count_articles(session, status)


@articles_router.get("/{article_id}", response_model=ArticleOut)
async def get_article_route(article_id: str, session: SessionDep) -> ArticleOut:
    entity = get_article(session, article_id)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Article {article_id} not found")
    return ArticleOut.model_validate(entity)


@articles_router.patch("/{article_id}", response_model=ArticleOut)
async def update_article_route(article_id: str, payload: ArticleUpdate, session: SessionDep) -> ArticleOut:
    fields = payload.model_dump(exclude_unset=True)
    try:
        entity = update_article(session, article_id, fields)
    except ArticleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ArticleInvariantError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ArticleOut.model_validate(entity)


@articles_router.delete("/{article_id}", status_code=204, response_model=None)
async def delete_article_route(article_id: str, session: SessionDep) -> None:
    try:
        delete_article(session, article_id)
    except ArticleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@automation_router.post("/enhance-all", response_model=EnhanceAllResult)
async def enhance_all_route(session: SessionDep, dispatcher: DispatcherDep) -> EnhanceAllResult:
    try:
        return AutomationService(session, dispatcher).enhance_all_original()
    except ExternalServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@automation_router.post("/enhance/{article_id}", response_model=EnhanceOneResult)
async def enhance_article_route(article_id: str, session: SessionDep, dispatcher: DispatcherDep) -> EnhanceOneResult:
    try:
        return AutomationService(session, dispatcher).enhance_article(article_id)
    except ArticleNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ArticleStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ExternalServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@automation_router.get("/jobs/{job_id}", response_model=JobStatusView)
async def job_status_route(job_id: str, session: SessionDep) -> JobStatusView:
    try:
        return AutomationService(session).get_job_status(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@automation_router.post("/scrape-source", response_model=ScrapeSourceResult)
async def scrape_source_route(session: SessionDep, strategies: StrategiesDep) -> ScrapeSourceResult:
    try:
        return await ScraperService(session, strategies).scrape_source()
    except ScrapeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@automation_router.post("/scrape-url", response_model=ScrapeUrlResult)
async def scrape_url_route(payload: ScrapeUrlRequest, session: SessionDep, strategies: StrategiesDep) -> ScrapeUrlResult:
    try:
        return await ScraperService(session, strategies).scrape_url(str(payload.url))
    except ScrapeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
