"""Domain DTOs for the ingestion strategies."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, PositiveInt, field_validator


class ScrapedArticle(BaseModel):
    """Article extracted by an ingestion strategy, before persistence."""

    title: str = Field(..., max_length=512)
    content: str
    source_url: str = Field(..., description="절대 URL")
    author: Optional[str] = None
    published_at: Optional[datetime] = None

    @field_validator("title", "source_url")
    @classmethod
    def _strip_nonempty(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("빈 문자열은 허용되지 않습니다.")
        return s


class ScraperOptions(BaseModel):
    """수집 전략 실행 옵션."""

    max_articles: PositiveInt = Field(5, description="최대 수집 기사 수")
    timeout_seconds: PositiveInt = Field(30, description="페이지 로딩 타임아웃(초)")
    headless: bool = Field(True, description="헤드리스 브라우저 사용 여부")


class ScrapeSourceResult(BaseModel):
    message: str
    count: int
    article_ids: List[str] = Field(default_factory=list)


class ScrapeUrlResult(BaseModel):
    message: str
    article_id: str
