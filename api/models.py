from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator

from ingestion.db.models import ArticleStatus


class ReferenceItem(BaseModel):
    title: str
    url: str


class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=512)
    content: str
    source_url: str = Field(..., min_length=1, max_length=2048)
    status: ArticleStatus = ArticleStatus.ORIGINAL

    @field_validator("title", "source_url")
    @classmethod
    def _strip(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("must not be blank")
        return s


class ArticleUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=512)
    content: Optional[str] = None
    source_url: Optional[str] = Field(default=None, min_length=1, max_length=2048)
    status: Optional[ArticleStatus] = None
    updated_content: Optional[str] = None
    references: Optional[list[ReferenceItem]] = None


class ArticleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    source_url: str
    status: ArticleStatus
    updated_content: Optional[str] = None
    references: Optional[list[ReferenceItem]] = None
    scraped_at: datetime
    updated_at: datetime


class ScrapeUrlRequest(BaseModel):
    url: AnyHttpUrl
