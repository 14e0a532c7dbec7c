"""Domain DTOs for the enhancement workflow."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    title: str
    url: str
    snippet: str = ""


class ScrapedContent(BaseModel):
    title: str
    content: str
    url: str = ""


PLACEHOLDER_REFERENCE = ScrapedContent(
    title="Reference Article",
    content="No additional reference available.",
    url="",
)


class Reference(BaseModel):
    title: str
    url: str


class EnhancementJobResult(BaseModel):
    """Structured job outcome; ``retryable`` stays internal to the job runner."""

    success: bool
    article_id: str
    error: Optional[str] = None
    retryable: bool = Field(False, exclude=True)


class EnhanceAllResult(BaseModel):
    message: str
    queued: int
    job_ids: List[str] = Field(default_factory=list)


class EnhanceOneResult(BaseModel):
    message: str
    job_id: str
    article_id: str


class JobStatusView(BaseModel):
    job_id: str
    article_id: str
    state: str
    progress: int = Field(0, ge=0, le=100)
    attempts_made: int = 0
    processed_on: Optional[datetime] = None
    finished_on: Optional[datetime] = None
    failed_reason: Optional[str] = None
