"""Configuration models for the ingestion and enhancement services."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, List, Optional
from urllib.parse import urlparse

from pydantic import (
    Field,
    PositiveInt,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """서비스 공용 환경 설정."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    database_url: str = Field(
        "sqlite:///./var/storage/app.db",
        alias="DATABASE_URL",
        description="SQLAlchemy 연결 문자열.",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        alias="REDIS_URL",
        description="Celery 브로커/백엔드 및 락 저장소 Redis DSN.",
    )
    serpapi_key: Optional[SecretStr] = Field(None, alias="SERPAPI_KEY", description="검색 API 인증 키.")
    serpapi_endpoint: str = Field(
        "https://serpapi.com/search",
        alias="SERPAPI_ENDPOINT",
        description="검색 API 엔드포인트",
    )
    search_timeout_seconds: PositiveInt = Field(10, alias="SEARCH_TIMEOUT_SECONDS", description="검색 API 타임아웃(초)")
    search_overfetch: PositiveInt = Field(10, alias="SEARCH_OVERFETCH", description="필터링 전에 요청할 검색 결과 수")
    content_fetch_timeout_seconds: PositiveInt = Field(
        15,
        alias="CONTENT_FETCH_TIMEOUT_SECONDS",
        description="참고 기사 본문 수집 타임아웃(초)",
    )
    scraping_timeout_seconds: PositiveInt = Field(
        30,
        alias="SCRAPING_TIMEOUT_SECONDS",
        description="수집 전략 페이지 로딩 타임아웃(초)",
    )
    scraping_headless: bool = Field(True, alias="SCRAPING_HEADLESS", description="헤드리스 브라우저 사용 여부.")
    max_articles_to_scrape: PositiveInt = Field(
        5,
        alias="MAX_ARTICLES_TO_SCRAPE",
        description="목록 소스에서 수집할 최대 기사 수.",
    )
    source_blog_url: str = Field(
        "https://beyondchats.com/blogs",
        alias="SOURCE_BLOG_URL",
        description="페이지네이션 목록을 가진 원본 블로그 URL.",
    )
    enhance_exclude_domain: Optional[str] = Field(
        None,
        alias="ENHANCE_EXCLUDE_DOMAIN",
        description="검색 결과에서 제외할 도메인 (미설정 시 원본 블로그 호스트).",
    )
    enhance_max_attempts: PositiveInt = Field(3, alias="ENHANCE_MAX_ATTEMPTS", description="개선 작업 최대 시도 횟수.")
    enhance_backoff_seconds: PositiveInt = Field(
        2,
        alias="ENHANCE_BACKOFF_SECONDS",
        description="지수 백오프 기본 지연(초).",
    )
    celery_worker_concurrency: PositiveInt = Field(
        2,
        alias="CELERY_WORKER_CONCURRENCY",
        description="Celery 워커 동시 실행 수.",
    )
    celery_task_soft_time_limit: PositiveInt = Field(
        300,
        alias="CELERY_TASK_SOFT_TIME_LIMIT",
        description="Celery 태스크 소프트 타임아웃 (초).",
    )
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        alias="CORS_ORIGINS",
        description="쉼표 구분 문자열 혹은 JSON 배열 형태의 허용 Origin 목록.",
    )
    structlog_level: str = Field("INFO", alias="STRUCTLOG_LEVEL", description="구조화 로그 레벨.")
    log_json: bool = Field(False, alias="LOG_JSON", description="로그를 JSON 형식으로 출력할지 여부.")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> List[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            raw = value.strip()
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                except json.JSONDecodeError as exc:
                    raise ValueError("CORS_ORIGINS는 JSON 배열 또는 쉼표 구분 문자열이어야 합니다.") from exc
                return [str(item).strip() for item in parsed if str(item).strip()]
            return [item.strip() for item in raw.split(",") if item.strip()]
        if isinstance(value, list):
            return value
        raise ValueError("CORS_ORIGINS는 리스트 형태여야 합니다.")

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("DATABASE_URL은 유효한 DSN 문자열이어야 합니다.")
        return value

    @field_validator("search_overfetch")
    @classmethod
    def _validate_overfetch(cls, v: int) -> int:
        if v > 100:
            raise ValueError("SEARCH_OVERFETCH는 100 이하여야 합니다.")
        return v

    @field_validator("source_blog_url")
    @classmethod
    def _validate_source_blog_url(cls, value: str) -> str:
        url = value.strip().rstrip("/")
        if not urlparse(url).netloc:
            raise ValueError("SOURCE_BLOG_URL은 절대 URL이어야 합니다.")
        return url

    @property
    def exclude_domain(self) -> str:
        """검색에서 제외할 도메인. 명시값이 없으면 원본 블로그 호스트를 사용한다."""
        if self.enhance_exclude_domain:
            return self.enhance_exclude_domain.strip().lower()
        host = urlparse(self.source_blog_url).netloc.lower()
        return host[4:] if host.startswith("www.") else host


@lru_cache()
def get_settings() -> Settings:
    """환경 변수를 기준으로 Settings 인스턴스를 반환한다."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"환경 변수 검증에 실패했습니다: {exc}") from exc


def reset_settings_cache() -> None:
    """Settings LRU 캐시를 초기화한다 (테스트 용도)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
