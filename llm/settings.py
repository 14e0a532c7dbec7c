"""Settings for the enhancement LLM providers."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, PositiveInt, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Environment-driven configuration for the LLM providers."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    llm_provider: Literal["openai", "anthropic"] = Field(
        "openai",
        alias="LLM_PROVIDER",
        description="Provider used for enhancement (openai | anthropic)",
    )
    openai_api_key: Optional[SecretStr] = Field(None, alias="OPENAI_API_KEY", description="OpenAI API key")
    openai_model: str = Field("gpt-4-turbo-preview", alias="OPENAI_MODEL", description="OpenAI model name")
    openai_temperature: float = Field(0.7, ge=0.0, le=2.0, alias="OPENAI_TEMPERATURE", description="Sampling temperature")
    openai_max_tokens: PositiveInt = Field(4000, alias="OPENAI_MAX_TOKENS", description="Max completion tokens")
    anthropic_api_key: Optional[SecretStr] = Field(None, alias="ANTHROPIC_API_KEY", description="Anthropic API key")
    anthropic_model: str = Field(
        "claude-3-sonnet-20240229",
        alias="ANTHROPIC_MODEL",
        description="Anthropic model name",
    )
    anthropic_max_tokens: PositiveInt = Field(4000, alias="ANTHROPIC_MAX_TOKENS", description="Max output tokens")
    llm_request_timeout_seconds: PositiveInt = Field(
        30,
        alias="LLM_REQUEST_TIMEOUT_SECONDS",
        description="HTTP request timeout in seconds",
    )

    @field_validator("llm_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, v: str) -> str:
        return v.strip().lower() if isinstance(v, str) else v


@lru_cache()
def get_llm_settings() -> LLMSettings:
    try:
        return LLMSettings()
    except ValidationError as exc:
        raise RuntimeError(f"LLM 설정 검증 실패: {exc}") from exc


def reset_llm_settings_cache() -> None:
    get_llm_settings.cache_clear()  # type: ignore[attr-defined]
