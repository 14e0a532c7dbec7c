"""LLM client module."""

from typing import Optional

from llm.client.anthropic_client import AnthropicProvider
from llm.client.base import (
    EnhancementProviderError,
    LLMError,
    LLMProvider,
    LLMValidationError,
    ProviderFn,
)
from llm.client.openai_client import OpenAIProvider
from llm.settings import LLMSettings, get_llm_settings


def create_provider(settings: Optional[LLMSettings] = None, provider: Optional[ProviderFn] = None) -> LLMProvider:
    """Build the provider selected by LLM_PROVIDER."""
    config = settings or get_llm_settings()
    if config.llm_provider == "anthropic":
        return AnthropicProvider(config, provider=provider)
    return OpenAIProvider(config, provider=provider)


__all__ = [
    "AnthropicProvider",
    "EnhancementProviderError",
    "LLMError",
    "LLMProvider",
    "LLMValidationError",
    "OpenAIProvider",
    "ProviderFn",
    "create_provider",
]
