"""LLM module - enhancement providers, service and settings."""

from llm.client import (
    AnthropicProvider,
    EnhancementProviderError,
    LLMError,
    LLMProvider,
    LLMValidationError,
    OpenAIProvider,
    ProviderFn,
    create_provider,
)
from llm.service import LLMService, add_references
from llm.settings import LLMSettings, get_llm_settings, reset_llm_settings_cache

__all__ = [
    "AnthropicProvider",
    "EnhancementProviderError",
    "LLMError",
    "LLMProvider",
    "LLMService",
    "LLMSettings",
    "LLMValidationError",
    "OpenAIProvider",
    "ProviderFn",
    "add_references",
    "create_provider",
    "get_llm_settings",
    "reset_llm_settings_cache",
]
