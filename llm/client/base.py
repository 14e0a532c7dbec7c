"""Provider interface and errors shared by the LLM clients."""

from __future__ import annotations

from typing import Any, Callable, Dict, Protocol


class LLMError(Exception):
    """LLM 호출 관련 기본 오류."""


class EnhancementProviderError(LLMError):
    """Endpoint error, no usable text block, or missing API key."""


class LLMValidationError(LLMError):
    """Generated text failed validation (too short or empty)."""


# payload dict -> normalized response dict; injected in tests
ProviderFn = Callable[[Dict[str, Any]], Dict[str, Any]]


class LLMProvider(Protocol):
    name: str

    def enhance(self, prompt: str) -> str: ...  # noqa: D401
