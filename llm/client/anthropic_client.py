"""Anthropic provider for article enhancement (Messages API)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

from ingestion.utils.logging import get_logger
from llm.client.base import EnhancementProviderError, LLMError, ProviderFn
from llm.settings import LLMSettings

logger = get_logger(__name__)


@dataclass(frozen=True)
class AnthropicProvider:
    settings: LLMSettings
    provider: Optional[ProviderFn] = None

    name: ClassVar[str] = "Anthropic"

    def __post_init__(self) -> None:
        if self.settings.anthropic_api_key is None:
            logger.warning("llm.api_key_missing", extra={"provider": self.name})

    def _api_key(self) -> str:
        key = self.settings.anthropic_api_key
        value = key.get_secret_value().strip() if key is not None else ""
        if not value:
            raise EnhancementProviderError("ANTHROPIC_API_KEY is not configured")
        return value

    def _get_provider(self, api_key: str) -> ProviderFn:
        if self.provider is not None:
            return self.provider
        try:
            from anthropic import Anthropic  # type: ignore
        except Exception as exc:  # pragma: no cover - 테스트에선 provider 주입
            raise EnhancementProviderError("anthropic 라이브러리를 찾을 수 없습니다.") from exc

        client = Anthropic(api_key=api_key, timeout=float(self.settings.llm_request_timeout_seconds))

        def _call(payload: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - 네트워크 미사용
            resp = client.messages.create(**payload)
            return {
                "content": [
                    {"type": block.type, "text": getattr(block, "text", None)} for block in resp.content
                ],
                "model": resp.model,
            }

        return _call

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.settings.anthropic_model,
            "max_tokens": int(self.settings.anthropic_max_tokens),
            "messages": [{"role": "user", "content": prompt}],
        }

    def enhance(self, prompt: str) -> str:
        provider = self._get_provider(self._api_key())
        payload = self._build_payload(prompt)
        logger.info("llm.call", extra={"provider": self.name, "model": payload["model"]})
        try:
            resp = provider(payload)
        except LLMError:
            raise
        except Exception as exc:
            logger.error("llm.call_failed", extra={"provider": self.name, "error": str(exc)})
            raise EnhancementProviderError(f"Anthropic enhancement failed: {exc}") from exc

        blocks = resp.get("content") or []
        first = blocks[0] if blocks else None
        if not first or first.get("type") != "text":
            raise EnhancementProviderError("No text content returned from Anthropic")
        text = first.get("text") or ""
        if not text.strip():
            raise EnhancementProviderError("No content returned from Anthropic")
        logger.info("llm.response", extra={"provider": self.name, "chars": len(text)})
        return text.strip()
