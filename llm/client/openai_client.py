"""OpenAI provider for article enhancement.

특징
- Chat Completions 호출 (system + user 메시지, temperature, max_tokens)
- Provider 주입으로 테스트 시 네트워크/실제 의존성 제거
- API 키 미설정은 생성 시 경고, 첫 호출 시 EnhancementProviderError
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional

from enhancement.prompts.templates import ENHANCE_SYSTEM_PROMPT
from ingestion.utils.logging import get_logger
from llm.client.base import EnhancementProviderError, LLMError, ProviderFn
from llm.settings import LLMSettings

logger = get_logger(__name__)


@dataclass(frozen=True)
class OpenAIProvider:
    settings: LLMSettings
    provider: Optional[ProviderFn] = None

    name: ClassVar[str] = "OpenAI"

    def __post_init__(self) -> None:
        if self.settings.openai_api_key is None:
            logger.warning("llm.api_key_missing", extra={"provider": self.name})

    def _api_key(self) -> str:
        key = self.settings.openai_api_key
        value = key.get_secret_value().strip() if key is not None else ""
        if not value:
            raise EnhancementProviderError("OPENAI_API_KEY is not configured")
        return value

    def _get_provider(self, api_key: str) -> ProviderFn:
        if self.provider is not None:
            return self.provider
        # 지연 import: 라이브러리가 없으면 명확한 에러
        try:
            from openai import OpenAI  # type: ignore
        except Exception as exc:  # pragma: no cover - 테스트에선 provider 주입
            raise EnhancementProviderError("openai 라이브러리를 찾을 수 없습니다.") from exc

        client = OpenAI(api_key=api_key, timeout=float(self.settings.llm_request_timeout_seconds))

        def _call(payload: Dict[str, Any]) -> Dict[str, Any]:  # pragma: no cover - 네트워크 미사용
            resp = client.chat.completions.create(**payload)
            content = resp.choices[0].message.content if resp.choices else None
            # 통일된 dict 형태로 변환
            return {
                "choices": [{"message": {"content": content}}],
                "usage": {"total_tokens": getattr(resp.usage, "total_tokens", 0)},
                "model": resp.model,
            }

        return _call

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.settings.openai_model,
            "messages": [
                {"role": "system", "content": ENHANCE_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": float(self.settings.openai_temperature),
            "max_tokens": int(self.settings.openai_max_tokens),
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
            raise EnhancementProviderError(f"OpenAI enhancement failed: {exc}") from exc

        choices = resp.get("choices") or [{}]
        content = (choices[0].get("message") or {}).get("content") or ""
        if not content.strip():
            raise EnhancementProviderError("No content returned from OpenAI")
        usage = resp.get("usage") or {}
        logger.info(
            "llm.response",
            extra={"provider": self.name, "chars": len(content), "tokens": usage.get("total_tokens")},
        )
        return content.strip()
