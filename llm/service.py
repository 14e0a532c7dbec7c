"""Enhancement calls on top of the configured provider."""

from __future__ import annotations

from typing import Iterable, Optional

from enhancement.models.domain import Reference
from enhancement.prompts.templates import build_enhance_prompt
from ingestion.utils.logging import get_logger
from llm.client import create_provider
from llm.client.base import LLMProvider, LLMValidationError

logger = get_logger(__name__)

MIN_ENHANCED_LENGTH = 100

REFERENCES_INTRO = "This article was enhanced using insights from the following top-ranking articles:"


def add_references(content: str, references: Iterable[Reference]) -> str:
    """Append a markdown References section listing ``references`` in order."""
    lines = "\n".join(f"{index}. [{ref.title}]({ref.url})" for index, ref in enumerate(references, start=1))
    return f"{content}\n\n---\n\n## References\n\n{REFERENCES_INTRO}\n\n{lines}\n"


class LLMService:
    def __init__(self, provider: Optional[LLMProvider] = None) -> None:
        self.provider = provider or create_provider()
        logger.info("llm.provider_selected", extra={"provider": self.provider.name})

    def enhance_article(
        self,
        original_title: str,
        original_content: str,
        ref1_title: str,
        ref1_content: str,
        ref2_title: str,
        ref2_content: str,
    ) -> str:
        """Build the prompt, call the provider and validate the generated length."""
        prompt = build_enhance_prompt(
            original_title,
            original_content,
            ref1_title,
            ref1_content,
            ref2_title,
            ref2_content,
        )
        enhanced = self.provider.enhance(prompt)
        if not enhanced or len(enhanced) < MIN_ENHANCED_LENGTH:
            raise LLMValidationError("Enhanced content is too short or empty")
        logger.info("llm.enhanced", extra={"title": original_title, "chars": len(enhanced)})
        return enhanced

    def add_references(self, content: str, references: Iterable[Reference]) -> str:
        return add_references(content, references)
