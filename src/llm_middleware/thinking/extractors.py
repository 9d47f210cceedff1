"""
Thinking extractors.

Models expose their reasoning in different ways:
- DeepSeek R1, QwQ: <think>...</think> tags inline in the content
- Some models: <thinking> or <reasoning> tags
- Gemini: thought=true parts (handled in the Gemini adapter)
- Anthropic: thinking content blocks (handled in the Anthropic adapter)

Only the inline-tag case needs extraction; everything else goes through
the no-op extractor so that structured reasoning is not processed twice.
"""

import re
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass(frozen=True)
class ThinkingExtractionResult:
    """Content with thinking removed, plus the extracted thinking (None if none found)."""
    content: str
    thinking: Optional[str] = None


class ThinkingExtractor(Protocol):
    """Strategy for separating reasoning from answer text."""

    name: str

    def extract(self, text: str) -> ThinkingExtractionResult:
        ...


class NoOpThinkingExtractor:
    """Returns the text unchanged with no thinking."""

    name = "noop"

    def extract(self, text: str) -> ThinkingExtractionResult:
        return ThinkingExtractionResult(content=text)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ThinkTagExtractor:
    """
    Extracts <thinking>, <reasoning> and <think> tag bodies.

    Tags are matched case-insensitively and bodies may span lines. Tag kinds
    are scanned in a fixed order; trimmed non-empty bodies are collected and
    joined with a blank line. Every matched span is removed from the content,
    including spans whose body was empty.
    """

    name = "think-tags"

    TAG_NAMES = ("thinking", "reasoning", "think")

    def __init__(self):
        self._patterns = [
            re.compile(rf"<{tag}>(.*?)</{tag}>", re.IGNORECASE | re.DOTALL)
            for tag in self.TAG_NAMES
        ]

    def extract(self, text: str) -> ThinkingExtractionResult:
        fragments: list[str] = []
        content = text

        for pattern in self._patterns:
            for match in pattern.finditer(text):
                body = match.group(1).strip()
                if body:
                    fragments.append(body)
            content = pattern.sub("", content)

        return ThinkingExtractionResult(
            content=content.strip(),
            thinking="\n\n".join(fragments) if fragments else None,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tags={list(self.TAG_NAMES)})"
