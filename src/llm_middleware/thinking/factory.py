"""
Model name -> thinking extractor resolution.

The factory holds shared extractor instances built once; it never allocates
per call. Custom extractors are passed in as a mapping owned by the caller.
"""

from typing import Mapping, Optional

from llm_middleware.thinking.extractors import (
    NoOpThinkingExtractor,
    ThinkingExtractor,
    ThinkTagExtractor,
)

# Model families known to emit reasoning as inline tags
THINK_TAG_MODEL_MARKERS = ("deepseek", "-r1", "qwq")


class ThinkingExtractorFactory:
    """
    Resolves extractors by name or by model heuristic.

    Built-in names:
    - "noop": NoOpThinkingExtractor
    - "think-tags": ThinkTagExtractor

    Example:
        factory = ThinkingExtractorFactory()
        factory.for_model("deepseek-r1:14b")   # ThinkTagExtractor
        factory.for_model("llama3:8b")         # NoOpThinkingExtractor
    """

    def __init__(self, extra: Optional[Mapping[str, ThinkingExtractor]] = None):
        """
        Args:
            extra: Additional named extractors; may shadow the built-ins
        """
        self.noop = NoOpThinkingExtractor()
        self.think_tags = ThinkTagExtractor()
        self._extractors: dict[str, ThinkingExtractor] = {
            self.noop.name: self.noop,
            self.think_tags.name: self.think_tags,
        }
        if extra:
            self._extractors.update(extra)

    def get(self, name: str) -> ThinkingExtractor:
        """Extractor registered under `name`, or the no-op extractor."""
        return self._extractors.get(name, self.noop)

    def for_model(self, model: str) -> ThinkingExtractor:
        """Tag-based extractor for deepseek / *-r1 / qwq models, no-op otherwise."""
        lowered = model.lower()
        if any(marker in lowered for marker in THINK_TAG_MODEL_MARKERS):
            return self.think_tags
        return self.noop

    def uses_thinking_tags(self, model: str) -> bool:
        return self.for_model(model).name == ThinkTagExtractor.name

    @property
    def names(self) -> list[str]:
        return sorted(self._extractors)


DEFAULT_EXTRACTOR_FACTORY = ThinkingExtractorFactory()
