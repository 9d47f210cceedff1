"""
Thinking ("reasoning") extraction for models that inline it as tags.

Components:
- ThinkTagExtractor: <thinking>/<reasoning>/<think> tag extraction
- NoOpThinkingExtractor: passthrough for structured-reasoning providers
- ThinkingExtractorFactory: model name -> extractor
"""

from llm_middleware.thinking.extractors import (
    NoOpThinkingExtractor,
    ThinkingExtractionResult,
    ThinkingExtractor,
    ThinkTagExtractor,
)
from llm_middleware.thinking.factory import (
    DEFAULT_EXTRACTOR_FACTORY,
    ThinkingExtractorFactory,
)

__all__ = [
    "DEFAULT_EXTRACTOR_FACTORY",
    "NoOpThinkingExtractor",
    "ThinkingExtractionResult",
    "ThinkingExtractor",
    "ThinkingExtractorFactory",
    "ThinkTagExtractor",
]
