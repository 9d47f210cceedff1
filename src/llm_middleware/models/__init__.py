"""Data models for LLM Middleware."""

from llm_middleware.models.enums import (
    GeminiGeneration,
    GeminiThinkingLevel,
    LLMProvider,
    ReasoningEffort,
)
from llm_middleware.models.llm_models import (
    CacheMetadata,
    LLMRequestOptions,
    NormalizedResponse,
    RegionRotationConfig,
    ResponseMessage,
    ResponseMetadata,
    RetryPolicy,
    TokenUsage,
)
from llm_middleware.models.multimodal import (
    ContentPart,
    ImageContentPart,
    MultimodalContent,
    TextContentPart,
)

__all__ = [
    # Enums
    "GeminiGeneration",
    "GeminiThinkingLevel",
    "LLMProvider",
    "ReasoningEffort",
    # Request/response
    "CacheMetadata",
    "LLMRequestOptions",
    "NormalizedResponse",
    "RegionRotationConfig",
    "ResponseMessage",
    "ResponseMetadata",
    "RetryPolicy",
    "TokenUsage",
    # Multimodal
    "ContentPart",
    "ImageContentPart",
    "MultimodalContent",
    "TextContentPart",
]
