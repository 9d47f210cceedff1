"""
Gemini adapters: Direct API (API key) and Vertex AI (service account, regional).

Components:
- GeminiBaseClient: Shared payload building, retrying call and parsing
- GeminiDirectClient: generativelanguage.googleapis.com
- VertexAIClient: {region}-aiplatform.googleapis.com with region rotation
- reasoning: Reasoning effort -> thinkingBudget / thinkingLevel
"""

from llm_middleware.llm.gemini.base import GeminiBaseClient
from llm_middleware.llm.gemini.direct import GeminiDirectClient
from llm_middleware.llm.gemini.reasoning import (
    build_thinking_config,
    clamp_thinking_level,
    detect_gemini_generation,
    map_effort_to_thinking_budget,
    map_effort_to_thinking_level,
)
from llm_middleware.llm.gemini.region_rotation import RegionCursor, validate_rotation_config
from llm_middleware.llm.gemini.vertex import VertexAIClient

__all__ = [
    "GeminiBaseClient",
    "GeminiDirectClient",
    "RegionCursor",
    "VertexAIClient",
    "build_thinking_config",
    "clamp_thinking_level",
    "detect_gemini_generation",
    "map_effort_to_thinking_budget",
    "map_effort_to_thinking_level",
    "validate_rotation_config",
]
