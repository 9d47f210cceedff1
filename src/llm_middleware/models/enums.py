"""
Enumerations for LLM Middleware data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class LLMProvider(str, Enum):
    """
    Provider keys understood by the service facade.

    Values double as the `provider` label in metrics and response metadata.
    """

    OLLAMA = "ollama"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    REQUESTY = "requesty"
    VERTEX_AI = "vertex_ai"


class ReasoningEffort(str, Enum):
    """
    Provider-agnostic reasoning intensity.

    Each adapter maps it onto its own capability model (budget tokens,
    thinking levels, a boolean flag, or a passthrough string).
    Ordered from none to high.
    """

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class GeminiThinkingLevel(str, Enum):
    """Thinking levels of the level-based Gemini scheme (Gemini 3)."""

    MINIMAL = "MINIMAL"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class GeminiGeneration(str, Enum):
    """
    Gemini model generation, selecting the reasoning control scheme.

    - GEMINI_3: thinkingLevel
    - GEMINI_2_5: thinkingBudget
    """

    GEMINI_3 = "3"
    GEMINI_2_5 = "2.5"
