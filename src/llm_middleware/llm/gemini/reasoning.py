"""
Reasoning-effort mapping for Gemini models.

Two generations, two mutually exclusive control schemes:
- Gemini 2.5: thinkingBudget (token count; 0 disables thinking)
- Gemini 3:   thinkingLevel (MINIMAL/LOW/MEDIUM/HIGH; cannot be disabled)

Older generations (1.5, 2.0) get no thinking config at all.
"""

from typing import Optional

import structlog

from llm_middleware.models.enums import GeminiGeneration, GeminiThinkingLevel, ReasoningEffort

logger = structlog.get_logger(__name__)

THINKING_BUDGETS = {
    ReasoningEffort.NONE: 0,
    ReasoningEffort.LOW: 1024,
    ReasoningEffort.MEDIUM: 6144,
    ReasoningEffort.HIGH: 12288,
}

THINKING_LEVELS = {
    ReasoningEffort.NONE: GeminiThinkingLevel.MINIMAL,
    ReasoningEffort.LOW: GeminiThinkingLevel.LOW,
    ReasoningEffort.MEDIUM: GeminiThinkingLevel.MEDIUM,
    ReasoningEffort.HIGH: GeminiThinkingLevel.HIGH,
}

# Earliest Gemini 3 pro sub-version: no MINIMAL and no MEDIUM
_EARLIEST_PRO_MARKERS = ("gemini-3-pro", "gemini-3.0-pro")


def detect_gemini_generation(model: str) -> Optional[GeminiGeneration]:
    """
    Detect the Gemini generation from a model name.

    Examples:
        >>> detect_gemini_generation("gemini-3-flash-preview")
        <GeminiGeneration.GEMINI_3: '3'>
        >>> detect_gemini_generation("gemini-1.5-pro") is None
        True
    """
    lowered = model.lower()
    if "gemini-3" in lowered:
        return GeminiGeneration.GEMINI_3
    if "gemini-2.5" in lowered:
        return GeminiGeneration.GEMINI_2_5
    return None


def map_effort_to_thinking_budget(effort: ReasoningEffort) -> int:
    return THINKING_BUDGETS[ReasoningEffort(effort)]


def map_effort_to_thinking_level(effort: ReasoningEffort) -> GeminiThinkingLevel:
    return THINKING_LEVELS[ReasoningEffort(effort)]


def clamp_thinking_level(level: GeminiThinkingLevel, model: str) -> GeminiThinkingLevel:
    """
    Clamp a thinking level to what the model sub-family supports.

    - Pro variants do not support MINIMAL (-> LOW)
    - The earliest pro sub-version also lacks MEDIUM (-> HIGH)
    - Flash / lite variants support every level

    A clamp that changes the level logs a warning.
    """
    lowered = model.lower()
    if "pro" not in lowered:
        return level

    clamped = level
    if level == GeminiThinkingLevel.MINIMAL:
        clamped = GeminiThinkingLevel.LOW
    elif level == GeminiThinkingLevel.MEDIUM and any(m in lowered for m in _EARLIEST_PRO_MARKERS):
        clamped = GeminiThinkingLevel.HIGH

    if clamped != level:
        logger.warning(
            "Thinking level not supported by model, clamping",
            model=model,
            requested_level=level.value,
            effective_level=clamped.value,
        )
    return clamped


def build_thinking_config(
    effort: Optional[ReasoningEffort],
    model: str,
    generation: Optional[GeminiGeneration] = None,
) -> Optional[dict]:
    """
    Build the generationConfig.thinkingConfig block.

    Args:
        effort: Requested reasoning effort; None selects dynamic thinking
            (the block is omitted and the model decides)
        model: Model name, used for generation detection and clamping
        generation: Explicit generation overriding detection

    Returns:
        thinkingConfig dict, or None when no block should be sent.
        includeThoughts is only set when thinking is requested: the API
        rejects it alongside a zero budget.
    """
    if effort is None:
        return None
    effort = ReasoningEffort(effort)
    generation = generation or detect_gemini_generation(model)

    if generation == GeminiGeneration.GEMINI_3:
        level = clamp_thinking_level(map_effort_to_thinking_level(effort), model)
        if effort == ReasoningEffort.NONE:
            return {"thinkingLevel": level.value}
        return {"thinkingLevel": level.value, "includeThoughts": True}

    if generation == GeminiGeneration.GEMINI_2_5:
        budget = map_effort_to_thinking_budget(effort)
        if effort == ReasoningEffort.NONE:
            return {"thinkingBudget": budget}
        return {"thinkingBudget": budget, "includeThoughts": True}

    return None
