"""
LLM-specific data models for the request/response cycle.

These models are shared by every provider adapter: request options go in,
a NormalizedResponse comes out. Provider wire formats never leak past the
adapter that speaks them.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from llm_middleware.models.enums import GeminiGeneration, LLMProvider, ReasoningEffort


class RetryPolicy(BaseModel):
    """
    Retry/backoff policy for one LLM call.

    The delay before retry attempt k (0-indexed) is
    min(initial_delay_ms * multiplier**k, max_delay_ms), replaced by a
    uniform draw from [0, that value] when jitter is enabled.
    """
    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True, description="When False the operation is called exactly once")
    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    initial_delay_ms: int = Field(default=1000, ge=0, description="Delay before the first retry")
    multiplier: float = Field(default=2.0, ge=1.0, description="Exponential backoff multiplier")
    max_delay_ms: int = Field(default=30000, ge=0, description="Upper bound of the computed delay")
    jitter: bool = Field(default=True, description="Full jitter: uniform draw in [0, delay]")


class RegionRotationConfig(BaseModel):
    """
    Vertex AI region rotation on quota errors.

    Attempts walk `regions` in order, then `fallback`; once on the fallback
    the remaining retry budget stays there.
    """
    model_config = ConfigDict(frozen=True)

    regions: list[str] = Field(default_factory=list, description="Regions tried in order, e.g. ['europe-west3', 'europe-west1']")
    fallback: Optional[str] = Field(default=None, description="Last-resort region, typically 'global'")
    always_try_fallback: bool = Field(
        default=True,
        description="One bonus attempt on the fallback when the budget runs out before reaching it",
    )

    @model_validator(mode="after")
    def _check_sequence(self) -> "RegionRotationConfig":
        if not self.regions:
            raise ValueError("region_rotation.regions must contain at least one region")
        if not self.fallback:
            raise ValueError("region_rotation.fallback is required")
        return self


class LLMRequestOptions(BaseModel):
    """
    Per-call options accepted by every adapter.

    Fields an adapter does not understand are ignored by it (e.g. top_k
    for Anthropic). Unset fields fall back to Settings.
    """
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    # Common
    model: Optional[str] = Field(default=None, description="Model name; adapter default when omitted")
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    provider: Optional[LLMProvider] = Field(default=None, description="Facade dispatch key")
    reasoning_effort: Optional[ReasoningEffort] = Field(
        default=None,
        description="Omitted means provider default (dynamic thinking on Gemini 2.5)",
    )
    retry: Optional[RetryPolicy] = Field(default=None, description="Overrides the settings retry policy")
    auth_token: Optional[str] = Field(default=None, description="API key / bearer token override")
    base_url: Optional[str] = Field(default=None, description="Endpoint base URL override")
    session_id: Optional[str] = Field(default=None, description="Generated (uuid4) when omitted")
    debug_context: Optional[str] = Field(default=None, description="Label used only for log correlation")

    # Gemini
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(default=None, ge=1)
    stop_sequences: Optional[list[str]] = None
    candidate_count: Optional[int] = Field(default=None, ge=1)
    max_output_tokens: Optional[int] = Field(default=None, ge=1)
    gemini_generation: Optional[GeminiGeneration] = Field(
        default=None,
        description="Overrides generation detection from the model name",
    )

    # Vertex AI
    region: Optional[str] = None
    project_id: Optional[str] = None
    service_account_key: Optional[Dict[str, Any]] = Field(default=None, description="Parsed service account JSON")
    service_account_key_path: Optional[str] = None

    # Requesty
    http_referer: Optional[str] = None
    x_title: Optional[str] = None


class CacheMetadata(BaseModel):
    """Prompt cache accounting; only present when a count is non-zero."""
    model_config = ConfigDict(frozen=True)

    cache_creation_tokens: Optional[int] = Field(default=None, ge=0)
    cache_read_tokens: Optional[int] = Field(default=None, ge=0)


class TokenUsage(BaseModel):
    """
    Provider-agnostic token accounting.

    reasoning_tokens is present whenever the provider returned the field,
    even as 0. cache_metadata is omitted when cached counts are 0 or absent.
    """
    model_config = ConfigDict(frozen=True)

    input_tokens: int = Field(..., ge=0)
    output_tokens: int = Field(..., ge=0)
    total_tokens: int = Field(..., ge=0)
    reasoning_tokens: Optional[int] = Field(default=None, ge=0)
    cost_usd: Optional[float] = Field(default=None, ge=0.0)
    cache_metadata: Optional[CacheMetadata] = None


class ResponseMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str = Field(..., description="Final answer text, thinking removed")
    thinking: Optional[str] = Field(default=None, description="Reasoning text, when the model produced any")


class ResponseMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: str = Field(..., description="Provider key (see LLMProvider)")
    model: str
    tokens_used: Optional[int] = Field(default=None, description="Total tokens, when reported")
    processing_time: int = Field(..., ge=0, description="Wall time of the call in milliseconds")


class NormalizedResponse(BaseModel):
    """
    The single response shape every adapter returns.

    Provider-specific extras (Anthropic id/stop_reason, Requesty id/
    finish_reason, Gemini finish_reason) live in provider_metadata.
    """
    model_config = ConfigDict(frozen=True)

    message: ResponseMessage
    session_id: str
    metadata: ResponseMetadata
    usage: Optional[TokenUsage] = None
    provider_metadata: Dict[str, Any] = Field(default_factory=dict)
