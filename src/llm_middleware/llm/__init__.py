"""
LLM client abstraction and provider adapters.

Components:
- BaseLLMClient: Abstract base class for provider adapters
- AnthropicClient: Anthropic Messages API (llm.anthropic_client)
- RequestyClient: Requesty OpenAI-compatible router (llm.requesty_client)
- OllamaClient: Local Ollama server (llm.ollama_client)
- GeminiDirectClient, VertexAIClient: Google Gemini (llm.gemini)
- transport: httpx -> typed error translation
- content_utils: Multimodal prompt helpers
- exceptions: LLM-specific exceptions

Adapters are imported from their own modules; this package only re-exports
the base class and the exception taxonomy so that the retry package can
depend on it without an import cycle.
"""

from llm_middleware.llm.exceptions import (
    LLMAuthenticationError,
    LLMClientError,
    LLMConfigurationError,
    LLMConnectionError,
    LLMContentBlockedError,
    LLMGenerationError,
    LLMHTTPError,
    LLMModelNotAvailableError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from llm_middleware.llm.base_client import BaseLLMClient

__all__ = [
    "BaseLLMClient",
    "LLMAuthenticationError",
    "LLMClientError",
    "LLMConfigurationError",
    "LLMConnectionError",
    "LLMContentBlockedError",
    "LLMGenerationError",
    "LLMHTTPError",
    "LLMModelNotAvailableError",
    "LLMRateLimitError",
    "LLMTimeoutError",
]
