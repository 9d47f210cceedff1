"""
LLM service facade.

Single entry point dispatching normalized calls to the provider adapters.

Failure conventions differ per provider and are preserved on purpose,
since callers depend on them:

    provider    adapter              on failure
    ---------   ------------------   -----------------------------
    ollama      OllamaClient         raises
    anthropic   AnthropicClient      returns None
    google      GeminiDirectClient   raises
    requesty    RequestyClient       returns None
    vertex_ai   VertexAIClient       raises

Configuration errors (missing model, credential or project, unknown
provider) are raised by every provider.
"""

from typing import Any, Mapping, Optional, Union

import structlog

from llm_middleware.config import Settings, get_settings
from llm_middleware.debug import DebugSink
from llm_middleware.llm.anthropic_client import AnthropicClient
from llm_middleware.llm.base_client import BaseLLMClient
from llm_middleware.llm.exceptions import LLMConfigurationError
from llm_middleware.llm.gemini.direct import GeminiDirectClient
from llm_middleware.llm.gemini.vertex import VertexAIClient
from llm_middleware.llm.ollama_client import OllamaClient
from llm_middleware.llm.requesty_client import RequestyClient
from llm_middleware.models.enums import LLMProvider
from llm_middleware.models.llm_models import (
    LLMRequestOptions,
    NormalizedResponse,
    RegionRotationConfig,
)
from llm_middleware.models.multimodal import MultimodalContent

logger = structlog.get_logger(__name__)


class LLMService:
    """
    Registry of provider adapters plus call dispatch.

    The registry is meant to be configured at startup (register_provider,
    set_default_provider), not mutated on the hot path.

    Example:
        service = LLMService(vertex_ai_config={"regions": ["europe-west3"], "fallback": "global"})
        response = await service.call_with_system_message(
            "Summarize this", "You are concise.",
            LLMRequestOptions(provider=LLMProvider.VERTEX_AI),
        )
    """

    def __init__(
        self,
        vertex_ai_config: Union[RegionRotationConfig, Mapping[str, Any], None] = None,
        settings: Optional[Settings] = None,
        debug_sink: Optional[DebugSink] = None,
    ):
        """
        Args:
            vertex_ai_config: Region rotation config for the Vertex AI adapter
            settings: Application settings (defaults to get_settings())
            debug_sink: Debug sink shared by all built-in adapters

        Raises:
            LLMConfigurationError: Invalid rotation config or DEFAULT_PROVIDER
        """
        self.settings = settings or get_settings()
        common = {"settings": self.settings, "debug_sink": debug_sink}
        self._providers: dict[LLMProvider, BaseLLMClient] = {
            LLMProvider.OLLAMA: OllamaClient(**common),
            LLMProvider.ANTHROPIC: AnthropicClient(**common),
            LLMProvider.GOOGLE: GeminiDirectClient(**common),
            LLMProvider.REQUESTY: RequestyClient(**common),
            LLMProvider.VERTEX_AI: VertexAIClient(region_rotation=vertex_ai_config, **common),
        }
        self._default_provider = self._coerce(self.settings.DEFAULT_PROVIDER)

        logger.info(
            "LLM service initialized",
            providers=[p.value for p in self._providers],
            default_provider=self._default_provider.value,
            region_rotation=vertex_ai_config is not None,
        )

    def _coerce(self, provider: Union[LLMProvider, str]) -> LLMProvider:
        try:
            return LLMProvider(provider)
        except ValueError as e:
            raise LLMConfigurationError(
                f"Provider {provider} is not available. "
                f"Available providers: {', '.join(self.get_available_providers())}",
                details={"provider": str(provider)},
            ) from e

    def get_provider(self, provider: Union[LLMProvider, str]) -> BaseLLMClient:
        """
        Adapter registered for `provider`.

        Raises:
            LLMConfigurationError: Unknown or unregistered provider
        """
        key = self._coerce(provider)
        instance = self._providers.get(key)
        if instance is None:
            raise LLMConfigurationError(
                f"Provider {key.value} is not available. "
                f"Available providers: {', '.join(self.get_available_providers())}",
                details={"provider": key.value},
            )
        return instance

    def register_provider(self, provider: Union[LLMProvider, str], instance: BaseLLMClient) -> None:
        """
        Register or replace an adapter.

        Typical use: swap in a VertexAIClient with region rotation once the
        rotation config is known. The replaced adapter is not closed.
        """
        key = self._coerce(provider)
        self._providers[key] = instance
        logger.info("Provider registered", provider=key.value, client=repr(instance))

    def set_default_provider(self, provider: Union[LLMProvider, str]) -> None:
        key = self._coerce(provider)
        if key not in self._providers:
            raise LLMConfigurationError(f"Provider {key.value} is not available")
        self._default_provider = key

    def get_default_provider(self) -> LLMProvider:
        return self._default_provider

    def get_available_providers(self) -> list[str]:
        return [p.value for p in self._providers]

    def _select(self, options: Optional[LLMRequestOptions]) -> BaseLLMClient:
        provider = options.provider if options and options.provider else self._default_provider
        return self.get_provider(provider)

    async def call_with_system_message(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: Optional[LLMRequestOptions] = None,
    ) -> Optional[NormalizedResponse]:
        """Dispatch to options.provider, or the default provider."""
        return await self._select(options).call_with_system_message(prompt, system_message, options)

    async def call(
        self,
        prompt: MultimodalContent,
        options: Optional[LLMRequestOptions] = None,
    ) -> Optional[NormalizedResponse]:
        """Dispatch with the adapter's default system message."""
        return await self._select(options).call(prompt, options)

    async def aclose(self) -> None:
        """Close every registered adapter's HTTP client."""
        for client in self._providers.values():
            await client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
