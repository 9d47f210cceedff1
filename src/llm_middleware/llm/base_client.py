"""
Abstract base client for hosted LLM providers.

Defines the interface that all provider adapters (Anthropic, Gemini, Vertex AI,
Requesty, Ollama) must adhere to, plus the scaffolding they share: the lazily
created httpx client, model/credential resolution, metrics and debug hooks.
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Optional

import httpx
import structlog

from llm_middleware.config import Settings, get_settings
from llm_middleware.debug import DebugSink, LLMDebugInfo, StructlogDebugSink
from llm_middleware.llm.exceptions import LLMConfigurationError, LLMHTTPError
from llm_middleware.models.enums import LLMProvider
from llm_middleware.models.llm_models import LLMRequestOptions, RetryPolicy, TokenUsage
from llm_middleware.models.multimodal import MultimodalContent
from llm_middleware.monitoring.metrics import (
    llm_latency_seconds,
    llm_requests_total,
    llm_tokens_total,
)
from llm_middleware.thinking import DEFAULT_EXTRACTOR_FACTORY, ThinkingExtractorFactory

logger = structlog.get_logger(__name__)

DEFAULT_SYSTEM_MESSAGE = "You are a helpful assistant."


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM provider adapters.

    All concrete implementations must inherit from this and implement
    call_with_system_message() and default_model().

    Responsibilities:
    - Translate the normalized call into the provider's wire format
    - Send it through the retry engine (one HTTP attempt per retry)
    - Normalize the provider response into NormalizedResponse

    Failure convention is per adapter and documented on each subclass:
    some return None on failure, others raise. Configuration errors are
    always raised, before any network I/O.
    """

    provider: LLMProvider

    def __init__(
        self,
        base_url: str,
        settings: Optional[Settings] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connection_limits: Optional[httpx.Limits] = None,
        debug_sink: Optional[DebugSink] = None,
        extractor_factory: Optional[ThinkingExtractorFactory] = None,
    ):
        """
        Initialize base client.

        Args:
            base_url: Provider API base URL
            settings: Application settings (defaults to get_settings())
            timeout: Per-attempt timeout in seconds (default: LLM_TIMEOUT)
            transport: Custom httpx transport (tests pass httpx.MockTransport)
            connection_limits: httpx connection pool limits
            debug_sink: Receiver of request/response snapshots
            extractor_factory: Thinking extractor resolution for tag-based models
        """
        self.settings = settings or get_settings()
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout if timeout is not None else self.settings.LLM_TIMEOUT)
        self.debug_sink: DebugSink = debug_sink or StructlogDebugSink()
        self.extractor_factory = extractor_factory or DEFAULT_EXTRACTOR_FACTORY

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            )
        self._connection_limits = connection_limits
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        logger.debug(
            "Initialized LLM client",
            client_class=self.__class__.__name__,
            base_url=self.base_url,
            timeout=self.timeout,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("Created new httpx AsyncClient", client_class=self.__class__.__name__)
        return self._client

    @abstractmethod
    def default_model(self) -> Optional[str]:
        """Model used when the options do not name one."""

    @abstractmethod
    async def call_with_system_message(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: Optional[LLMRequestOptions] = None,
    ):
        """
        Call the provider with an explicit system message.

        Args:
            prompt: Plain string or list of text/image parts
            system_message: System instruction defining the model's behavior
            options: Per-call options

        Returns:
            NormalizedResponse, or None for null-on-failure adapters

        Raises:
            LLMConfigurationError: Missing model or credential
            LLMClientError: Any failure, for raising adapters
        """

    async def call(self, prompt: MultimodalContent, options: Optional[LLMRequestOptions] = None):
        """Call the provider with the default system message."""
        return await self.call_with_system_message(prompt, DEFAULT_SYSTEM_MESSAGE, options)

    # === Shared helpers ===

    def _resolve_model(self, options: LLMRequestOptions) -> str:
        model = options.model or self.default_model()
        if not model:
            raise LLMConfigurationError(
                "Model name is required but not provided. "
                "Set the provider model environment variable or pass model in options.",
                details={"provider": self.provider.value},
            )
        return model

    def _require_credential(self, value: Optional[str], env_names: str) -> str:
        if not value:
            raise LLMConfigurationError(
                f"{self.provider.value} API key is required but not provided. "
                f"Set {env_names} or pass auth_token in options.",
                details={"provider": self.provider.value},
            )
        return value

    def _retry_policy(self, options: LLMRequestOptions) -> RetryPolicy:
        return options.retry or self.settings.default_retry_policy()

    @staticmethod
    def _session_id(options: LLMRequestOptions) -> str:
        return options.session_id or str(uuid.uuid4())

    def _retry_context(self, model: str) -> str:
        return f"{self.__class__.__name__}:{model}"

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.monotonic() - start) * 1000)

    def _record_success(self, model: str, elapsed_ms: int, usage: Optional[TokenUsage]) -> None:
        if not self.settings.PROMETHEUS_ENABLED:
            return
        provider = self.provider.value
        llm_requests_total.labels(provider=provider, outcome="success").inc()
        llm_latency_seconds.labels(provider=provider, model=model, success="true").observe(elapsed_ms / 1000.0)
        if usage is None:
            return
        llm_tokens_total.labels(provider=provider, model=model, token_type="input").inc(usage.input_tokens)
        llm_tokens_total.labels(provider=provider, model=model, token_type="output").inc(usage.output_tokens)
        if usage.reasoning_tokens:
            llm_tokens_total.labels(provider=provider, model=model, token_type="reasoning").inc(usage.reasoning_tokens)
        if usage.cache_metadata and usage.cache_metadata.cache_read_tokens:
            llm_tokens_total.labels(provider=provider, model=model, token_type="cache_read").inc(
                usage.cache_metadata.cache_read_tokens
            )

    def _record_failure(self, model: str, elapsed_ms: int, outcome: str = "error") -> None:
        if not self.settings.PROMETHEUS_ENABLED:
            return
        provider = self.provider.value
        llm_requests_total.labels(provider=provider, outcome=outcome).inc()
        llm_latency_seconds.labels(provider=provider, model=model, success="false").observe(elapsed_ms / 1000.0)

    def _log_cache_usage(self, model: str, usage: Optional[TokenUsage]) -> None:
        """Log the cache hit ratio (cached / input tokens) when the provider reported cached tokens."""
        if usage is None or usage.cache_metadata is None:
            return
        cached = usage.cache_metadata.cache_read_tokens or 0
        if not cached:
            return
        ratio = cached / usage.input_tokens if usage.input_tokens else 0.0
        logger.info(
            "Prompt cache hit",
            provider=self.provider.value,
            model=model,
            cached_tokens=cached,
            input_tokens=usage.input_tokens,
            cache_hit_ratio=round(ratio, 4),
        )

    def _log_failure(self, error: Exception, model: str, elapsed_ms: int, session_id: str) -> dict:
        """Log a failed call with status/code context; returns the details for the debug sink."""
        details: dict = {"error_type": type(error).__name__}
        if isinstance(error, LLMHTTPError):
            details["status_code"] = error.status_code
            details["data"] = error.body
        code = getattr(error, "code", None)
        if code:
            details["error_code"] = code
        logger.error(
            "LLM call failed",
            client_class=self.__class__.__name__,
            provider=self.provider.value,
            model=model,
            session_id=session_id,
            processing_time_ms=elapsed_ms,
            error=str(error),
            **{k: v for k, v in details.items() if k != "data"},
        )
        return details

    def _log_http_error_kind(self, error: Exception) -> None:
        """Extra log line for the HTTP errors callers most often need to act on."""
        if not isinstance(error, LLMHTTPError):
            return
        body = error.body if isinstance(error.body, dict) else {}
        api_error = body.get("error") if isinstance(body.get("error"), dict) else {}
        name = self.provider.value
        if error.status_code == 401:
            logger.error(
                f"Authentication error with {name} API",
                error="Invalid API key",
                status_code=error.status_code,
                message=api_error.get("message"),
            )
        elif error.status_code == 429:
            logger.error(
                "Rate limit exceeded",
                provider=name,
                status_code=error.status_code,
                retry_after=error.get_header("retry-after"),
            )
        elif error.status_code == 400:
            logger.error(
                f"Bad request to {name} API",
                error=api_error.get("message") or "Invalid request",
                error_type=api_error.get("type"),
            )

    def _debug_info(
        self,
        *,
        model: str,
        session_id: str,
        base_url: str,
        system_message: str,
        user_message: str,
        payload: dict,
        options: LLMRequestOptions,
        temperature: Optional[float] = None,
    ) -> LLMDebugInfo:
        return LLMDebugInfo(
            provider=self.provider.value,
            model=model,
            session_id=session_id,
            base_url=base_url,
            system_message=system_message,
            user_message=user_message,
            request_data=payload,
            use_case=options.debug_context,
            temperature=temperature,
            reasoning_effort=options.reasoning_effort.value if options.reasoning_effort else None,
        )

    async def close(self):
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed LLM client connection", client_class=self.__class__.__name__)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"timeout={self.timeout}s)"
        )
