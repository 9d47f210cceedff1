"""
Anthropic Messages API client.

POST {base_url}/messages with x-api-key / anthropic-version headers.
Supports extended thinking (budget tokens), base64 image blocks and
prompt cache accounting.
"""

import time
from typing import Any, Optional

import structlog

from llm_middleware.llm.base_client import BaseLLMClient
from llm_middleware.llm.content_utils import (
    content_length,
    content_to_debug_string,
    extract_text_content,
    has_images,
    normalize_content,
)
from llm_middleware.llm.exceptions import LLMClientError, LLMGenerationError
from llm_middleware.llm.transport import post_json
from llm_middleware.models.enums import LLMProvider, ReasoningEffort
from llm_middleware.models.llm_models import (
    CacheMetadata,
    LLMRequestOptions,
    NormalizedResponse,
    ResponseMessage,
    ResponseMetadata,
    TokenUsage,
)
from llm_middleware.models.multimodal import MultimodalContent, TextContentPart
from llm_middleware.retry.engine import execute_with_retry

logger = structlog.get_logger(__name__)

ANTHROPIC_API_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_API_VERSION = "2023-06-01"

# None disables extended thinking
THINKING_BUDGETS: dict[ReasoningEffort, Optional[int]] = {
    ReasoningEffort.NONE: None,
    ReasoningEffort.LOW: 1024,  # Minimum allowed budget
    ReasoningEffort.MEDIUM: 8192,
    ReasoningEffort.HIGH: 16384,
}


def map_effort_to_anthropic_budget(effort: Optional[ReasoningEffort]) -> Optional[int]:
    if effort is None:
        return None
    return THINKING_BUDGETS[ReasoningEffort(effort)]


class AnthropicClient(BaseLLMClient):
    """
    Anthropic adapter.

    Failure convention: returns None. Transport, HTTP and payload errors are
    logged (with dedicated lines for 401, 429 and 400) and swallowed into a
    None result; configuration errors are raised.

    Credentials: options.auth_token, then ANTHROPIC_API_KEY.
    """

    provider = LLMProvider.ANTHROPIC

    def __init__(self, base_url: str = ANTHROPIC_API_BASE_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    def default_model(self) -> Optional[str]:
        return self.settings.ANTHROPIC_MODEL

    def build_request_payload(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: LLMRequestOptions,
        model: str,
    ) -> dict:
        """
        Build the Messages API payload.

        Prompts with images become a list of text/image blocks; text-only
        prompts are sent as a plain string.
        """
        if has_images(prompt):
            content: Any = [
                {"type": "text", "text": part.text}
                if isinstance(part, TextContentPart)
                else {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": part.mime_type,
                        "data": part.data,
                    },
                }
                for part in normalize_content(prompt)
            ]
        else:
            content = extract_text_content(prompt)

        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": options.max_tokens or self.settings.LLM_MAX_TOKENS,
            "temperature": options.temperature if options.temperature is not None else 0.7,
            "system": system_message,
        }
        if options.top_p is not None:
            payload["top_p"] = options.top_p
        if options.top_k is not None:
            payload["top_k"] = options.top_k
        if options.stop_sequences:
            payload["stop_sequences"] = list(options.stop_sequences)

        budget = map_effort_to_anthropic_budget(options.reasoning_effort)
        if budget:
            payload["thinking"] = {"type": "enabled", "budget_tokens": budget}
            # budget_tokens must stay below max_tokens; the requested limit is kept for the answer
            if payload["max_tokens"] <= budget:
                payload["max_tokens"] += budget
        return payload

    def parse_response(
        self,
        data: dict,
        session_id: str,
        model: str,
        processing_time: int,
    ) -> NormalizedResponse:
        blocks = data.get("content")
        if not isinstance(blocks, list):
            raise LLMGenerationError(
                "No content returned from Anthropic API",
                details={"stop_reason": data.get("stop_reason")},
            )

        texts = [b.get("text", "") for b in blocks if b.get("type", "text") == "text"]
        thinking_blocks = [b["thinking"] for b in blocks if b.get("type") == "thinking" and b.get("thinking")]

        # Tag-based extraction covers Anthropic-compatible proxies serving R1-style models
        extractor = self.extractor_factory.for_model(model)
        extracted = extractor.extract("\n".join(texts))
        thinking_fragments = thinking_blocks + ([extracted.thinking] if extracted.thinking else [])

        raw_usage = data.get("usage") or {}
        input_tokens = raw_usage.get("input_tokens") or 0
        output_tokens = raw_usage.get("output_tokens") or 0
        cache_creation = raw_usage.get("cache_creation_input_tokens")
        cache_read = raw_usage.get("cache_read_input_tokens")
        usage = TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            cache_metadata=CacheMetadata(
                cache_creation_tokens=cache_creation or None,
                cache_read_tokens=cache_read or None,
            ) if (cache_creation or cache_read) else None,
        )

        return NormalizedResponse(
            message=ResponseMessage(
                content=extracted.content,
                thinking="\n\n".join(thinking_fragments) or None,
            ),
            session_id=session_id,
            metadata=ResponseMetadata(
                provider=self.provider.value,
                model=data.get("model") or model,
                tokens_used=usage.total_tokens,
                processing_time=processing_time,
            ),
            usage=usage,
            provider_metadata={
                "id": data.get("id"),
                "stop_reason": data.get("stop_reason"),
            },
        )

    async def call_with_system_message(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: Optional[LLMRequestOptions] = None,
    ) -> Optional[NormalizedResponse]:
        """
        Call the Anthropic Messages API.

        Returns:
            NormalizedResponse, or None on any non-configuration failure

        Raises:
            LLMConfigurationError: No API key or model
        """
        options = options or LLMRequestOptions()
        api_key = self._require_credential(
            options.auth_token or self.settings.ANTHROPIC_API_KEY,
            "ANTHROPIC_API_KEY",
        )
        model = self._resolve_model(options)

        base_url = (options.base_url or self.base_url).rstrip("/")
        url = f"{base_url}/messages"
        headers = {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_API_VERSION,
        }
        payload = self.build_request_payload(prompt, system_message, options, model)
        session_id = self._session_id(options)

        debug_info = self._debug_info(
            model=model,
            session_id=session_id,
            base_url=base_url,
            system_message=system_message,
            user_message=content_to_debug_string(prompt),
            payload=payload,
            options=options,
            temperature=payload["temperature"],
        )
        self.debug_sink.log_request(debug_info)

        logger.info(
            "Sending request to Anthropic API",
            url=url,
            model=model,
            prompt_length=content_length(prompt),
            max_tokens=payload["max_tokens"],
            thinking_budget=payload.get("thinking", {}).get("budget_tokens"),
        )

        async def attempt() -> dict:
            client = await self._get_client()
            return await post_json(client, url, payload, headers=headers, timeout=self.timeout)

        start = time.monotonic()
        try:
            data = await execute_with_retry(
                attempt,
                self._retry_policy(options),
                context=self._retry_context(model),
            )
            elapsed_ms = self._elapsed_ms(start)
            response = self.parse_response(data, session_id, model, elapsed_ms)
        except LLMClientError as e:
            elapsed_ms = self._elapsed_ms(start)
            self._record_failure(model, elapsed_ms)
            self._log_http_error_kind(e)
            details = self._log_failure(e, model, elapsed_ms, session_id)
            debug_info.mark_error(str(e), details)
            self.debug_sink.log_error(debug_info)
            return None

        logger.info(
            "Received response from Anthropic API",
            model=response.metadata.model,
            response_length=len(response.message.content),
            has_thinking=response.message.thinking is not None,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            stop_reason=response.provider_metadata.get("stop_reason"),
            processing_time_ms=elapsed_ms,
        )
        self._log_cache_usage(model, response.usage)
        self._record_success(model, elapsed_ms, response.usage)

        debug_info.mark_response(response.message.content, data, response.message.thinking)
        self.debug_sink.log_response(debug_info)
        return response
