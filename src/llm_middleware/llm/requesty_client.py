"""
Requesty router client (OpenAI-compatible chat completions).

Gives access to many hosted models behind one API, including EU-hosted
OpenAI models. Model names are router-qualified, e.g. "openai/gpt-4o".
"""

import time
from typing import Any, Optional

import structlog

from llm_middleware.config import get_settings
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
from llm_middleware.models.enums import LLMProvider
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


class RequestyClient(BaseLLMClient):
    """
    Requesty adapter.

    Failure convention: returns None (configuration errors are raised).

    Credentials: options.auth_token, then REQUESTY_API_KEY.
    Reasoning effort is passed through verbatim as `reasoning_effort`.
    """

    provider = LLMProvider.REQUESTY

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        if base_url is None:
            base_url = (kwargs.get("settings") or get_settings()).REQUESTY_BASE_URL
        super().__init__(base_url, **kwargs)

    def default_model(self) -> Optional[str]:
        return self.settings.REQUESTY_MODEL

    @staticmethod
    def build_user_content(prompt: MultimodalContent) -> Any:
        """Plain string for text prompts, OpenAI content parts when images are present."""
        if not has_images(prompt):
            return extract_text_content(prompt)
        parts = []
        for part in normalize_content(prompt):
            if isinstance(part, TextContentPart):
                parts.append({"type": "text", "text": part.text})
                continue
            image_url: dict[str, Any] = {"url": f"data:{part.mime_type};base64,{part.data}"}
            if part.detail:
                image_url["detail"] = part.detail
            parts.append({"type": "image_url", "image_url": image_url})
        return parts

    def build_request_payload(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: LLMRequestOptions,
        model: str,
    ) -> dict:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_message},
                {"role": "user", "content": self.build_user_content(prompt)},
            ],
            "max_tokens": options.max_tokens or self.settings.LLM_MAX_TOKENS,
            "temperature": options.temperature if options.temperature is not None else 0.7,
        }
        if options.top_p is not None:
            payload["top_p"] = options.top_p
        if options.stop_sequences:
            payload["stop"] = list(options.stop_sequences)
        if options.reasoning_effort is not None:
            payload["reasoning_effort"] = options.reasoning_effort.value
        return payload

    def parse_response(
        self,
        data: dict,
        session_id: str,
        model: str,
        processing_time: int,
    ) -> NormalizedResponse:
        choices = data.get("choices") or []
        if not choices:
            raise LLMGenerationError("No choices returned from Requesty API", details={"id": data.get("id")})

        choice = choices[0]
        message = choice.get("message") or {}
        raw_content = message.get("content") or ""

        reasoning = message.get("reasoning_content")
        if reasoning:
            content, thinking = raw_content, reasoning
        else:
            extracted = self.extractor_factory.for_model(model).extract(raw_content)
            content, thinking = extracted.content, extracted.thinking

        usage = self._parse_usage(data.get("usage"))
        return NormalizedResponse(
            message=ResponseMessage(content=content, thinking=thinking),
            session_id=session_id,
            metadata=ResponseMetadata(
                provider=self.provider.value,
                model=data.get("model") or model,
                tokens_used=usage.total_tokens if usage else None,
                processing_time=processing_time,
            ),
            usage=usage,
            provider_metadata={
                "id": data.get("id"),
                "finish_reason": choice.get("finish_reason"),
            },
        )

    @staticmethod
    def _parse_usage(raw: Optional[dict]) -> Optional[TokenUsage]:
        if not raw:
            return None
        input_tokens = raw.get("prompt_tokens") or 0
        output_tokens = raw.get("completion_tokens") or 0
        completion_details = raw.get("completion_tokens_details") or {}
        prompt_details = raw.get("prompt_tokens_details") or {}
        cached = prompt_details.get("cached_tokens")
        return TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=raw.get("total_tokens") or input_tokens + output_tokens,
            reasoning_tokens=completion_details.get("reasoning_tokens"),
            cost_usd=raw.get("cost"),
            cache_metadata=CacheMetadata(cache_read_tokens=cached) if cached else None,
        )

    async def call_with_system_message(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: Optional[LLMRequestOptions] = None,
    ) -> Optional[NormalizedResponse]:
        """
        Call the Requesty chat completions endpoint.

        Returns:
            NormalizedResponse, or None on any non-configuration failure

        Raises:
            LLMConfigurationError: No API key or model
        """
        options = options or LLMRequestOptions()
        api_key = self._require_credential(
            options.auth_token or self.settings.REQUESTY_API_KEY,
            "REQUESTY_API_KEY",
        )
        model = self._resolve_model(options)

        base_url = (options.base_url or self.base_url).rstrip("/")
        url = f"{base_url}/chat/completions"
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        if options.http_referer:
            headers["HTTP-Referer"] = options.http_referer
        if options.x_title:
            headers["X-Title"] = options.x_title

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
            "Sending request to Requesty API",
            url=url,
            model=model,
            prompt_length=content_length(prompt),
            max_tokens=payload["max_tokens"],
            reasoning_effort=payload.get("reasoning_effort"),
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

        usage = response.usage
        logger.info(
            "Received response from Requesty API",
            model=response.metadata.model,
            response_length=len(response.message.content),
            has_thinking=response.message.thinking is not None,
            tokens_used=usage.total_tokens if usage else None,
            reasoning_tokens=usage.reasoning_tokens if usage else None,
            cost_usd=usage.cost_usd if usage else None,
            finish_reason=response.provider_metadata.get("finish_reason"),
            processing_time_ms=elapsed_ms,
        )
        self._log_cache_usage(model, usage)
        self._record_success(model, elapsed_ms, usage)

        debug_info.mark_response(response.message.content, data, response.message.thinking)
        self.debug_sink.log_response(debug_info)
        return response
