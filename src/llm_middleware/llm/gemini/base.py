"""
Shared call sequence for Gemini-based providers (Direct API and Vertex AI).

GeminiBaseClient owns payload building, the retry-wrapped HTTP call and
response parsing. Subclasses only supply the provider hooks:

- default_model(): model used when options do not name one
- get_base_url(model, region): API base URL
- get_endpoint_url(model, region, options): full generateContent URL
- get_auth(options): (headers, query params) for one attempt

The per-attempt region comes from an explicit RegionCursor (None for the
Direct API). The endpoint is rebuilt from the cursor on every attempt.
"""

import time
from abc import abstractmethod
from typing import Any, Optional

import structlog

from llm_middleware.llm.base_client import BaseLLMClient
from llm_middleware.llm.content_utils import (
    content_length,
    content_to_debug_string,
    count_images,
    normalize_content,
)
from llm_middleware.llm.exceptions import LLMContentBlockedError, LLMGenerationError
from llm_middleware.llm.gemini.reasoning import build_thinking_config
from llm_middleware.llm.gemini.region_rotation import RegionCursor
from llm_middleware.llm.transport import post_json
from llm_middleware.models.llm_models import (
    CacheMetadata,
    LLMRequestOptions,
    NormalizedResponse,
    ResponseMessage,
    ResponseMetadata,
    TokenUsage,
)
from llm_middleware.models.multimodal import MultimodalContent, TextContentPart
from llm_middleware.retry.engine import RetryHook, execute_with_retry

logger = structlog.get_logger(__name__)


class GeminiBaseClient(BaseLLMClient):
    """
    Base adapter for the Gemini generateContent API.

    Failure convention: raises. Every failure is logged and re-raised;
    safety/recitation blocks surface as LLMContentBlockedError.
    """

    # === Provider hooks ===

    @abstractmethod
    def get_base_url(self, model: str, region: Optional[str]) -> str:
        """API base URL for `model` (and `region`, where regional)."""

    @abstractmethod
    def get_endpoint_url(self, model: str, region: Optional[str], options: LLMRequestOptions) -> str:
        """Full generateContent URL for one attempt."""

    @abstractmethod
    async def get_auth(self, options: LLMRequestOptions) -> tuple[dict, dict]:
        """Auth headers and query params for one attempt."""

    def check_configuration(self, options: LLMRequestOptions) -> None:
        """Raise LLMConfigurationError before any I/O when credentials are missing."""

    # === Request building ===

    def build_generation_config(self, options: LLMRequestOptions, model: str) -> dict:
        """
        Build generationConfig, including thinkingConfig when requested.

        maxOutputTokens falls back to max_tokens, then 4096.
        """
        config: dict[str, Any] = {
            "temperature": options.temperature if options.temperature is not None else 0.7,
            "maxOutputTokens": options.max_output_tokens or options.max_tokens or 4096,
        }
        if options.top_p is not None:
            config["topP"] = options.top_p
        if options.top_k is not None:
            config["topK"] = options.top_k
        if options.stop_sequences:
            config["stopSequences"] = list(options.stop_sequences)
        config["candidateCount"] = options.candidate_count or 1

        thinking_config = build_thinking_config(
            options.reasoning_effort,
            model,
            options.gemini_generation,
        )
        if thinking_config is not None:
            config["thinkingConfig"] = thinking_config
        return config

    @staticmethod
    def build_request_payload(
        prompt: MultimodalContent,
        system_message: str,
        generation_config: dict,
    ) -> dict:
        parts = []
        for part in normalize_content(prompt):
            if isinstance(part, TextContentPart):
                parts.append({"text": part.text})
            else:
                parts.append({"inlineData": {"mimeType": part.mime_type, "data": part.data}})
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
            "systemInstruction": {"parts": [{"text": system_message}]},
        }

    # === Response parsing ===

    def parse_response(
        self,
        data: dict,
        session_id: str,
        model: str,
        processing_time: int,
    ) -> NormalizedResponse:
        """
        Normalize a generateContent response.

        Parts flagged thought=true become `thinking`, the others `content`,
        each joined with newlines. A thinking-only response yields "" content.

        Raises:
            LLMGenerationError: No candidates returned
            LLMContentBlockedError: First candidate has no content parts
        """
        candidates = data.get("candidates") or []
        if not candidates:
            raise LLMGenerationError(
                "No candidates returned from Gemini API",
                details={"prompt_feedback": data.get("promptFeedback")},
            )

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")
        parts = (candidate.get("content") or {}).get("parts")
        if not parts:
            raise LLMContentBlockedError(
                f"Gemini returned no content (finishReason={finish_reason or 'UNKNOWN'})",
                finish_reason=finish_reason,
                details={
                    "finish_reason": finish_reason,
                    "safety_ratings": candidate.get("safetyRatings"),
                },
            )

        thinking_parts: list[str] = []
        content_parts: list[str] = []
        for part in parts:
            text = part.get("text")
            if text is None:
                continue
            if part.get("thought") is True:
                thinking_parts.append(text)
            else:
                content_parts.append(text)
        thinking = "\n".join(thinking_parts) or None

        usage = self._parse_usage(data.get("usageMetadata"))
        provider_metadata = {"finish_reason": finish_reason} if finish_reason else {}

        return NormalizedResponse(
            message=ResponseMessage(content="\n".join(content_parts), thinking=thinking),
            session_id=session_id,
            metadata=ResponseMetadata(
                provider=self.provider.value,
                model=model,
                tokens_used=usage.total_tokens if usage else None,
                processing_time=processing_time,
            ),
            usage=usage,
            provider_metadata=provider_metadata,
        )

    @staticmethod
    def _parse_usage(usage_metadata: Optional[dict]) -> Optional[TokenUsage]:
        if not usage_metadata:
            return None
        input_tokens = usage_metadata.get("promptTokenCount") or 0
        output_tokens = usage_metadata.get("candidatesTokenCount") or 0
        total_tokens = usage_metadata.get("totalTokenCount")
        if total_tokens is None:
            total_tokens = input_tokens + output_tokens

        cached = usage_metadata.get("cachedContentTokenCount")
        return TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            # Present whenever the API returned the field, even as 0
            reasoning_tokens=usage_metadata.get("thoughtsTokenCount"),
            cache_metadata=CacheMetadata(cache_read_tokens=cached) if cached else None,
        )

    # === Call sequence ===

    async def call_with_system_message(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: Optional[LLMRequestOptions] = None,
    ) -> NormalizedResponse:
        options = options or LLMRequestOptions()
        return await self._generate(prompt, system_message, options)

    async def _generate(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: LLMRequestOptions,
        cursor: Optional[RegionCursor] = None,
        on_retry: Optional[RetryHook] = None,
    ) -> NormalizedResponse:
        """
        Run one call: build payload, send with retries, parse.

        Args:
            cursor: Region source read on every attempt (None: not regional)
            on_retry: Retry hook, usually cursor.on_retry
        """
        model = self._resolve_model(options)
        self.check_configuration(options)

        generation_config = self.build_generation_config(options, model)
        payload = self.build_request_payload(prompt, system_message, generation_config)
        session_id = self._session_id(options)
        policy = self._retry_policy(options)

        def current_region() -> Optional[str]:
            return cursor.current_region if cursor is not None else None

        debug_info = self._debug_info(
            model=model,
            session_id=session_id,
            base_url=self.get_base_url(model, current_region()),
            system_message=system_message,
            user_message=content_to_debug_string(prompt),
            payload=payload,
            options=options,
            temperature=generation_config["temperature"],
        )
        self.debug_sink.log_request(debug_info)

        async def attempt() -> dict:
            # Endpoint rebuilt per attempt: the retry hook may have moved the cursor
            url = self.get_endpoint_url(model, current_region(), options)
            headers, params = await self.get_auth(options)
            client = await self._get_client()
            logger.info(
                f"Sending request to {self.provider.value} API",
                client_class=self.__class__.__name__,
                model=model,
                region=current_region(),
                prompt_length=content_length(prompt),
                image_count=count_images(prompt),
                max_output_tokens=generation_config["maxOutputTokens"],
                thinking_config=generation_config.get("thinkingConfig"),
            )
            return await post_json(
                client,
                url,
                payload,
                headers={"Content-Type": "application/json", **headers},
                params=params or None,
                timeout=self.timeout,
            )

        start = time.monotonic()
        try:
            data = await execute_with_retry(
                attempt,
                policy,
                on_retry,
                context=self._retry_context(model),
            )
            elapsed_ms = self._elapsed_ms(start)
            response = self.parse_response(data, session_id, model, elapsed_ms)
        except LLMContentBlockedError as e:
            elapsed_ms = self._elapsed_ms(start)
            self._record_failure(model, elapsed_ms, outcome="blocked")
            details = self._log_failure(e, model, elapsed_ms, session_id)
            debug_info.mark_error(e.message, {**details, "finish_reason": e.finish_reason})
            self.debug_sink.log_error(debug_info)
            raise
        except Exception as e:
            elapsed_ms = self._elapsed_ms(start)
            self._record_failure(model, elapsed_ms)
            details = self._log_failure(e, model, elapsed_ms, session_id)
            debug_info.mark_error(str(e), details)
            self.debug_sink.log_error(debug_info)
            raise

        usage = response.usage
        logger.info(
            f"Received response from {self.provider.value} API",
            client_class=self.__class__.__name__,
            model=model,
            response_length=len(response.message.content),
            has_thinking=response.message.thinking is not None,
            tokens_used=usage.total_tokens if usage else None,
            reasoning_tokens=usage.reasoning_tokens if usage else None,
            processing_time_ms=elapsed_ms,
            finish_reason=response.provider_metadata.get("finish_reason"),
        )
        self._log_cache_usage(model, usage)
        self._record_success(model, elapsed_ms, usage)

        debug_info.mark_response(response.message.content, data, response.message.thinking)
        self.debug_sink.log_response(debug_info)
        return response
