"""
Ollama client implementation for local LLM inference.

Communicates with the Ollama chat API using httpx AsyncClient. Supports:
- System + user messages via POST /api/chat
- Vision models (base64 images on the user message)
- Native thinking output (`think` flag, `message.thinking` field)
- Tag-based thinking extraction for models that inline <think> blocks
"""

import time
from typing import Any, Optional

import structlog

from llm_middleware.config import get_settings
from llm_middleware.llm.base_client import BaseLLMClient
from llm_middleware.llm.content_utils import (
    content_length,
    content_to_debug_string,
    count_images,
    extract_text_content,
    normalize_content,
)
from llm_middleware.llm.exceptions import LLMGenerationError
from llm_middleware.llm.transport import post_json
from llm_middleware.models.enums import LLMProvider, ReasoningEffort
from llm_middleware.models.llm_models import (
    LLMRequestOptions,
    NormalizedResponse,
    ResponseMessage,
    ResponseMetadata,
    TokenUsage,
)
from llm_middleware.models.multimodal import ImageContentPart, MultimodalContent
from llm_middleware.retry.engine import execute_with_retry

logger = structlog.get_logger(__name__)


class OllamaClient(BaseLLMClient):
    """
    Ollama-specific LLM client.

    API Endpoints:
    - POST /api/chat: Chat completion (non-streaming)

    Failure convention: raises. Errors are logged and re-raised as the
    typed transport errors (LLMConnectionError, LLMHTTPError, ...).

    No credential is required; OLLAMA_API_KEY (or options.auth_token) is
    sent as a bearer token for servers behind an authenticating proxy.
    """

    provider = LLMProvider.OLLAMA

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama server URL (default: OLLAMA_BASE_URL)
            **kwargs: See BaseLLMClient
        """
        if base_url is None:
            base_url = (kwargs.get("settings") or get_settings()).OLLAMA_BASE_URL
        super().__init__(base_url, **kwargs)

    def default_model(self) -> Optional[str]:
        return self.settings.OLLAMA_MODEL

    def build_request_payload(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: LLMRequestOptions,
        model: str,
    ) -> dict:
        """
        Build the /api/chat payload.

        {
            "model": "llama3.1:8b",
            "messages": [
                {"role": "system", "content": "..."},
                {"role": "user", "content": "...", "images": ["<base64>"]}
            ],
            "stream": false,
            "think": true,
            "options": {"temperature": 0.7, "num_predict": 4096}
        }
        """
        user_message: dict[str, Any] = {"role": "user", "content": extract_text_content(prompt)}
        images = [p.data for p in normalize_content(prompt) if isinstance(p, ImageContentPart)]
        if images:
            user_message["images"] = images

        generation_options: dict[str, Any] = {
            "temperature": options.temperature if options.temperature is not None else self.settings.LLM_TEMPERATURE,
            "num_predict": options.max_tokens or self.settings.LLM_MAX_TOKENS,
        }
        if options.top_p is not None:
            generation_options["top_p"] = options.top_p
        if options.top_k is not None:
            generation_options["top_k"] = options.top_k
        if options.stop_sequences:
            generation_options["stop"] = list(options.stop_sequences)

        payload: dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_message},
                user_message,
            ],
            "stream": False,
            "options": generation_options,
        }
        if options.reasoning_effort is not None:
            payload["think"] = options.reasoning_effort != ReasoningEffort.NONE
        return payload

    def parse_response(
        self,
        data: dict,
        session_id: str,
        model: str,
        processing_time: int,
    ) -> NormalizedResponse:
        """
        Normalize an /api/chat response.

        {
            "model": "llama3.1:8b",
            "message": {"role": "assistant", "content": "...", "thinking": "..."},
            "done": true,
            "done_reason": "stop",
            "prompt_eval_count": 50,
            "eval_count": 150
        }
        """
        message = data.get("message")
        if not isinstance(message, dict):
            raise LLMGenerationError("Empty response from Ollama", details={"response": data})

        raw_content = message.get("content") or ""
        native_thinking = message.get("thinking")
        if native_thinking:
            content, thinking = raw_content, native_thinking
        else:
            extracted = self.extractor_factory.for_model(model).extract(raw_content)
            content, thinking = extracted.content, extracted.thinking

        prompt_tokens = data.get("prompt_eval_count")
        completion_tokens = data.get("eval_count")
        usage = None
        if prompt_tokens is not None or completion_tokens is not None:
            usage = TokenUsage(
                input_tokens=prompt_tokens or 0,
                output_tokens=completion_tokens or 0,
                total_tokens=(prompt_tokens or 0) + (completion_tokens or 0),
            )

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
                "done_reason": data.get("done_reason") or ("stop" if data.get("done") else "incomplete"),
                "total_duration": data.get("total_duration"),
                "load_duration": data.get("load_duration"),
                "eval_duration": data.get("eval_duration"),
            },
        )

    async def call_with_system_message(
        self,
        prompt: MultimodalContent,
        system_message: str,
        options: Optional[LLMRequestOptions] = None,
    ) -> NormalizedResponse:
        options = options or LLMRequestOptions()
        model = self._resolve_model(options)

        base_url = (options.base_url or self.base_url).rstrip("/")
        url = f"{base_url}/api/chat"
        headers = {"Content-Type": "application/json"}
        token = options.auth_token or self.settings.OLLAMA_API_KEY
        if token:
            headers["Authorization"] = f"Bearer {token}"

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
            temperature=payload["options"]["temperature"],
        )
        self.debug_sink.log_request(debug_info)

        logger.info(
            "Sending chat request to Ollama",
            url=url,
            model=model,
            prompt_length=content_length(prompt),
            image_count=count_images(prompt),
            temperature=payload["options"]["temperature"],
            max_tokens=payload["options"]["num_predict"],
            think=payload.get("think"),
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
        except Exception as e:
            elapsed_ms = self._elapsed_ms(start)
            self._record_failure(model, elapsed_ms)
            details = self._log_failure(e, model, elapsed_ms, session_id)
            debug_info.mark_error(str(e), details)
            self.debug_sink.log_error(debug_info)
            raise

        usage = response.usage
        logger.info(
            "Ollama generation successful",
            model=response.metadata.model,
            latency_ms=elapsed_ms,
            prompt_tokens=usage.input_tokens if usage else None,
            completion_tokens=usage.output_tokens if usage else None,
            has_thinking=response.message.thinking is not None,
            finish_reason=response.provider_metadata["done_reason"],
        )
        self._record_success(model, elapsed_ms, usage)

        debug_info.mark_response(response.message.content, data, response.message.thinking)
        self.debug_sink.log_response(debug_info)
        return response
