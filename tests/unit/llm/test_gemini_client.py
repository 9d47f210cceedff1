"""
Unit tests for the Gemini Direct API client.

Covers request building (generationConfig, thinkingConfig, inline images),
response normalization (thought parts, usage, blocked candidates) and the
raise-on-failure convention.
"""

import httpx
import pytest

from llm_middleware.llm.exceptions import (
    LLMConfigurationError,
    LLMContentBlockedError,
    LLMGenerationError,
    LLMHTTPError,
)
from llm_middleware.llm.gemini.direct import GEMINI_API_BASE_URL, GeminiDirectClient
from llm_middleware.models.enums import ReasoningEffort
from llm_middleware.models.llm_models import LLMRequestOptions


def gemini_response(parts=None, usage=None, finish_reason="STOP"):
    candidate = {"finishReason": finish_reason}
    if parts is not None:
        candidate["content"] = {"role": "model", "parts": parts}
    body = {"candidates": [candidate]}
    if usage is not None:
        body["usageMetadata"] = usage
    return body


@pytest.fixture
def client(test_settings, mock_debug_sink):
    return GeminiDirectClient(settings=test_settings, debug_sink=mock_debug_sink)


# ============================================================================
# Request building
# ============================================================================


class TestGenerationConfig:
    def test_defaults(self, client):
        config = client.build_generation_config(LLMRequestOptions(), "gemini-1.5-pro")
        assert config == {"temperature": 0.7, "maxOutputTokens": 4096, "candidateCount": 1}

    def test_sampling_options(self, client):
        options = LLMRequestOptions(
            temperature=0.2,
            max_tokens=1000,
            top_p=0.9,
            top_k=40,
            stop_sequences=["END"],
            candidate_count=2,
        )
        config = client.build_generation_config(options, "gemini-1.5-pro")
        assert config == {
            "temperature": 0.2,
            "maxOutputTokens": 1000,
            "topP": 0.9,
            "topK": 40,
            "stopSequences": ["END"],
            "candidateCount": 2,
        }

    def test_max_output_tokens_wins_over_max_tokens(self, client):
        options = LLMRequestOptions(max_tokens=1000, max_output_tokens=2048)
        assert client.build_generation_config(options, "gemini-1.5-pro")["maxOutputTokens"] == 2048

    def test_thinking_config_added(self, client):
        options = LLMRequestOptions(reasoning_effort=ReasoningEffort.MEDIUM)
        config = client.build_generation_config(options, "gemini-2.5-flash")
        assert config["thinkingConfig"] == {"thinkingBudget": 6144, "includeThoughts": True}

    def test_no_thinking_config_without_effort(self, client):
        config = client.build_generation_config(LLMRequestOptions(), "gemini-2.5-flash")
        assert "thinkingConfig" not in config


def test_payload_with_inline_image(multimodal_prompt):
    payload = GeminiDirectClient.build_request_payload(multimodal_prompt, "Be brief.", {"temperature": 0.7})

    assert payload["systemInstruction"] == {"parts": [{"text": "Be brief."}]}
    assert payload["contents"][0]["role"] == "user"
    parts = payload["contents"][0]["parts"]
    assert parts[0] == {"text": "What is in this picture?"}
    assert parts[1] == {"inlineData": {"mimeType": "image/png", "data": multimodal_prompt[1].data}}
    assert payload["generationConfig"] == {"temperature": 0.7}


def test_payload_with_mapping_parts(multimodal_prompt):
    mapping_prompt = [part.model_dump() for part in multimodal_prompt]

    assert GeminiDirectClient.build_request_payload(mapping_prompt, "sys", {}) == (
        GeminiDirectClient.build_request_payload(multimodal_prompt, "sys", {})
    )


def test_payload_with_invalid_part_raises():
    with pytest.raises(LLMConfigurationError):
        GeminiDirectClient.build_request_payload([{"type": "image", "data": "AAAA"}], "sys", {})


# ============================================================================
# Response parsing
# ============================================================================


class TestParseResponse:
    def test_thought_parts_are_separated(self, client):
        data = gemini_response(parts=[
            {"text": "Let me think.", "thought": True},
            {"text": "Answer line 1"},
            {"text": "More thinking", "thought": True},
            {"text": "Answer line 2"},
        ])
        response = client.parse_response(data, "sess-1", "gemini-2.5-flash", 12)

        assert response.message.content == "Answer line 1\nAnswer line 2"
        assert response.message.thinking == "Let me think.\nMore thinking"
        assert response.session_id == "sess-1"
        assert response.metadata.provider == "google"
        assert response.metadata.processing_time == 12
        assert response.provider_metadata == {"finish_reason": "STOP"}

    def test_thinking_only_response_has_empty_content(self, client):
        data = gemini_response(parts=[{"text": "only thoughts", "thought": True}])
        response = client.parse_response(data, "s", "gemini-2.5-flash", 1)
        assert response.message.content == ""
        assert response.message.thinking == "only thoughts"

    def test_no_candidates(self, client):
        with pytest.raises(LLMGenerationError) as exc_info:
            client.parse_response({"promptFeedback": {"blockReason": "OTHER"}}, "s", "m", 1)
        assert not isinstance(exc_info.value, LLMContentBlockedError)

    @pytest.mark.parametrize("finish_reason", ["SAFETY", "RECITATION"])
    def test_blocked_candidate(self, client, finish_reason):
        with pytest.raises(LLMContentBlockedError) as exc_info:
            client.parse_response(gemini_response(finish_reason=finish_reason), "s", "m", 1)
        assert exc_info.value.finish_reason == finish_reason

    def test_usage_with_zero_thoughts_and_zero_cache(self, client):
        data = gemini_response(
            parts=[{"text": "ok"}],
            usage={
                "promptTokenCount": 100,
                "candidatesTokenCount": 20,
                "totalTokenCount": 120,
                "thoughtsTokenCount": 0,
                "cachedContentTokenCount": 0,
            },
        )
        usage = client.parse_response(data, "s", "m", 1).usage

        assert usage.reasoning_tokens == 0
        assert usage.cache_metadata is None
        assert usage.total_tokens == 120

    def test_usage_without_optional_fields(self, client):
        data = gemini_response(
            parts=[{"text": "ok"}],
            usage={"promptTokenCount": 10, "candidatesTokenCount": 5},
        )
        usage = client.parse_response(data, "s", "m", 1).usage

        assert usage.reasoning_tokens is None
        assert usage.cache_metadata is None
        assert usage.total_tokens == 15
        assert "cache_metadata" not in usage.model_dump(exclude_none=True)

    def test_usage_with_cached_tokens(self, client):
        data = gemini_response(
            parts=[{"text": "ok"}],
            usage={"promptTokenCount": 1000, "candidatesTokenCount": 5, "cachedContentTokenCount": 800},
        )
        usage = client.parse_response(data, "s", "m", 1).usage
        assert usage.cache_metadata.cache_read_tokens == 800


# ============================================================================
# Call sequence
# ============================================================================


@pytest.mark.asyncio
async def test_call_sends_api_key_and_parses(test_settings, scripted_transport, mock_debug_sink):
    script = scripted_transport(httpx.Response(200, json=gemini_response(
        parts=[{"text": "Hello!"}],
        usage={"promptTokenCount": 3, "candidatesTokenCount": 2, "totalTokenCount": 5},
    )))
    client = GeminiDirectClient(settings=test_settings, transport=script.transport, debug_sink=mock_debug_sink)

    response = await client.call_with_system_message(
        "Hi",
        "You are friendly.",
        LLMRequestOptions(session_id="fixed-session", reasoning_effort=ReasoningEffort.LOW),
    )
    await client.close()

    request = script.requests[0]
    assert str(request.url).startswith(f"{GEMINI_API_BASE_URL}/models/gemini-2.5-flash:generateContent")
    assert request.url.params["key"] == "test-gemini-key"
    body = script.json_body()
    assert body["generationConfig"]["thinkingConfig"] == {"thinkingBudget": 1024, "includeThoughts": True}
    assert response.message.content == "Hello!"
    assert response.session_id == "fixed-session"
    assert response.metadata.tokens_used == 5
    mock_debug_sink.log_request.assert_called_once()
    mock_debug_sink.log_response.assert_called_once()


@pytest.mark.asyncio
async def test_auth_token_and_model_options_override_settings(test_settings, scripted_transport):
    script = scripted_transport(httpx.Response(200, json=gemini_response(parts=[{"text": "ok"}])))
    client = GeminiDirectClient(settings=test_settings, transport=script.transport)

    await client.call_with_system_message(
        "Hi", "sys", LLMRequestOptions(auth_token="override-key", model="gemini-1.5-pro")
    )
    await client.close()

    assert script.requests[0].url.params["key"] == "override-key"
    assert "/models/gemini-1.5-pro:generateContent" in str(script.requests[0].url)


@pytest.mark.asyncio
async def test_google_api_key_is_accepted(test_settings, scripted_transport):
    settings = test_settings.model_copy(update={"GEMINI_API_KEY": None, "GOOGLE_API_KEY": "google-key"})
    script = scripted_transport(httpx.Response(200, json=gemini_response(parts=[{"text": "ok"}])))
    client = GeminiDirectClient(settings=settings, transport=script.transport)

    await client.call("Hi")
    await client.close()

    assert script.requests[0].url.params["key"] == "google-key"


@pytest.mark.asyncio
async def test_missing_api_key_raises_before_any_request(test_settings, scripted_transport):
    settings = test_settings.model_copy(update={"GEMINI_API_KEY": None, "GOOGLE_API_KEY": None})
    script = scripted_transport(httpx.Response(200, json={}))
    client = GeminiDirectClient(settings=settings, transport=script.transport)

    with pytest.raises(LLMConfigurationError):
        await client.call("Hi")

    assert script.call_count == 0


@pytest.mark.asyncio
async def test_blocked_response_raises_and_is_not_retried(test_settings, scripted_transport, fast_retry, no_sleep):
    script = scripted_transport(httpx.Response(200, json=gemini_response(finish_reason="SAFETY")))
    client = GeminiDirectClient(settings=test_settings, transport=script.transport)

    with pytest.raises(LLMContentBlockedError):
        await client.call("Hi", LLMRequestOptions(retry=fast_retry))
    await client.close()

    assert script.call_count == 1


@pytest.mark.asyncio
async def test_http_error_is_raised_after_retries(test_settings, scripted_transport, fast_retry, no_sleep, mock_debug_sink):
    script = scripted_transport(httpx.Response(503, json={"error": {"message": "overloaded"}}))
    client = GeminiDirectClient(settings=test_settings, transport=script.transport, debug_sink=mock_debug_sink)

    with pytest.raises(LLMHTTPError) as exc_info:
        await client.call("Hi", LLMRequestOptions(retry=fast_retry))
    await client.close()

    assert exc_info.value.status_code == 503
    assert script.call_count == fast_retry.max_retries + 1
    mock_debug_sink.log_error.assert_called_once()
