"""Unit tests for RequestyClient (OpenAI-compatible router)."""

import httpx
import pytest

from llm_middleware.llm.exceptions import LLMConfigurationError, LLMGenerationError
from llm_middleware.llm.requesty_client import RequestyClient
from llm_middleware.models.enums import ReasoningEffort
from llm_middleware.models.llm_models import LLMRequestOptions


def chat_completion(content="Answer", reasoning=None, usage=None, finish_reason="stop"):
    message = {"role": "assistant", "content": content}
    if reasoning is not None:
        message["reasoning_content"] = reasoning
    body = {
        "id": "chatcmpl-123",
        "model": "openai/gpt-4o",
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
    }
    if usage is not None:
        body["usage"] = usage
    return body


@pytest.fixture
def client(test_settings):
    return RequestyClient(settings=test_settings)


def test_base_url_from_settings(client):
    assert client.base_url == "https://router.example.test/v1"


class TestBuildRequestPayload:
    def test_text_prompt(self, client):
        options = LLMRequestOptions(
            reasoning_effort=ReasoningEffort.HIGH,
            stop_sequences=["###"],
            top_p=0.5,
        )
        payload = client.build_request_payload("Hi", "sys", options, "openai/o3-mini")
        assert payload == {
            "model": "openai/o3-mini",
            "messages": [
                {"role": "system", "content": "sys"},
                {"role": "user", "content": "Hi"},
            ],
            "max_tokens": 4096,
            "temperature": 0.7,
            "top_p": 0.5,
            "stop": ["###"],
            "reasoning_effort": "high",
        }

    def test_image_url_parts(self, multimodal_prompt):
        content = RequestyClient.build_user_content(multimodal_prompt)
        assert content[0] == {"type": "text", "text": "What is in this picture?"}
        assert content[1] == {
            "type": "image_url",
            "image_url": {"url": f"data:image/png;base64,{multimodal_prompt[1].data}", "detail": "low"},
        }


class TestParseResponse:
    def test_reasoning_content_field(self, client):
        data = chat_completion(content="42", reasoning="Because.")
        response = client.parse_response(data, "s", "deepseek/deepseek-r1", 1)
        assert response.message.content == "42"
        assert response.message.thinking == "Because."

    def test_think_tags_fallback(self, client):
        data = chat_completion(content="<think>Because.</think>42")
        response = client.parse_response(data, "s", "deepseek/deepseek-r1", 1)
        assert response.message.content == "42"
        assert response.message.thinking == "Because."

    def test_usage_cost_reasoning_and_cache(self, client):
        data = chat_completion(usage={
            "prompt_tokens": 200,
            "completion_tokens": 50,
            "total_tokens": 250,
            "cost": 0.0012,
            "completion_tokens_details": {"reasoning_tokens": 0},
            "prompt_tokens_details": {"cached_tokens": 150},
        })
        usage = client.parse_response(data, "s", "openai/gpt-4o", 1).usage

        assert usage.total_tokens == 250
        assert usage.cost_usd == 0.0012
        assert usage.reasoning_tokens == 0
        assert usage.cache_metadata.cache_read_tokens == 150

    def test_usage_without_cached_tokens(self, client):
        data = chat_completion(usage={
            "prompt_tokens": 10,
            "completion_tokens": 5,
            "prompt_tokens_details": {"cached_tokens": 0},
        })
        usage = client.parse_response(data, "s", "openai/gpt-4o", 1).usage
        assert usage.cache_metadata is None
        assert usage.reasoning_tokens is None
        assert usage.total_tokens == 15

    def test_provider_metadata(self, client):
        response = client.parse_response(chat_completion(finish_reason="length"), "s", "openai/gpt-4o", 1)
        assert response.provider_metadata == {"id": "chatcmpl-123", "finish_reason": "length"}

    def test_no_choices(self, client):
        with pytest.raises(LLMGenerationError):
            client.parse_response({"id": "x", "choices": []}, "s", "m", 1)


@pytest.mark.asyncio
async def test_call_sends_router_headers(test_settings, scripted_transport):
    script = scripted_transport(httpx.Response(200, json=chat_completion()))
    client = RequestyClient(settings=test_settings, transport=script.transport)

    response = await client.call_with_system_message(
        "Hi",
        "sys",
        LLMRequestOptions(http_referer="https://app.example.test", x_title="Example App"),
    )
    await client.close()

    request = script.requests[0]
    assert str(request.url) == "https://router.example.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer test-requesty-key"
    assert request.headers["HTTP-Referer"] == "https://app.example.test"
    assert request.headers["X-Title"] == "Example App"
    assert response.message.content == "Answer"


@pytest.mark.asyncio
async def test_failure_returns_none(test_settings, scripted_transport, fast_retry, no_sleep):
    script = scripted_transport(httpx.Response(429, json={"error": {"message": "slow down"}}, headers={"Retry-After": "1"}))
    client = RequestyClient(settings=test_settings, transport=script.transport)

    response = await client.call("Hi", LLMRequestOptions(retry=fast_retry))
    await client.close()

    assert response is None
    assert script.call_count == fast_retry.max_retries + 1
    assert all(c.args[0] >= 1.0 for c in no_sleep.await_args_list)


@pytest.mark.asyncio
async def test_missing_api_key_raises(test_settings, scripted_transport):
    settings = test_settings.model_copy(update={"REQUESTY_API_KEY": None})
    script = scripted_transport(httpx.Response(200, json=chat_completion()))
    client = RequestyClient(settings=settings, transport=script.transport)

    with pytest.raises(LLMConfigurationError):
        await client.call("Hi")

    assert script.call_count == 0
