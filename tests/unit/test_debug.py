"""Unit tests for debug snapshots and sinks."""

import httpx
import pytest
from structlog.testing import capture_logs

from llm_middleware.debug import LLMDebugInfo, NullDebugSink, StructlogDebugSink
from llm_middleware.llm.anthropic_client import AnthropicClient
from llm_middleware.llm.ollama_client import OllamaClient

CHAT_RESPONSE = {
    "model": "llama3.1:8b",
    "message": {"role": "assistant", "content": "Paris"},
    "done": True,
    "done_reason": "stop",
    "prompt_eval_count": 9,
    "eval_count": 2,
}


def make_info(**overrides):
    values = dict(
        provider="ollama",
        model="llama3.1:8b",
        session_id="sess-1",
        base_url="http://localhost:11434",
        system_message="sys",
        user_message="Capital of France?",
        request_data={},
    )
    values.update(overrides)
    return LLMDebugInfo(**values)


class TestLLMDebugInfo:
    def test_mark_response(self):
        info = make_info()
        info.mark_response("Paris", {"raw": True}, thinking="France -> Paris")

        assert info.response == "Paris"
        assert info.thinking == "France -> Paris"
        assert info.raw_response_data == {"raw": True}
        assert info.response_timestamp >= info.timestamp

    def test_mark_error(self):
        info = make_info()
        info.mark_error("HTTP 500", {"status_code": 500})

        assert info.error == {"message": "HTTP 500", "details": {"status_code": 500}}
        assert info.response_timestamp is not None


def test_structlog_sink_emits_debug_events():
    sink = StructlogDebugSink()
    info = make_info()

    with capture_logs() as logs:
        sink.log_request(info)
        info.mark_response("Paris", {})
        sink.log_response(info)

    assert [(e["event"], e["log_level"]) for e in logs] == [("LLM request", "debug"), ("LLM response", "debug")]
    assert logs[1]["response"] == "Paris"


def test_adapters_default_to_structlog_sink(test_settings):
    assert isinstance(OllamaClient(settings=test_settings).debug_sink, StructlogDebugSink)


@pytest.mark.asyncio
async def test_null_sink_call_completes_silently(test_settings, scripted_transport):
    script = scripted_transport(httpx.Response(200, json=CHAT_RESPONSE))
    client = OllamaClient(settings=test_settings, transport=script.transport, debug_sink=NullDebugSink())

    with capture_logs() as logs:
        response = await client.call("Capital of France?")
    await client.close()

    assert response.message.content == "Paris"
    assert not [e for e in logs if e["event"] in ("LLM request", "LLM response")]


@pytest.mark.asyncio
async def test_null_sink_on_failure_path(test_settings, scripted_transport, no_sleep):
    script = scripted_transport(httpx.Response(400, json={"error": {"type": "invalid_request_error", "message": "bad"}}))
    client = AnthropicClient(settings=test_settings, transport=script.transport, debug_sink=NullDebugSink())

    response = await client.call("Hello")
    await client.close()

    assert response is None
    assert script.call_count == 1
