"""Unit test fixtures (mocks and stubs).

Provides mock HTTP transports and patched sleeps for testing adapters
without network access or real backoff delays.
"""

import json
import re
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest


class ScriptedTransport:
    """httpx.MockTransport wrapper replaying a fixed script of outcomes.

    Each item is an httpx.Response to return or an exception to raise. The
    last item repeats once the script is exhausted. Every request is kept
    in `requests` for inspection.
    """

    def __init__(self, *outcomes):
        if not outcomes:
            raise ValueError("at least one outcome is required")
        self.outcomes = list(outcomes)
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def json_body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)

    def regions(self) -> list[str]:
        """Vertex AI location of every request, in order."""
        return [re.search(r"/locations/([^/]+)/", str(r.url)).group(1) for r in self.requests]


@pytest.fixture
def scripted_transport():
    """Factory fixture for ScriptedTransport.

    Usage:
        def test_something(scripted_transport):
            script = scripted_transport(httpx.Response(200, json={...}))
            client = OllamaClient(transport=script.transport)
    """
    return ScriptedTransport


@pytest.fixture
def no_sleep():
    """Patch the retry engine's sleep; yields the AsyncMock to inspect delays."""
    with patch("llm_middleware.retry.engine.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def mock_debug_sink():
    """Debug sink recording calls."""
    sink = MagicMock()
    sink.log_request = MagicMock()
    sink.log_response = MagicMock()
    sink.log_error = MagicMock()
    return sink
