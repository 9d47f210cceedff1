"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

import pytest

from llm_middleware.config import Settings
from llm_middleware.models.llm_models import RetryPolicy
from llm_middleware.models.multimodal import ImageContentPart, TextContentPart

# 1x1 transparent PNG
TINY_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Every credential is set explicitly so that values exported in the
    developer's shell never leak into a test. Derive variants with
    model_copy:
        def test_something(test_settings):
            settings = test_settings.model_copy(update={"ANTHROPIC_API_KEY": None})
    """
    return Settings(
        _env_file=None,
        # === Application ===
        APP_NAME="LLM Middleware (Test)",
        APP_VERSION="0.1.0",
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",
        DEFAULT_PROVIDER="ollama",

        # === Anthropic ===
        ANTHROPIC_API_KEY="test-anthropic-key",
        ANTHROPIC_MODEL="claude-3-5-sonnet-20241022",

        # === Gemini ===
        GEMINI_API_KEY="test-gemini-key",
        GOOGLE_API_KEY=None,
        GEMINI_MODEL="gemini-2.5-flash",

        # === Vertex AI ===
        VERTEX_AI_MODEL="gemini-2.5-flash",
        VERTEX_AI_REGION="europe-west3",
        GOOGLE_CLOUD_PROJECT="test-project",
        GOOGLE_APPLICATION_CREDENTIALS=None,
        VERTEX_AI_SERVICE_ACCOUNT_KEY=None,

        # === Requesty ===
        REQUESTY_API_KEY="test-requesty-key",
        REQUESTY_MODEL="openai/gpt-4o",
        REQUESTY_BASE_URL="https://router.example.test/v1",

        # === Ollama ===
        OLLAMA_BASE_URL="http://localhost:11434",
        OLLAMA_MODEL="llama3.1:8b",
        OLLAMA_API_KEY=None,

        # === Retry ===
        RETRY_ENABLED=True,
        RETRY_MAX_RETRIES=2,
        RETRY_INITIAL_DELAY_MS=1,
        RETRY_MULTIPLIER=2.0,
        RETRY_MAX_DELAY_MS=10,
        RETRY_JITTER=False,

        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def fast_retry() -> RetryPolicy:
    """Deterministic retry policy with millisecond delays."""
    return RetryPolicy(max_retries=3, initial_delay_ms=1, max_delay_ms=10, jitter=False)


@pytest.fixture
def multimodal_prompt() -> list:
    """Text + image prompt."""
    return [
        TextContentPart(text="What is in this picture?"),
        ImageContentPart(data=TINY_PNG_BASE64, mime_type="image/png", detail="low"),
    ]
