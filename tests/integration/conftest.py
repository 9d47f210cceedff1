"""Integration test fixtures (service checks and prerequisites).

Provides fixtures for checking if external services are available.
Integration tests are skipped if required services are not running.
"""

import httpx
import pytest

OLLAMA_URL = "http://localhost:11434"


@pytest.fixture(scope="session")
def ollama_models() -> list[str]:
    """Models pulled on the local Ollama server.

    Skips tests if Ollama is not reachable or has no models.
    """
    try:
        response = httpx.get(f"{OLLAMA_URL}/api/tags", timeout=5)
    except httpx.HTTPError as e:
        pytest.skip(f"Ollama not available: {e}")
    if response.status_code != 200:
        pytest.skip("Ollama not available (non-200 status)")
    models = [m["name"] for m in response.json().get("models", [])]
    if not models:
        pytest.skip("No models available in Ollama (run: ollama pull llama3.1:8b)")
    return models
