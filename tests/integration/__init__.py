"""
Integration tests for LLM Middleware.

Run against real services and are skipped when those are unreachable:
- Ollama client (local server at OLLAMA_BASE_URL)
"""
