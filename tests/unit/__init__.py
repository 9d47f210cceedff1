"""
Unit tests for LLM Middleware.

Provider adapters run against httpx.MockTransport; no network access:
- Retry engine and error classification
- Reasoning extractors and strategy factory
- Anthropic, Gemini Direct, Vertex AI, Requesty and Ollama request/response mapping
- Vertex AI region rotation
- LLMService facade, settings, logging
"""
