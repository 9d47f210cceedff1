"""
LLM Middleware - provider abstraction layer for hosted LLM APIs.

Calls Anthropic, Google Gemini (Direct API and Vertex AI), the Requesty
OpenAI-compatible router and a local Ollama server through one normalized
"system message + user prompt" interface and returns one response shape:
- Content and reasoning ("thinking") kept separate
- Token, reasoning and cache accounting normalized across providers
- Retries with exponential backoff, jitter and Retry-After support
- Vertex AI region rotation on quota errors

Architecture: LLMService facade + per-provider httpx clients + retry engine
"""

__version__ = "0.1.0"
