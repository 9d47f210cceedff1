"""
Custom exceptions for the LLM client layer.

These exceptions form a closed taxonomy produced by the transport layer
(llm.transport.post_json) and the adapters, so that the retry classifier
can distinguish "HTTP response received with status X" from "network-level
failure with code Y" without probing untyped fields.
"""

from typing import Any, Mapping, Optional


class LLMClientError(Exception):
    """
    Base exception for all LLM client errors.

    All LLM-specific exceptions inherit from this to allow catching
    any LLM-related error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LLMConfigurationError(LLMClientError):
    """
    Raised when a call cannot be made because configuration is missing or invalid.

    Examples:
    - No model name resolved
    - No API key / project ID / service account available
    - Invalid region rotation config
    - Malformed prompt content parts

    Raised before any network I/O and never retried.
    """
    pass


class LLMAuthenticationError(LLMClientError):
    """
    Raised when OAuth access token acquisition fails (Vertex AI).
    """
    pass


class LLMHTTPError(LLMClientError):
    """
    Raised when the provider answered with a non-2xx HTTP status.

    Carries the status code, response headers (for Retry-After) and the
    decoded body (JSON when parseable, raw text otherwise).
    """
    def __init__(
        self,
        message: str,
        status_code: int,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.headers = dict(headers or {})
        self.body = body

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class LLMRateLimitError(LLMHTTPError):
    """
    Raised when the provider rate-limits the request (HTTP 429).

    This error type triggers exponential backoff retry and, on Vertex AI
    with region rotation configured, a region change.
    """
    pass


class LLMModelNotAvailableError(LLMHTTPError):
    """
    Raised when the requested model does not exist on the provider (HTTP 404).
    """
    pass


class LLMConnectionError(LLMClientError):
    """
    Raised when no HTTP response was received.

    Includes connection resets, refused connections, DNS failures, etc.
    `code` holds an errno-style name (ECONNRESET, ENOTFOUND, ...) when known.
    This error type triggers network-level retries with backoff.
    """
    def __init__(self, message: str, code: Optional[str] = None, details: dict | None = None):
        super().__init__(message, details)
        self.code = code


class LLMTimeoutError(LLMConnectionError):
    """
    Raised when a single HTTP attempt exceeds its timeout.
    """
    def __init__(self, message: str, code: Optional[str] = "ETIMEDOUT", details: dict | None = None):
        super().__init__(message, code=code, details=details)


class LLMGenerationError(LLMClientError):
    """
    Raised when the provider returned 2xx but the payload is unusable.

    Examples:
    - No candidates / no choices in the response
    - Missing message content

    Not retried.
    """
    pass


class LLMContentBlockedError(LLMGenerationError):
    """
    Raised when the primary candidate carries no content body.

    Happens for safety-filtered or recitation-blocked outputs. Retrying
    would not change the provider's judgment, so it is never retried.
    """
    def __init__(self, message: str, finish_reason: Optional[str] = None, details: dict | None = None):
        super().__init__(message, details)
        self.finish_reason = finish_reason
