"""
HTTP transport helper shared by all provider adapters.

This is the only place where httpx exceptions are translated into the
typed taxonomy of llm.exceptions:

    httpx.TimeoutException      -> LLMTimeoutError (code ETIMEDOUT)
    other httpx.TransportError  -> LLMConnectionError (errno-style code when known)
    non-2xx response            -> LLMHTTPError / LLMRateLimitError / LLMModelNotAvailableError
    2xx with a non-JSON body    -> LLMGenerationError
"""

import json
from typing import Any, Mapping, Optional

import httpx
import structlog

from llm_middleware.llm.exceptions import (
    LLMConnectionError,
    LLMGenerationError,
    LLMHTTPError,
    LLMModelNotAvailableError,
    LLMRateLimitError,
    LLMTimeoutError,
)

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 180.0

_CONNECTION_ERROR_CODES = (
    ("name or service not known", "ENOTFOUND"),
    ("nodename nor servname", "ENOTFOUND"),
    ("getaddrinfo", "EAI_AGAIN"),
    ("temporary failure in name resolution", "EAI_AGAIN"),
    ("network is unreachable", "ENETUNREACH"),
    ("connection reset", "ECONNRESET"),
    ("broken pipe", "EPIPE"),
    ("connection refused", "ECONNREFUSED"),
    ("connection aborted", "ECONNABORTED"),
)


def _connection_error_code(exc: httpx.TransportError) -> Optional[str]:
    """Best-effort errno-style code for a transport failure."""
    message = str(exc).lower()
    for marker, code in _CONNECTION_ERROR_CODES:
        if marker in message:
            return code
    if isinstance(exc, (httpx.RemoteProtocolError, httpx.ReadError)):
        return "ECONNRESET"
    if isinstance(exc, httpx.WriteError):
        return "EPIPE"
    return None


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


def _error_message(status_code: int, body: Any) -> str:
    """Pull the provider's error message out of the usual {"error": {"message": ...}} shapes."""
    detail = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            detail = error.get("message") or error.get("status")
        elif isinstance(error, str):
            detail = error
        detail = detail or body.get("message")
    elif isinstance(body, str) and body.strip():
        detail = body.strip()[:500]
    if detail:
        return f"HTTP {status_code}: {detail}"
    return f"HTTP {status_code}"


def raise_for_status(response: httpx.Response) -> None:
    """Raise the typed HTTP error for a non-2xx response."""
    if response.is_success:
        return
    status_code = response.status_code
    body = _decode_body(response)
    message = _error_message(status_code, body)
    error_cls = LLMHTTPError
    if status_code == 429:
        error_cls = LLMRateLimitError
    elif status_code == 404:
        error_cls = LLMModelNotAvailableError
    raise error_cls(
        message,
        status_code=status_code,
        headers=response.headers,
        body=body,
        # Query string stripped: Gemini Direct passes the API key there
        details={"url": str(response.request.url).split("?", 1)[0]},
    )


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: Mapping[str, Any],
    *,
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict:
    """
    POST a JSON payload and return the decoded JSON response.

    Args:
        client: Shared httpx.AsyncClient of the calling adapter
        url: Absolute URL or path relative to the client's base_url
        payload: JSON body
        headers: Extra request headers
        params: Query parameters (e.g. Gemini API key)
        timeout: Per-attempt timeout in seconds

    Returns:
        Decoded JSON object

    Raises:
        LLMTimeoutError: Attempt exceeded `timeout`
        LLMConnectionError: No HTTP response received
        LLMHTTPError: Non-2xx status (LLMRateLimitError for 429,
            LLMModelNotAvailableError for 404)
        LLMGenerationError: 2xx status but the body is not a JSON object
    """
    try:
        response = await client.post(
            url,
            json=payload,
            headers=headers,
            params=params,
            timeout=timeout,
        )
    except httpx.TimeoutException as e:
        raise LLMTimeoutError(
            f"Request timeout after {timeout}s",
            details={"timeout": timeout, "error_type": type(e).__name__},
        ) from e
    except httpx.TransportError as e:
        raise LLMConnectionError(
            f"Network error: {e}",
            code=_connection_error_code(e),
            details={"error_type": type(e).__name__},
        ) from e

    raise_for_status(response)

    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise LLMGenerationError(
            "Invalid JSON response from provider",
            details={"parse_error": str(e), "status": response.status_code},
        ) from e
    if not isinstance(data, dict):
        raise LLMGenerationError(
            "Unexpected response shape from provider",
            details={"type": type(data).__name__},
        )
    return data
