"""
Error classification for the retry engine.

Operates on the typed transport errors from llm.exceptions:
- LLMHTTPError: a response was received with a non-2xx status
- LLMConnectionError: no response at all (reset, DNS, timeout, ...)

Quota errors are a subset of retryable errors. The distinction matters:
quota errors warrant a Vertex AI region change, server errors do not.
"""

from typing import Optional

from llm_middleware.llm.exceptions import LLMConnectionError, LLMHTTPError

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

RETRYABLE_CONNECTION_CODES = frozenset({
    "ECONNRESET",
    "ETIMEDOUT",
    "ECONNABORTED",
    "EPIPE",
    "ENOTFOUND",
    "ENETUNREACH",
    "EAI_AGAIN",
})

QUOTA_MESSAGE_MARKERS = (
    "resource exhausted",
    "resource_exhausted",
    "quota exceeded",
    "rate limit",
    "too many requests",
    "429",
)


def is_retryable_error(error: Optional[BaseException]) -> bool:
    """
    Decide whether a failed attempt should be retried.

    Args:
        error: Exception raised by the attempt

    Returns:
        True for HTTP 408/429/500/502/503/504 and for any connection-level
        failure (no HTTP response). False for every other status, for
        non-transport exceptions and for None.
    """
    if error is None:
        return False
    if isinstance(error, LLMHTTPError):
        return error.status_code in RETRYABLE_STATUS_CODES
    if isinstance(error, LLMConnectionError):
        # No response received: retryable with or without a known code
        return True
    return False


def is_quota_error(error: Optional[BaseException]) -> bool:
    """
    Decide whether a failure is a quota / rate-limit error.

    A structured HTTP error counts only when its status is 429. Anything
    else is matched on its message, which covers SDKs that surface quota
    errors as plain text.

    Args:
        error: Exception to inspect

    Returns:
        True for quota errors, False otherwise (including None and 5xx)
    """
    if error is None:
        return False
    if isinstance(error, LLMHTTPError):
        return error.status_code == 429
    message = str(error).lower()
    return any(marker in message for marker in QUOTA_MESSAGE_MARKERS)


def get_error_info(error: Optional[BaseException]) -> dict:
    """Extract status code, error code and message for structured logging."""
    if error is None:
        return {"message": "unknown error"}
    info: dict = {"message": str(error) or type(error).__name__}
    if isinstance(error, LLMHTTPError):
        info["status_code"] = error.status_code
    if isinstance(error, LLMConnectionError) and error.code:
        info["error_code"] = error.code
    return info


def classify_retry_reason(error: BaseException) -> str:
    """Metric label for a retried error: quota, server_error, timeout, connection, other."""
    if is_quota_error(error):
        return "quota"
    if isinstance(error, LLMHTTPError):
        return "timeout" if error.status_code == 408 else "server_error"
    if isinstance(error, LLMConnectionError):
        return "timeout" if error.code == "ETIMEDOUT" else "connection"
    return "other"
