"""
Retry module for transient LLM transport failures.

Components:
- execute_with_retry: Exponential backoff with jitter and Retry-After
- is_retryable_error / is_quota_error: Typed error classification
"""

from llm_middleware.retry.classifier import (
    get_error_info,
    is_quota_error,
    is_retryable_error,
)
from llm_middleware.retry.engine import (
    calculate_delay,
    execute_with_retry,
    get_retry_after_ms,
)

__all__ = [
    "calculate_delay",
    "execute_with_retry",
    "get_error_info",
    "get_retry_after_ms",
    "is_quota_error",
    "is_retryable_error",
]
