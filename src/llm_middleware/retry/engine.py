"""
Retry engine with exponential backoff, full jitter and Retry-After support.

Provider-agnostic: wraps a single async operation (one HTTP attempt) and
re-invokes it while the classifier says the failure is transient.

Delay before retry attempt k (0-indexed):
    delay = min(initial_delay_ms * multiplier**k, max_delay_ms)
    delay = uniform(0, delay)                 # when jitter is enabled
    delay = max(delay, retry_after_ms)        # when the provider sent Retry-After

Usage:
    response = await execute_with_retry(
        lambda: post_json(client, url, payload),
        policy,
        on_retry=cursor.on_retry,
        context="vertex_ai",
    )
"""

import asyncio
import random
import time
from email.utils import parsedate_to_datetime
from typing import Awaitable, Callable, Optional, TypeVar

import structlog

from llm_middleware.llm.exceptions import LLMHTTPError
from llm_middleware.models.llm_models import RetryPolicy
from llm_middleware.monitoring.metrics import llm_retries_total
from llm_middleware.retry.classifier import (
    classify_retry_reason,
    get_error_info,
    is_retryable_error,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RetryHook = Callable[[BaseException, int], None]


def calculate_delay(attempt: int, policy: RetryPolicy) -> float:
    """
    Compute the backoff delay in milliseconds for a 0-indexed attempt.

    Args:
        attempt: Index of the attempt that just failed (0 = first attempt)
        policy: Retry policy

    Returns:
        Delay in ms, in [0, min(initial * multiplier**attempt, max)]
    """
    exponential = policy.initial_delay_ms * (policy.multiplier ** attempt)
    capped = min(exponential, policy.max_delay_ms)
    if policy.jitter:
        return random.uniform(0, capped)
    return capped


def get_retry_after_ms(error: BaseException) -> Optional[float]:
    """
    Read the Retry-After header of an HTTP error, in milliseconds.

    Accepts integer seconds or an HTTP-date. Dates in the past yield 0.
    Returns None when the error has no usable header.
    """
    if not isinstance(error, LLMHTTPError):
        return None
    value = error.get_header("retry-after")
    if value is None:
        return None
    value = value.strip()
    if value.isdigit():
        return int(value) * 1000.0
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    return max(0.0, (retry_at.timestamp() - time.time()) * 1000.0)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    on_retry: Optional[RetryHook] = None,
    *,
    context: str = "",
) -> T:
    """
    Run an async operation, retrying transient failures with backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Retry policy (defaults to RetryPolicy())
        on_retry: Hook called once before each retry with (error, attempt),
            attempt being the 1-indexed number of the retry about to happen.
            Runs before the delay is computed and before the next attempt,
            so state it mutates is visible to that attempt.
        context: Label for logs and the retries metric

    Returns:
        Result of the first successful attempt

    Raises:
        The original exception of the last attempt, unwrapped, when the
        error is not retryable or the budget is exhausted.
    """
    policy = policy or RetryPolicy()

    if not policy.enabled:
        return await operation()

    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as error:
            if not is_retryable_error(error) or attempt >= policy.max_retries:
                raise

            if on_retry is not None:
                on_retry(error, attempt + 1)

            delay_ms = calculate_delay(attempt, policy)
            retry_after_ms = get_retry_after_ms(error)
            if retry_after_ms is not None:
                delay_ms = max(delay_ms, retry_after_ms)

            info = get_error_info(error)
            llm_retries_total.labels(
                context=context or "default",
                reason=classify_retry_reason(error),
            ).inc()

            logger.warning(
                "Retrying LLM call after transient error",
                context=context,
                attempt=attempt + 1,
                max_retries=policy.max_retries,
                delay_ms=round(delay_ms),
                status_code=info.get("status_code"),
                error_code=info.get("error_code"),
                error=info["message"],
                retry_after_ms=retry_after_ms,
            )

            await asyncio.sleep(delay_ms / 1000)
            attempt += 1
