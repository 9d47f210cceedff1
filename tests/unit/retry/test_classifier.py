"""Unit tests for retryable / quota error classification."""

import pytest

from llm_middleware.llm.exceptions import (
    LLMAuthenticationError,
    LLMConfigurationError,
    LLMConnectionError,
    LLMContentBlockedError,
    LLMGenerationError,
    LLMHTTPError,
    LLMRateLimitError,
    LLMTimeoutError,
)
from llm_middleware.retry.classifier import (
    RETRYABLE_CONNECTION_CODES,
    classify_retry_reason,
    get_error_info,
    is_quota_error,
    is_retryable_error,
)


class TestIsRetryableError:
    """Retryable: selected HTTP statuses and every connection-level failure."""

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_retryable_statuses(self, status):
        assert is_retryable_error(LLMHTTPError(f"HTTP {status}", status_code=status)) is True

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422, 501])
    def test_non_retryable_statuses(self, status):
        assert is_retryable_error(LLMHTTPError(f"HTTP {status}", status_code=status)) is False

    @pytest.mark.parametrize("code", sorted(RETRYABLE_CONNECTION_CODES))
    def test_enumerated_connection_codes(self, code):
        assert is_retryable_error(LLMConnectionError("network", code=code)) is True

    def test_connection_error_without_code(self):
        assert is_retryable_error(LLMConnectionError("network")) is True

    def test_timeout(self):
        assert is_retryable_error(LLMTimeoutError("Request timeout after 180s")) is True

    def test_rate_limit_subclass(self):
        assert is_retryable_error(LLMRateLimitError("HTTP 429", status_code=429)) is True

    @pytest.mark.parametrize(
        "error",
        [
            None,
            ValueError("boom"),
            LLMConfigurationError("no key"),
            LLMAuthenticationError("bad token"),
            LLMGenerationError("no candidates"),
            LLMContentBlockedError("blocked", finish_reason="SAFETY"),
        ],
    )
    def test_everything_else_is_not_retryable(self, error):
        assert is_retryable_error(error) is False


class TestIsQuotaError:
    """Quota: HTTP 429, or a quota-like message when there is no HTTP status."""

    def test_http_429(self):
        assert is_quota_error(LLMRateLimitError("HTTP 429", status_code=429)) is True

    def test_http_429_on_base_class(self):
        assert is_quota_error(LLMHTTPError("HTTP 429", status_code=429)) is True

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors_are_never_quota_even_with_quota_message(self, status):
        error = LLMHTTPError(f"HTTP {status}: RESOURCE_EXHAUSTED quota exceeded", status_code=status)
        assert is_quota_error(error) is False

    @pytest.mark.parametrize(
        "message",
        [
            "Resource exhausted for model",
            "RESOURCE_EXHAUSTED",
            "Quota exceeded for aiplatform.googleapis.com",
            "Rate limit reached",
            "Too Many Requests",
            "upstream returned 429",
        ],
    )
    def test_message_markers(self, message):
        assert is_quota_error(RuntimeError(message)) is True

    def test_plain_connection_error_is_not_quota(self):
        assert is_quota_error(LLMConnectionError("connection reset", code="ECONNRESET")) is False

    def test_none(self):
        assert is_quota_error(None) is False


class TestGetErrorInfo:
    def test_http_error(self):
        info = get_error_info(LLMHTTPError("HTTP 503: down", status_code=503))
        assert info == {"message": "HTTP 503: down", "status_code": 503}

    def test_connection_error(self):
        info = get_error_info(LLMConnectionError("Network error", code="ENOTFOUND"))
        assert info == {"message": "Network error", "error_code": "ENOTFOUND"}

    def test_plain_exception(self):
        assert get_error_info(ValueError("x")) == {"message": "x"}

    def test_none(self):
        assert get_error_info(None) == {"message": "unknown error"}


@pytest.mark.parametrize(
    "error,reason",
    [
        (LLMRateLimitError("HTTP 429", status_code=429), "quota"),
        (LLMHTTPError("HTTP 503", status_code=503), "server_error"),
        (LLMHTTPError("HTTP 408", status_code=408), "timeout"),
        (LLMTimeoutError("timeout"), "timeout"),
        (LLMConnectionError("reset", code="ECONNRESET"), "connection"),
        (ValueError("x"), "other"),
    ],
)
def test_classify_retry_reason(error, reason):
    assert classify_retry_reason(error) == reason
