"""Monitoring and metrics instrumentation for LLM Middleware.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from llm_middleware.monitoring.metrics import (
    llm_latency_seconds,
    llm_region_rotations_total,
    llm_requests_total,
    llm_retries_total,
    llm_tokens_total,
)

__all__ = [
    "llm_requests_total",
    "llm_retries_total",
    "llm_region_rotations_total",
    "llm_latency_seconds",
    "llm_tokens_total",
]
