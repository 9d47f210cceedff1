"""Custom Prometheus metrics for LLM Middleware.

These metrics live in the default registry; the embedding application exposes
them (e.g. prometheus_client.start_http_server or an ASGI /metrics route).
Alert rules should be configured for:
- llm_requests_total (high failure outcome rate per provider)
- llm_retries_total (high retry rate indicates provider instability)
- llm_region_rotations_total (sustained rotation means regional quota is too low)
"""

from prometheus_client import Counter, Histogram

# === Request Metrics ===

llm_requests_total = Counter(
    "llm_requests_total",
    "Total LLM calls by provider and outcome",
    ["provider", "outcome"],
)
"""
LLM calls counter by provider and outcome.

Labels:
- provider: ollama, anthropic, google, requesty, vertex_ai
- outcome: success, error, blocked

Alert thresholds:
- WARN: error rate > 5% of total requests
- CRITICAL: error rate > 20% of total requests
"""

# === Retry Metrics ===

llm_retries_total = Counter(
    "llm_retries_total",
    "Total retry attempts by call context and reason",
    ["context", "reason"],
)
"""
Retry attempts counter.

Labels:
- context: free-form call label (usually provider or provider:model)
- reason: quota, server_error, timeout, connection, other

Alert thresholds:
- WARN: retry rate > 10% of total requests
- CRITICAL: retry rate > 30% of total requests
"""

llm_region_rotations_total = Counter(
    "llm_region_rotations_total",
    "Vertex AI region rotations by target region",
    ["to_region"],
)
"""
Region rotation counter (Vertex AI only).

Labels:
- to_region: region the next attempt is sent to (includes the fallback)

Sustained rotation to the fallback region indicates exhausted regional quota.
"""

# === LLM Performance Metrics ===

llm_latency_seconds = Histogram(
    "llm_latency_seconds",
    "LLM call latency in seconds (including retries)",
    ["provider", "model", "success"],
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 180.0],
)
"""
LLM call latency histogram.

Labels:
- provider: Provider key
- model: Model name (e.g., gemini-2.5-flash, claude-3-5-sonnet-20241022)
- success: true (call succeeded), false (call failed)

Buckets cover up to the 180s per-attempt timeout.

Alert thresholds:
- WARN: p95 > 30s
- CRITICAL: p95 > 60s
"""

llm_tokens_total = Counter(
    "llm_tokens_total",
    "Total tokens consumed by provider, model and type",
    ["provider", "model", "token_type"],
)
"""
Token consumption counter.

Labels:
- provider: Provider key
- model: Model name
- token_type: input, output, reasoning, cache_read

Used for cost estimation and capacity planning.
"""
