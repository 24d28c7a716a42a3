"""Prometheus metrics for the Journale client.

Registered on the default ``prometheus_client`` registry; an application
that already exposes ``/metrics`` picks them up without extra wiring.

All metrics use the ``journale_`` prefix.
"""

from prometheus_client import Counter, Histogram

# ---------------------------------------------------------------------------
# Session metrics
# ---------------------------------------------------------------------------

SESSION_CREATES_TOTAL = Counter(
    "journale_session_creates_total",
    "Session-create exchanges, by outcome",
    ["status"],  # "ok" | "http_error" | "transport_error" | "malformed"
)

# ---------------------------------------------------------------------------
# Chat metrics
# ---------------------------------------------------------------------------

CHAT_REQUESTS_TOTAL = Counter(
    "journale_chat_requests_total",
    "Chat requests, by final outcome",
    ["status"],  # "ok" | "rate_limited" | "http_error" | "transport_error" | "malformed"
)

CHAT_RETRIES_TOTAL = Counter(
    "journale_chat_retries_total",
    "Chat attempts retried after an HTTP 429",
)

CHAT_BACKOFF_SECONDS = Histogram(
    "journale_chat_backoff_seconds",
    "Backoff delay applied before a retried chat attempt",
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)

CHAT_LATENCY_SECONDS = Histogram(
    "journale_chat_latency_seconds",
    "End-to-end chat request duration including retries",
    buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)
