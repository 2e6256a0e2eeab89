"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behaviour import and update them.  Scraped from ``GET /metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Verification protocol
# ---------------------------------------------------------------------------

VERIFICATION_VERDICTS = Counter(
    "verification_verdicts_total",
    "Ownership verification attempts by outcome",
    ["outcome"],  # "verified" or a FailureReason value
)

CHALLENGES_ISSUED = Counter(
    "verification_challenges_issued_total",
    "Challenge messages generated",
)

# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

LEDGER_CALLS = Counter(
    "ledger_calls_total",
    "Ledger read calls by operation and result",
    ["operation", "result"],  # result: ok | reverted | unavailable
)

LEDGER_CALL_DURATION = Histogram(
    "ledger_call_duration_seconds",
    "Ledger read latency in seconds",
    ["operation"],
    # RPC round trips are slower than local work; the top bucket sits at
    # the default call timeout.
    buckets=[0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 15.0],
)

COURSE_CACHE_OPERATIONS = Counter(
    "course_cache_operations_total",
    "Course metadata cache lookups by result",
    ["operation"],  # "hit" or "miss"
)
