"""Prometheus metrics for workflow transitions, capital warnings and persistence retries"""

from prometheus_client import Counter, Histogram

# Workflow metrics
transition_counter = Counter(
    "procurement_transition_total",
    "Spending request state transitions",
    ["kind", "action"],  # MATERIAL_REQUEST | PROFESSIONAL_FEE x SUBMITTED | APPROVED | ...
)

capital_warning_counter = Counter(
    "procurement_capital_warning_total",
    "Advisory capital warnings returned to callers",
    ["code"],  # UNFUNDED | INSUFFICIENT | LOW_AFTER | LOW_CURRENT | NONE
)

duplicate_expense_counter = Counter(
    "procurement_duplicate_expense_total",
    "Expense recording attempts for requests that already have an expense",
)

# Persistence metrics
transaction_retry_counter = Counter(
    "procurement_transaction_retries_total",
    "Transaction units rolled back and retried",
    ["operation"],
)

# Notification webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(kind: str, action: str, warning_code: str | None = None) -> None:
    """Count a committed transition and the advisory warning it returned, if any"""
    transition_counter.labels(kind=kind, action=action).inc()
    if warning_code is not None:
        capital_warning_counter.labels(code=warning_code).inc()
