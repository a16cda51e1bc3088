"""Prometheus metrics for report lifecycle, submission outcomes and external calls"""

from prometheus_client import Counter, Histogram

# Report lifecycle
report_transition_counter = Counter(
    "trip_reports_transition_total",
    "Report state transitions",
    ["from_state", "to_state"],
)

calculation_counter = Counter(
    "trip_reports_calculation_total",
    "Compensation calculations performed",
    ["scope"],  # member | team
)

# Submission metrics
submission_outcome_counter = Counter(
    "trip_reports_submission_total",
    "Submission attempts by outcome",
    ["outcome"],  # submitted | transient_failure | permanent_failure | not_found
)

submission_latency_histogram = Histogram(
    "submission_latency_seconds",
    "External submission service response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

submission_retry_counter = Counter(
    "submission_retries_total",
    "Submission tasks rescheduled after a retryable failure",
)

submission_exhausted_counter = Counter(
    "submission_retries_exhausted_total",
    "Submission tasks dropped after the last retry",
)

# Tariff feed metrics
tariff_fetch_failures_counter = Counter(
    "tariff_fetch_failures_total",
    "Failed tariff feed calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(from_state: str, to_state: str) -> None:
    """Count a state change for lifecycle dashboards"""
    report_transition_counter.labels(from_state=from_state, to_state=to_state).inc()
