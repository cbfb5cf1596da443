"""Prometheus metrics for monitoring payment submissions, approvals and notification delivery"""

from prometheus_client import Counter, Histogram

# Payment workflow metrics
payment_submission_counter = Counter(
    "realty_payment_submissions_total",
    "Payment proofs submitted against installments",
    ["method"],  # bank_transfer | deposit
)

payment_decision_counter = Counter(
    "realty_payment_decisions_total",
    "Approver decisions on payment proofs",
    ["outcome"],  # approved | rejected
)

contract_completed_counter = Counter(
    "realty_contracts_completed_total",
    "Clients whose last installment was approved",
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification persistence time",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification delivery attempts",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_submission(payment_method: str) -> None:
    payment_submission_counter.labels(method=payment_method).inc()


def record_payment_decision(outcome: str, contract_completed: bool = False) -> None:
    """Record decision metrics for monitoring approval rates and contract completion"""
    payment_decision_counter.labels(outcome=outcome).inc()
    if contract_completed:
        contract_completed_counter.inc()
