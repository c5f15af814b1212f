"""Prometheus metrics for loan origination, repayment allocation and transaction health"""

from prometheus_client import Counter, Histogram

# Loan metrics
loan_created_counter = Counter(
    "repayment_gateway_loans_created_total",
    "Loans created with a repayment schedule",
    ["currency"],
)

loan_principal_histogram = Histogram(
    "repayment_gateway_loan_principal_minor_units",
    "Principal of created loans in minor currency units",
    buckets=[1_000, 10_000, 100_000, 1_000_000, 10_000_000],
)

loan_repaid_counter = Counter(
    "repayment_gateway_loans_repaid_total",
    "Allocations that left a loan fully repaid",
)

# Repayment metrics
repayment_counter = Counter(
    "repayment_gateway_repayments_total",
    "Received repayments recorded",
    ["currency"],
)

surplus_absorbed_counter = Counter(
    "repayment_gateway_surplus_absorbed_minor_units_total",
    "Payment amount left over after every open installment was repaid",
)

# Storage health
transaction_failure_counter = Counter(
    "repayment_gateway_transaction_failures_total",
    "Units of work aborted by a storage error",
    ["reason"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_loan_created(currency: str, principal: int) -> None:
    """Record origination metrics"""
    loan_created_counter.labels(currency=currency).inc()
    loan_principal_histogram.observe(principal)


def record_repayment_metrics(currency: str, unallocated: int, loan_repaid: bool) -> None:
    """Record allocation outcome for monitoring payoff rates and overpayments"""
    repayment_counter.labels(currency=currency).inc()

    if unallocated > 0:
        surplus_absorbed_counter.inc(unallocated)

    if loan_repaid:
        loan_repaid_counter.inc()
