"""Prometheus metrics for ledger activity, loan lifecycle and reminder delivery"""

from decimal import Decimal
from prometheus_client import Counter, Histogram

# Ledger metrics
ledger_entry_counter = Counter(
    "khata_ledger_entries_total",
    "Ledger entries admitted",
    ["entry_type"],  # DEBIT | CREDIT
)

ledger_entry_deleted_counter = Counter(
    "khata_ledger_entries_deleted_total",
    "Ledger entries soft-deleted",
)

# Loan metrics
loan_opened_counter = Counter(
    "khata_loans_opened_total",
    "Loans opened",
    ["repayment_type"],
)

loan_payment_counter = Counter(
    "khata_loan_payments_total",
    "Loan payments recorded",
    ["payment_type"],
)

loan_payment_amount_histogram = Histogram(
    "khata_loan_payment_amount",
    "Loan payment amounts",
    buckets=[500, 1_000, 5_000, 10_000, 25_000, 50_000, 100_000, 500_000],
)

loan_closed_counter = Counter(
    "khata_loans_closed_total",
    "Loans closed",
    ["settlement"],  # full | short | over
)

domain_error_counter = Counter(
    "khata_domain_errors_total",
    "Operations rejected by the engines",
    ["code"],
)

# Reminder metrics
reminder_latency_histogram = Histogram(
    "reminder_latency_seconds",
    "Messaging webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

reminder_failure_counter = Counter(
    "reminder_failures_total",
    "Failed reminder deliveries",
)

document_upload_failures_counter = Counter(
    "document_upload_failures_total",
    "Failed document store uploads",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment_metrics(payment_type: str, amount: Decimal) -> None:
    loan_payment_counter.labels(payment_type=payment_type).inc()
    loan_payment_amount_histogram.observe(float(amount))


def record_closure(settlement_amount: Decimal, principal_amount: Decimal) -> None:
    """Bucket settlements against principal for write-off monitoring"""
    if settlement_amount < principal_amount:
        bucket = "short"
    elif settlement_amount == principal_amount:
        bucket = "full"
    else:
        bucket = "over"
    loan_closed_counter.labels(settlement=bucket).inc()
