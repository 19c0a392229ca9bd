"""Prometheus metrics for monitoring invoice allocation, payments and saga compensations"""

from prometheus_client import Counter, Histogram

# Allocation metrics
invoice_created_counter = Counter(
    "card_ledger_invoices_created_total",
    "Invoices created",
    ["origin"],  # auto | manual
)

invoice_race_fallback_counter = Counter(
    "card_ledger_invoice_race_fallbacks_total",
    "Invoice inserts that lost a uniqueness race and re-read the existing row",
)

expense_created_counter = Counter(
    "card_ledger_expenses_created_total",
    "Expense rows created",
    ["kind"],  # single | installment
)

# Payment metrics
invoice_payment_counter = Counter(
    "card_ledger_invoice_payments_total",
    "Invoice payment attempts",
    ["outcome"],  # paid | failed
)

saga_compensation_counter = Counter(
    "card_ledger_saga_compensations_total",
    "Compensating actions run after a partial failure",
    ["saga", "outcome"],  # saga: payment | installment | linked_user; outcome: ok | failed
)

# Auth service metrics
auth_failures_counter = Counter(
    "card_ledger_auth_service_failures_total",
    "Failed auth service calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_expenses(kind: str, count: int) -> None:
    """Record created expense rows by purchase kind"""
    expense_created_counter.labels(kind=kind).inc(count)


def record_compensation(saga: str, succeeded: bool) -> None:
    saga_compensation_counter.labels(saga=saga, outcome="ok" if succeeded else "failed").inc()
