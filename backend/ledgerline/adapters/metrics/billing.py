"""Billing metrics adapters (Prometheus + Fake).

The Prometheus implementation uses a caller-supplied CollectorRegistry so
these counters are served from the shared ``/metrics`` endpoint.
"""

from collections import Counter as _Tally

from prometheus_client import CollectorRegistry, Counter

from ledgerline.core.protocols.metrics import BillingMetrics


class PrometheusBillingMetrics(BillingMetrics):
    """Prometheus-backed billing counters."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._idempotency_hits = Counter(
            "ledgerline_billing_idempotency_hits_total",
            "Operations answered from a recorded idempotency key",
            ["operation"],
            registry=self._registry,
        )
        self._cas_retries = Counter(
            "ledgerline_billing_cas_retries_total",
            "Balance version conflicts that triggered a retry",
            ["operation"],
            registry=self._registry,
        )
        self._usage_charges = Counter(
            "ledgerline_billing_usage_charges_total",
            "Usage charge outcomes",
            ["outcome"],
            registry=self._registry,
        )
        self._topups = Counter(
            "ledgerline_billing_topups_total",
            "Applied topups",
            registry=self._registry,
        )
        self._charged = Counter(
            "ledgerline_billing_charged_micro_cents_total",
            "Micro-cents charged for usage",
            registry=self._registry,
        )

    # -- BillingMetrics protocol methods --

    def inc_idempotency_hit(self, operation: str) -> None:
        self._idempotency_hits.labels(operation=operation).inc()

    def inc_cas_retry(self, operation: str) -> None:
        self._cas_retries.labels(operation=operation).inc()

    def inc_usage_charge(self, outcome: str) -> None:
        self._usage_charges.labels(outcome=outcome).inc()

    def inc_topup(self) -> None:
        self._topups.inc()

    def add_charged_micro_cents(self, amount: int) -> None:
        self._charged.inc(amount)


# ---------------------------------------------------------------------------
# Fake
# ---------------------------------------------------------------------------


class FakeBillingMetrics(BillingMetrics):
    """In-memory spy implementing the BillingMetrics protocol."""

    def __init__(self) -> None:
        self.idempotency_hits: _Tally[str] = _Tally()
        self.cas_retries: _Tally[str] = _Tally()
        self.usage_charges: _Tally[str] = _Tally()
        self.topups: int = 0
        self.charged_micro_cents: int = 0

    def inc_idempotency_hit(self, operation: str) -> None:
        self.idempotency_hits[operation] += 1

    def inc_cas_retry(self, operation: str) -> None:
        self.cas_retries[operation] += 1

    def inc_usage_charge(self, outcome: str) -> None:
        self.usage_charges[outcome] += 1

    def inc_topup(self) -> None:
        self.topups += 1

    def add_charged_micro_cents(self, amount: int) -> None:
        self.charged_micro_cents += amount
