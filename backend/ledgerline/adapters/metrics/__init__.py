"""Metrics adapters."""

from ledgerline.adapters.metrics.billing import FakeBillingMetrics, PrometheusBillingMetrics
from ledgerline.adapters.metrics.renderer import FakeMetricsRenderer, PrometheusMetricsRenderer

__all__ = [
    "FakeBillingMetrics",
    "FakeMetricsRenderer",
    "PrometheusBillingMetrics",
    "PrometheusMetricsRenderer",
]
