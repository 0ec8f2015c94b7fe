"""Core protocols for dependency injection."""

from ledgerline.core.protocols.metrics import BillingMetrics, MetricsRenderer
from ledgerline.core.protocols.payment import PaymentGatewayProtocol

__all__ = [
    "BillingMetrics",
    "MetricsRenderer",
    "PaymentGatewayProtocol",
]
