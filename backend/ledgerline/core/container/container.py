"""Dependency Injection Container.

The container is a simple immutable dataclass that holds protocol implementations.
It has no construction logic; that belongs in the factory.

Design principles:
- Container serves, factory builds
- Fail fast: all construction at startup
- Type safety: fields are protocol types, one field per type
- Testing: construct directly with fakes
"""

from dataclasses import dataclass, replace
from typing import Any

from ledgerline.core.protocols import BillingMetrics, MetricsRenderer, PaymentGatewayProtocol
from ledgerline.domains.billing.protocols import (
    AccountServiceProtocol,
    BillingWebhookProtocol,
    TopupProcessorProtocol,
)
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.protocols import (
    BalanceStoreProtocol,
    IdempotencyGuardProtocol,
    JournalProtocol,
)
from ledgerline.domains.pricing.protocols import PricingCatalogProtocol
from ledgerline.domains.reconciliation.protocols import (
    BalanceAdjusterProtocol,
    ReconciliationServiceProtocol,
)
from ledgerline.domains.usage.protocols import UsageChargeProcessorProtocol


@dataclass(frozen=True)
class Container:
    """Immutable container holding all protocol implementations.

    Usage:
        # Production: use the global container built by factory
        from ledgerline.core import container as container_mod
        await container_mod.container.usage.finalize_usage_charge(db, ref, ...)

        # Testing: construct directly with fakes (see backend/conftest.py
        # for the full test_container fixture)
        test_container = Container(config=BillingConfig(), ...)

        # FastAPI endpoints: use Inject() to pull individual protocols
        from ledgerline.api.deps import Inject
        async def charge(usage: UsageChargeProcessorProtocol = Inject(
            UsageChargeProcessorProtocol
        )):
            ...
    """

    # Rates, caps and limits shared by every billing service
    config: BillingConfig

    # Payment provider (Stripe, or a null gateway when not configured)
    payment_gateway: PaymentGatewayProtocol

    # Metrics
    billing_metrics: BillingMetrics
    metrics_renderer: MetricsRenderer

    # Ledger primitives
    balance_store: BalanceStoreProtocol
    journal: JournalProtocol
    idempotency: IdempotencyGuardProtocol

    # Pricing
    pricing: PricingCatalogProtocol

    # Accounts, topups and payment webhooks
    accounts: AccountServiceProtocol
    topups: TopupProcessorProtocol
    billing_webhook: BillingWebhookProtocol

    # Usage charging
    usage: UsageChargeProcessorProtocol

    # Reporting and admin corrections
    reconciliation: ReconciliationServiceProtocol
    adjustments: BalanceAdjusterProtocol

    def replace(self, **changes: Any) -> "Container":
        """Create a new container with some dependencies replaced.

        Useful for testing when you need to override specific dependencies.

        Example:
            test_container = prod_container.replace(payment_gateway=FakePaymentGateway())

        Args:
            **changes: Field names and their new values

        Returns:
            New Container instance with replaced fields
        """
        return replace(self, **changes)
