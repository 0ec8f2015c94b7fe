"""Container Factory.

All construction logic lives here. The factory reads settings and builds
the container with environment-appropriate implementations.

Design principles:
- Single place for all wiring decisions
- Fail fast: broken wiring crashes at startup, not on the first charge
- Testable: can unit test factory logic with alternate settings
"""

from prometheus_client import CollectorRegistry

from ledgerline.adapters.metrics import PrometheusBillingMetrics, PrometheusMetricsRenderer
from ledgerline.core.config import Settings
from ledgerline.core.container.container import Container
from ledgerline.core.logging import logger
from ledgerline.core.protocols.metrics import BillingMetrics
from ledgerline.core.protocols.payment import PaymentGatewayProtocol
from ledgerline.domains.billing.accounts import AccountService
from ledgerline.domains.billing.repository import BillingUserRepository, TopupRepository
from ledgerline.domains.billing.topup import TopupProcessor
from ledgerline.domains.billing.webhook_processor import BillingWebhookProcessor
from ledgerline.domains.ledger.balance_store import BalanceStore
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.idempotency import IdempotencyGuard
from ledgerline.domains.ledger.journal import TransactionJournal
from ledgerline.domains.ledger.repository import (
    BalanceRepository,
    IdempotencyKeyRepository,
    TransactionRepository,
)
from ledgerline.domains.pricing.catalog import PricingCatalog
from ledgerline.domains.pricing.repository import ModelTokenPriceRepository
from ledgerline.domains.reconciliation.adjustments import BalanceAdjuster
from ledgerline.domains.reconciliation.repository import ReconciliationRepository
from ledgerline.domains.reconciliation.service import ReconciliationService
from ledgerline.domains.usage.charge_processor import UsageChargeProcessor
from ledgerline.domains.usage.repository import UsageLogRepository


def create_container(settings: Settings) -> Container:
    """Build container with environment-appropriate implementations.

    This is the single source of truth for dependency wiring. It reads
    settings and decides which adapter implementations to use.

    Args:
        settings: Application settings

    Returns:
        Fully constructed Container ready for use

    Example:
        # In main.py
        from ledgerline.core.config import settings
        from ledgerline.core.container import create_container

        container = create_container(settings)
    """
    config = BillingConfig.from_settings(settings)

    # -----------------------------------------------------------------
    # Metrics (Prometheus adapters sharing one registry)
    # -----------------------------------------------------------------
    registry = CollectorRegistry()
    billing_metrics = PrometheusBillingMetrics(registry=registry)
    metrics_renderer = PrometheusMetricsRenderer(registry=registry)

    # -----------------------------------------------------------------
    # Payment gateway
    # -----------------------------------------------------------------
    payment_gateway = _create_payment_gateway(settings)

    # -----------------------------------------------------------------
    # Ledger primitives
    # Every money-moving service shares these instances.
    # -----------------------------------------------------------------
    ledger = _create_ledger_services(config, billing_metrics)

    # -----------------------------------------------------------------
    # Billing services
    # -----------------------------------------------------------------
    billing = _create_billing_services(config, ledger, payment_gateway, billing_metrics)

    return Container(
        config=config,
        payment_gateway=payment_gateway,
        billing_metrics=billing_metrics,
        metrics_renderer=metrics_renderer,
        balance_store=ledger["balance_store"],
        journal=ledger["journal"],
        idempotency=ledger["idempotency"],
        pricing=billing["pricing"],
        accounts=billing["accounts"],
        topups=billing["topups"],
        billing_webhook=billing["billing_webhook"],
        usage=billing["usage"],
        reconciliation=billing["reconciliation"],
        adjustments=billing["adjustments"],
    )


# ---------------------------------------------------------------------------
# Private factory functions for each dependency
# ---------------------------------------------------------------------------


def _create_payment_gateway(settings: Settings) -> PaymentGatewayProtocol:
    """Create payment gateway: Stripe if a key is configured, otherwise a null one."""
    if settings.BILLING_ENABLED and settings.STRIPE_SECRET_KEY:
        from ledgerline.adapters.payment.stripe import StripePaymentGateway

        if not settings.STRIPE_WEBHOOK_SECRET:
            logger.warning("STRIPE_WEBHOOK_SECRET is not set; webhooks will fail verification")
        return StripePaymentGateway(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET or "",
            timeout_seconds=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
        )

    from ledgerline.adapters.payment.null import NullPaymentGateway

    return NullPaymentGateway()


def _create_ledger_services(config: BillingConfig, metrics: BillingMetrics) -> dict:
    """Create the balance store, journal and idempotency guard."""
    return {
        "balance_store": BalanceStore(balance_repo=BalanceRepository()),
        "journal": TransactionJournal(transaction_repo=TransactionRepository()),
        "idempotency": IdempotencyGuard(
            key_repo=IdempotencyKeyRepository(),
            retention_days=config.idempotency_retention_days,
            metrics=metrics,
        ),
    }


def _create_billing_services(
    config: BillingConfig,
    ledger: dict,
    payment_gateway: PaymentGatewayProtocol,
    metrics: BillingMetrics,
) -> dict:
    """Create pricing, account, topup, usage and reconciliation services."""
    balance_store = ledger["balance_store"]
    journal = ledger["journal"]
    idempotency = ledger["idempotency"]
    user_repo = BillingUserRepository()

    pricing = PricingCatalog(price_repo=ModelTokenPriceRepository(), config=config)
    accounts = AccountService(
        user_repo=user_repo,
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=config,
        metrics=metrics,
    )
    topups = TopupProcessor(
        accounts=accounts,
        user_repo=user_repo,
        topup_repo=TopupRepository(),
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=config,
        metrics=metrics,
    )
    billing_webhook = BillingWebhookProcessor(payment_gateway=payment_gateway, topups=topups)
    usage = UsageChargeProcessor(
        accounts=accounts,
        pricing=pricing,
        usage_repo=UsageLogRepository(),
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=config,
        metrics=metrics,
    )
    reconciliation = ReconciliationService(repo=ReconciliationRepository(), config=config)
    adjustments = BalanceAdjuster(
        accounts=accounts,
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=config,
        metrics=metrics,
    )

    return {
        "pricing": pricing,
        "accounts": accounts,
        "topups": topups,
        "billing_webhook": billing_webhook,
        "usage": usage,
        "reconciliation": reconciliation,
        "adjustments": adjustments,
    }
