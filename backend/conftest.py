"""Root conftest for pytest configuration and shared fixtures.

This conftest is loaded before both testpaths (tests/ and ledgerline/),
making its fixtures available to centralized tests AND colocated domain tests.
"""

import os
from unittest.mock import AsyncMock

import pytest

# Register pytest-asyncio plugin at the root level
pytest_plugins = ("pytest_asyncio",)

# ---------------------------------------------------------------------------
# Environment variables — must be set before any ledgerline module import
# Uses setdefault so real env vars (CI, e2e) are never overridden.
# ---------------------------------------------------------------------------
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("METRICS_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")


# ---------------------------------------------------------------------------
# Shared fake fixtures — individual protocol fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def db():
    """AsyncMock database session; fakes ignore it."""
    return AsyncMock()


@pytest.fixture
def billing_config():
    """BillingConfig with production defaults and no retry back-off."""
    from ledgerline.domains.ledger.config import BillingConfig

    return BillingConfig(cas_retry_max_wait_seconds=0)


@pytest.fixture
def fake_payment_gateway():
    """Fake PaymentGateway that serves canned events and intents."""
    from ledgerline.adapters.payment.fake import FakePaymentGateway

    return FakePaymentGateway()


@pytest.fixture
def fake_billing_metrics():
    """Fake BillingMetrics that counts every call."""
    from ledgerline.adapters.metrics import FakeBillingMetrics

    return FakeBillingMetrics()


@pytest.fixture
def fake_metrics_renderer():
    """Fake MetricsRenderer returning a fixed payload."""
    from ledgerline.adapters.metrics import FakeMetricsRenderer

    return FakeMetricsRenderer()


@pytest.fixture
def fake_balance_repo():
    """In-memory balance rows with version CAS."""
    from ledgerline.domains.ledger.fakes import FakeBalanceRepository

    return FakeBalanceRepository()


@pytest.fixture
def fake_transaction_repo():
    """In-memory journal."""
    from ledgerline.domains.ledger.fakes import FakeTransactionRepository

    return FakeTransactionRepository()


@pytest.fixture
def fake_idempotency_repo():
    """In-memory idempotency keys with unique-key enforcement."""
    from ledgerline.domains.ledger.fakes import FakeIdempotencyKeyRepository

    return FakeIdempotencyKeyRepository()


@pytest.fixture
def fake_user_repo():
    """In-memory billing users."""
    from ledgerline.domains.billing.fakes import FakeBillingUserRepository

    return FakeBillingUserRepository()


@pytest.fixture
def fake_topup_repo():
    """In-memory topup rows."""
    from ledgerline.domains.billing.fakes import FakeTopupRepository

    return FakeTopupRepository()


@pytest.fixture
def fake_price_repo():
    """In-memory price history."""
    from ledgerline.domains.pricing.fakes import FakeModelTokenPriceRepository

    return FakeModelTokenPriceRepository()


@pytest.fixture
def fake_usage_repo():
    """In-memory usage log."""
    from ledgerline.domains.usage.fakes import FakeUsageLogRepository

    return FakeUsageLogRepository()


@pytest.fixture
def fake_reconciliation_repo():
    """In-memory reporting aggregates."""
    from ledgerline.domains.reconciliation.fakes import FakeReconciliationRepository

    return FakeReconciliationRepository()


# ---------------------------------------------------------------------------
# Real ledger services over the fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def balance_store(fake_balance_repo):
    """BalanceStore over the fake balance repository."""
    from ledgerline.domains.ledger.balance_store import BalanceStore

    return BalanceStore(balance_repo=fake_balance_repo)


@pytest.fixture
def journal(fake_transaction_repo):
    """TransactionJournal over the fake transaction repository."""
    from ledgerline.domains.ledger.journal import TransactionJournal

    return TransactionJournal(transaction_repo=fake_transaction_repo)


@pytest.fixture
def idempotency(fake_idempotency_repo, billing_config, fake_billing_metrics):
    """IdempotencyGuard over the fake key repository."""
    from ledgerline.domains.ledger.idempotency import IdempotencyGuard

    return IdempotencyGuard(
        key_repo=fake_idempotency_repo,
        retention_days=billing_config.idempotency_retention_days,
        metrics=fake_billing_metrics,
    )


@pytest.fixture
def accounts(
    fake_user_repo, balance_store, journal, idempotency, billing_config, fake_billing_metrics
):
    """AccountService over the fakes."""
    from ledgerline.domains.billing.accounts import AccountService

    return AccountService(
        user_repo=fake_user_repo,
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=billing_config,
        metrics=fake_billing_metrics,
    )


@pytest.fixture
def pricing(fake_price_repo, billing_config):
    """PricingCatalog over the fake price repository."""
    from ledgerline.domains.pricing.catalog import PricingCatalog

    return PricingCatalog(price_repo=fake_price_repo, config=billing_config)


@pytest.fixture
def topups(
    accounts,
    fake_user_repo,
    fake_topup_repo,
    balance_store,
    journal,
    idempotency,
    billing_config,
    fake_billing_metrics,
):
    """TopupProcessor over the fakes."""
    from ledgerline.domains.billing.topup import TopupProcessor

    return TopupProcessor(
        accounts=accounts,
        user_repo=fake_user_repo,
        topup_repo=fake_topup_repo,
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=billing_config,
        metrics=fake_billing_metrics,
    )


@pytest.fixture
def usage(
    accounts,
    pricing,
    fake_usage_repo,
    balance_store,
    journal,
    idempotency,
    billing_config,
    fake_billing_metrics,
):
    """UsageChargeProcessor over the fakes."""
    from ledgerline.domains.usage.charge_processor import UsageChargeProcessor

    return UsageChargeProcessor(
        accounts=accounts,
        pricing=pricing,
        usage_repo=fake_usage_repo,
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=billing_config,
        metrics=fake_billing_metrics,
    )


@pytest.fixture
def adjustments(
    accounts, balance_store, journal, idempotency, billing_config, fake_billing_metrics
):
    """BalanceAdjuster over the fakes."""
    from ledgerline.domains.reconciliation.adjustments import BalanceAdjuster

    return BalanceAdjuster(
        accounts=accounts,
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        config=billing_config,
        metrics=fake_billing_metrics,
    )


@pytest.fixture
def reconciliation(fake_reconciliation_repo, billing_config):
    """ReconciliationService over the fake reporting repository."""
    from ledgerline.domains.reconciliation.service import ReconciliationService

    return ReconciliationService(repo=fake_reconciliation_repo, config=billing_config)


# ---------------------------------------------------------------------------
# Test container — real services wired to in-memory fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def test_container(
    billing_config,
    fake_payment_gateway,
    fake_billing_metrics,
    fake_metrics_renderer,
    balance_store,
    journal,
    idempotency,
    pricing,
    accounts,
    topups,
    usage,
    reconciliation,
    adjustments,
):
    """A Container whose services run against in-memory fakes.

    Use this when testing code that receives a Container or individual
    protocols via dependency injection.

    For partial overrides, use container.replace():
        c = test_container.replace(payment_gateway=FakePaymentGateway(should_raise=...))
    """
    from ledgerline.core.container import Container
    from ledgerline.domains.billing.webhook_processor import BillingWebhookProcessor

    return Container(
        config=billing_config,
        payment_gateway=fake_payment_gateway,
        billing_metrics=fake_billing_metrics,
        metrics_renderer=fake_metrics_renderer,
        balance_store=balance_store,
        journal=journal,
        idempotency=idempotency,
        pricing=pricing,
        accounts=accounts,
        topups=topups,
        billing_webhook=BillingWebhookProcessor(
            payment_gateway=fake_payment_gateway, topups=topups
        ),
        usage=usage,
        reconciliation=reconciliation,
        adjustments=adjustments,
    )
