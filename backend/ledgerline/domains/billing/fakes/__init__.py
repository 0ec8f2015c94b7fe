"""Fakes for billing domain testing."""

from ledgerline.domains.billing.fakes.repository import (
    FakeBillingUserRepository,
    FakeTopupRepository,
)
from ledgerline.domains.billing.fakes.topup import FakeTopupProcessor

__all__ = ["FakeBillingUserRepository", "FakeTopupProcessor", "FakeTopupRepository"]
