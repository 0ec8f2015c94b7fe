"""Fakes for reconciliation domain testing."""

from ledgerline.domains.reconciliation.fakes.repository import FakeReconciliationRepository

__all__ = ["FakeReconciliationRepository"]
