"""Reconciliation domain protocols."""

from datetime import datetime
from typing import Any, Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.domains.billing.types import UserRef
from ledgerline.domains.reconciliation.types import (
    AdjustmentResult,
    BillingAnalytics,
    LowBalanceEntry,
    ReconciliationReport,
)


@runtime_checkable
class ReconciliationServiceProtocol(Protocol):
    """Read-side reporting plus provider invoice bookkeeping."""

    async def get_billing_analytics(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> BillingAnalytics:
        """Aggregates for ``[start, end]``."""
        ...

    async def get_reconciliation_data(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> ReconciliationReport:
        """Recorded provider cost against invoices for ``[start, end]``."""
        ...

    async def record_provider_invoice(
        self,
        db: AsyncSession,
        *,
        provider: str,
        invoice_date: datetime,
        amount_cents: int,
        metadata: Optional[dict[str, Any]] = None,
    ) -> UUID:
        """Store an invoice reported by a provider."""
        ...

    async def mark_invoices_reconciled(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Flag the window's invoices when the window reconciles."""
        ...

    async def get_users_with_low_balances(
        self, db: AsyncSession, *, threshold_micro: Optional[int] = None, limit: int = 100
    ) -> list[LowBalanceEntry]:
        """Users whose balance is under the threshold."""
        ...


@runtime_checkable
class BalanceAdjusterProtocol(Protocol):
    """Admin balance corrections."""

    async def apply_balance_adjustment(
        self,
        db: AsyncSession,
        user: UserRef,
        *,
        amount_micro: int,
        reason: str,
        admin_id: str,
        idempotency_key: Optional[str] = None,
    ) -> AdjustmentResult:
        """Credit or debit a user with an audited journal entry."""
        ...
