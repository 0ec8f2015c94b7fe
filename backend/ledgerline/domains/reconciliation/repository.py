"""Reconciliation repository and protocol.

Read-side aggregates over the journal, usage logs and provider invoices.
"""

from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline import crud
from ledgerline.models import BillingUser, ProviderInvoice
from ledgerline.schemas.reconciliation import ProviderInvoiceCreate


class ReconciliationRepositoryProtocol(Protocol):
    """Aggregates for analytics and reconciliation."""

    async def sum_by_type(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> dict[str, int]:
        """Per-type journal totals in the window."""
        ...

    async def sum_accruals(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Provider payable accruals in the window."""
        ...

    async def count_distinct_users(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> int:
        """Users with at least one journal entry in the window."""
        ...

    async def count_usage(
        self, db: AsyncSession, *, start: datetime, end: datetime, status: Optional[str] = None
    ) -> int:
        """Usage rows in the window."""
        ...

    async def invoice_totals(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> tuple[int, int]:
        """(amount_cents, count) of invoices dated in the window."""
        ...

    async def create_invoice(
        self, db: AsyncSession, *, obj_in: ProviderInvoiceCreate
    ) -> ProviderInvoice:
        """Record and commit a provider invoice."""
        ...

    async def mark_invoices_reconciled(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Flag the window's invoices as reconciled and commit."""
        ...

    async def list_low_balances(
        self, db: AsyncSession, *, threshold_micro: int, limit: int
    ) -> list[tuple[BillingUser, int, Optional[datetime]]]:
        """Users under ``threshold_micro``, lowest first."""
        ...


class ReconciliationRepository(ReconciliationRepositoryProtocol):
    """Delegates to the crud singletons."""

    async def sum_by_type(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> dict[str, int]:
        """Per-type journal totals in the window."""
        return await crud.ledger_transaction.sum_by_type(db, start=start, end=end)

    async def sum_accruals(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Provider payable accruals in the window."""
        return await crud.ledger_transaction.sum_accruals(
            db, start=start, end=end, provider=provider
        )

    async def count_distinct_users(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> int:
        """Users with at least one journal entry in the window."""
        return await crud.ledger_transaction.count_distinct_users(db, start=start, end=end)

    async def count_usage(
        self, db: AsyncSession, *, start: datetime, end: datetime, status: Optional[str] = None
    ) -> int:
        """Usage rows in the window."""
        return await crud.usage_log.count_in_window(db, start=start, end=end, status=status)

    async def invoice_totals(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> tuple[int, int]:
        """(amount_cents, count) of invoices dated in the window."""
        return await crud.provider_invoice.totals_in_window(
            db, start=start, end=end, provider=provider
        )

    async def create_invoice(
        self, db: AsyncSession, *, obj_in: ProviderInvoiceCreate
    ) -> ProviderInvoice:
        """Record and commit a provider invoice."""
        return await crud.provider_invoice.create(db, obj_in=obj_in)

    async def mark_invoices_reconciled(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Flag the window's invoices as reconciled and commit."""
        return await crud.provider_invoice.mark_reconciled(
            db, start=start, end=end, provider=provider
        )

    async def list_low_balances(
        self, db: AsyncSession, *, threshold_micro: int, limit: int
    ) -> list[tuple[BillingUser, int, Optional[datetime]]]:
        """Users under ``threshold_micro``, lowest first."""
        return await crud.balance.list_below(
            db, threshold_micro_cents=threshold_micro, limit=limit
        )
