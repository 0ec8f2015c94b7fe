"""Fake reconciliation repository for testing.

Aggregates are computed from seeded rows so tests can set up a window with
plain data instead of canned totals.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.core.shared_models import TransactionType
from ledgerline.models import BillingUser, LedgerTransaction, ProviderInvoice, UsageLog


class FakeReconciliationRepository:
    """In-memory fake for ReconciliationRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty stores and call log."""
        self.transactions: list[LedgerTransaction] = []
        self.usage: list[UsageLog] = []
        self.invoices: list[ProviderInvoice] = []
        self.low_balances: list[tuple[BillingUser, int, Optional[datetime]]] = []
        self._calls: list[tuple] = []

    # ---- Test helpers ----

    def add_transaction(
        self,
        type_: TransactionType,
        amount_micro: int,
        *,
        user_id=None,
        provider: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> LedgerTransaction:
        """Seed a journal entry."""
        row = LedgerTransaction(
            id=uuid4(),
            user_id=user_id,
            type=type_.value,
            amount_micro_cents=amount_micro,
            provider=provider,
            created_at=created_at or utc_now_naive(),
        )
        self.transactions.append(row)
        return row

    def add_usage(self, status: str, *, created_at: Optional[datetime] = None) -> UsageLog:
        """Seed a usage row; only status and time matter for aggregates."""
        row = UsageLog(id=uuid4(), status=status, created_at=created_at or utc_now_naive())
        self.usage.append(row)
        return row

    def add_invoice(
        self, provider: str, amount_cents: int, invoice_date: datetime
    ) -> ProviderInvoice:
        """Seed a provider invoice."""
        row = ProviderInvoice(
            id=uuid4(),
            provider=provider,
            invoice_date=invoice_date,
            amount_cents=amount_cents,
            reconciled=False,
            created_at=utc_now_naive(),
        )
        self.invoices.append(row)
        return row

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    @staticmethod
    def _in(ts: datetime, start: datetime, end: datetime) -> bool:
        return start <= ts <= end

    def _invoices_in(self, start, end, provider) -> list[ProviderInvoice]:
        return [
            i
            for i in self.invoices
            if self._in(i.invoice_date, start, end) and (provider is None or i.provider == provider)
        ]

    # ---- Protocol ----

    async def sum_by_type(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> dict[str, int]:
        """Per-type journal totals in the window."""
        self._calls.append(("sum_by_type", start, end))
        totals: dict[str, int] = {}
        for t in self.transactions:
            if self._in(t.created_at, start, end):
                totals[t.type] = totals.get(t.type, 0) + t.amount_micro_cents
        return totals

    async def sum_accruals(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Provider payable accruals in the window."""
        self._calls.append(("sum_accruals", start, end, provider))
        return sum(
            t.amount_micro_cents
            for t in self.transactions
            if t.type == TransactionType.PROVIDER_PAYABLE_ACCRUAL.value
            and self._in(t.created_at, start, end)
            and (provider is None or t.provider == provider)
        )

    async def count_distinct_users(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> int:
        """Users with at least one journal entry in the window."""
        self._calls.append(("count_distinct_users", start, end))
        return len(
            {
                t.user_id
                for t in self.transactions
                if t.user_id is not None and self._in(t.created_at, start, end)
            }
        )

    async def count_usage(
        self, db: AsyncSession, *, start: datetime, end: datetime, status: Optional[str] = None
    ) -> int:
        """Usage rows in the window."""
        self._calls.append(("count_usage", start, end, status))
        return sum(
            1
            for u in self.usage
            if self._in(u.created_at, start, end) and (status is None or u.status == status)
        )

    async def invoice_totals(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> tuple[int, int]:
        """(amount_cents, count) of invoices dated in the window."""
        self._calls.append(("invoice_totals", start, end, provider))
        invoices = self._invoices_in(start, end, provider)
        return sum(i.amount_cents for i in invoices), len(invoices)

    async def create_invoice(self, db: AsyncSession, *, obj_in: object) -> ProviderInvoice:
        """Record a provider invoice."""
        self._calls.append(("create_invoice", obj_in))
        row = self.add_invoice(obj_in.provider, obj_in.amount_cents, obj_in.invoice_date)
        row.invoice_metadata = obj_in.invoice_metadata
        return row

    async def mark_invoices_reconciled(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Flag the window's unreconciled invoices."""
        self._calls.append(("mark_invoices_reconciled", start, end, provider))
        pending = [i for i in self._invoices_in(start, end, provider) if not i.reconciled]
        for invoice in pending:
            invoice.reconciled = True
        return len(pending)

    async def list_low_balances(
        self, db: AsyncSession, *, threshold_micro: int, limit: int
    ) -> list[tuple[BillingUser, int, Optional[datetime]]]:
        """Seeded low-balance rows under ``threshold_micro``, lowest first."""
        self._calls.append(("list_low_balances", threshold_micro, limit))
        rows = [r for r in self.low_balances if r[1] < threshold_micro]
        return sorted(rows, key=lambda r: r[1])[:limit]
