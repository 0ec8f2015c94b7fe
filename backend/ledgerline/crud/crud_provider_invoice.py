"""CRUD operations for the ProviderInvoice model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.crud._base import CRUDBase
from ledgerline.models.provider_invoice import ProviderInvoice
from ledgerline.schemas.reconciliation import ProviderInvoiceCreate


class CRUDProviderInvoice(CRUDBase[ProviderInvoice, ProviderInvoiceCreate]):
    """CRUD operations for the ProviderInvoice model."""

    def _window(self, start: datetime, end: datetime, provider: Optional[str]) -> list:
        conditions = [self.model.invoice_date >= start, self.model.invoice_date <= end]
        if provider is not None:
            conditions.append(self.model.provider == provider)
        return conditions

    async def totals_in_window(
        self,
        db: AsyncSession,
        *,
        start: datetime,
        end: datetime,
        provider: Optional[str] = None,
    ) -> tuple[int, int]:
        """Sum and count of invoices dated inside the window.

        Returns:
            (amount_cents_total, invoice_count)
        """
        query = select(
            func.coalesce(func.sum(self.model.amount_cents), 0), func.count(self.model.id)
        ).where(and_(*self._window(start, end, provider)))
        result = await db.execute(query)
        total, count = result.one()
        return int(total), int(count)

    async def mark_reconciled(
        self,
        db: AsyncSession,
        *,
        start: datetime,
        end: datetime,
        provider: Optional[str] = None,
    ) -> int:
        """Flag every invoice in the window as reconciled and commit.

        Returns:
            Number of invoices updated
        """
        stmt = (
            update(self.model)
            .where(and_(*self._window(start, end, provider), self.model.reconciled.is_(False)))
            .values(reconciled=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount or 0


provider_invoice = CRUDProviderInvoice(ProviderInvoice)
