"""Analytics and provider reconciliation.

All reads return zeros for empty windows. Amounts recorded in the journal
are micro-cents; invoices arrive in whole cents, so reconciliation compares
at cent precision with a tolerance.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import to_naive_utc
from ledgerline.core.logging import logger
from ledgerline.core.shared_models import TransactionType, UsageStatus
from ledgerline.domains.billing.exceptions import BillingValidationError
from ledgerline.domains.billing.validation import validate_amount_cents
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.money import micro_to_cents_rounded
from ledgerline.domains.reconciliation.protocols import ReconciliationServiceProtocol
from ledgerline.domains.reconciliation.repository import ReconciliationRepositoryProtocol
from ledgerline.domains.reconciliation.types import (
    BillingAnalytics,
    LowBalanceEntry,
    ReconciliationReport,
)
from ledgerline.schemas.reconciliation import ProviderInvoiceCreate


def _window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start, end = to_naive_utc(start), to_naive_utc(end)
    if end < start:
        raise BillingValidationError("end_date must not be before start_date", field="end_date")
    return start, end


class ReconciliationService(ReconciliationServiceProtocol):
    """Read-side reporting plus provider invoice bookkeeping."""

    def __init__(self, repo: ReconciliationRepositoryProtocol, config: BillingConfig) -> None:
        """Initialize with the reporting repository and billing config."""
        self._repo = repo
        self._config = config

    async def get_billing_analytics(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> BillingAnalytics:
        """Aggregates for ``[start, end]``.

        Provider cost and fees come from the accrual and revenue entries, so
        they only count charges that actually moved money.
        """
        start, end = _window(start, end)
        totals = await self._repo.sum_by_type(db, start=start, end=end)
        return BillingAnalytics(
            total_provider_cost_micro=totals.get(TransactionType.PROVIDER_PAYABLE_ACCRUAL.value, 0),
            total_fees_micro=totals.get(TransactionType.FEE_REVENUE.value, 0),
            total_topups_micro=totals.get(TransactionType.TOPUP.value, 0),
            total_bonuses_micro=totals.get(TransactionType.BONUS.value, 0),
            total_signup_credits_micro=totals.get(TransactionType.SIGNUP_CREDIT.value, 0),
            total_admin_adjustments_micro=totals.get(TransactionType.ADMIN_ADJUST.value, 0),
            unique_users=await self._repo.count_distinct_users(db, start=start, end=end),
            total_usage_calls=await self._repo.count_usage(db, start=start, end=end),
            failed_insufficient_funds=await self._repo.count_usage(
                db, start=start, end=end, status=UsageStatus.FAILED.value
            ),
        )

    async def get_reconciliation_data(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> ReconciliationReport:
        """Recorded provider cost against invoices for ``[start, end]``.

        The window reconciles when the absolute variance is strictly below
        the configured tolerance.
        """
        start, end = _window(start, end)
        recorded_micro = await self._repo.sum_accruals(db, start=start, end=end, provider=provider)
        invoiced_cents, invoice_count = await self._repo.invoice_totals(
            db, start=start, end=end, provider=provider
        )
        recorded_cents = micro_to_cents_rounded(recorded_micro)
        variance = abs(recorded_cents - invoiced_cents)
        return ReconciliationReport(
            recorded_cost_cents=recorded_cents,
            invoiced_cents=invoiced_cents,
            variance_cents=variance,
            reconciled=variance < self._config.reconciliation_tolerance_cents,
            invoice_count=invoice_count,
        )

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
        if not provider or not provider.strip():
            raise BillingValidationError("provider is required", field="provider")
        amount_cents = validate_amount_cents(amount_cents, self._config, "amount_cents")
        invoice = await self._repo.create_invoice(
            db,
            obj_in=ProviderInvoiceCreate(
                provider=provider.strip(),
                invoice_date=to_naive_utc(invoice_date),
                amount_cents=amount_cents,
                invoice_metadata=metadata or {},
            ),
        )
        logger.with_context(provider=provider).info(
            f"Recorded provider invoice {invoice.id} for {amount_cents} cents"
        )
        return invoice.id

    async def mark_invoices_reconciled(
        self, db: AsyncSession, *, start: datetime, end: datetime, provider: Optional[str] = None
    ) -> int:
        """Flag the window's invoices when the window reconciles.

        Returns:
            Number of invoices flagged; 0 when the window does not reconcile
        """
        report = await self.get_reconciliation_data(db, start=start, end=end, provider=provider)
        if not report.reconciled:
            logger.with_context(provider=provider).warning(
                f"Window does not reconcile: variance={report.variance_cents} cents"
            )
            return 0
        start, end = _window(start, end)
        return await self._repo.mark_invoices_reconciled(
            db, start=start, end=end, provider=provider
        )

    async def get_users_with_low_balances(
        self, db: AsyncSession, *, threshold_micro: Optional[int] = None, limit: int = 100
    ) -> list[LowBalanceEntry]:
        """Users whose balance is under the threshold, lowest first."""
        threshold = (
            self._config.low_balance_threshold_micro if threshold_micro is None else threshold_micro
        )
        rows = await self._repo.list_low_balances(db, threshold_micro=threshold, limit=limit)
        return [
            LowBalanceEntry(
                user_id=user.id,
                external_id=user.external_id,
                email=user.email,
                balance_micro=balance_micro,
                last_topup_at=last_topup_at,
            )
            for user, balance_micro, last_topup_at in rows
        ]
