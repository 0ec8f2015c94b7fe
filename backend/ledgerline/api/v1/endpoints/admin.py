"""Operator endpoints.

Every route requires a valid ``X-Admin-Key``. Admin actions that change money
or prices record the operator from ``X-Admin-Id``.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import Depends, Query
from fastapi.routing import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline import schemas
from ledgerline.api import deps
from ledgerline.api.context import ApiContext
from ledgerline.api.deps import Inject
from ledgerline.api.v1.endpoints.users import balance_response
from ledgerline.domains.billing.protocols import AccountServiceProtocol, TopupProcessorProtocol
from ledgerline.domains.billing.types import ExternalId, InternalId
from ledgerline.domains.ledger.money import cents_to_micro
from ledgerline.domains.ledger.protocols import IdempotencyGuardProtocol
from ledgerline.domains.pricing.protocols import PricingCatalogProtocol
from ledgerline.domains.reconciliation.protocols import (
    BalanceAdjusterProtocol,
    ReconciliationServiceProtocol,
)

router = APIRouter(dependencies=[Depends(deps.require_admin)])


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------


@router.post("/prices", response_model=schemas.SetPriceResponse)
async def set_model_token_price(
    request: schemas.SetPriceRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    pricing: PricingCatalogProtocol = Inject(PricingCatalogProtocol),
) -> schemas.SetPriceResponse:
    """Schedule a new price for a model, closing the current one.

    Accepts either separate input/output prices or one blended price per token.
    """
    if request.price_micro_per_token is not None:
        price_id = await pricing.set_blended_price(
            db,
            model_id=request.model_id,
            price_micro_per_token=request.price_micro_per_token,
            admin_id=ctx.admin_id,
            provider=request.provider,
            effective_from=request.effective_from,
            reason=request.reason,
        )
    else:
        price_id = await pricing.set_price(
            db,
            model_id=request.model_id,
            input_price_micro=request.input_price_micro,
            output_price_micro=request.output_price_micro,
            admin_id=ctx.admin_id,
            provider=request.provider,
            effective_from=request.effective_from,
            reason=request.reason,
        )
    return schemas.SetPriceResponse(price_id=price_id)


@router.get("/prices/{model_id}", response_model=List[schemas.ModelTokenPrice])
async def get_price_history(
    model_id: str,
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(deps.get_db),
    pricing: PricingCatalogProtocol = Inject(PricingCatalogProtocol),
) -> List[schemas.ModelTokenPrice]:
    """Newest-first price rows for a model."""
    rows = await pricing.get_price_history(db, model_id, limit=limit)
    return [schemas.ModelTokenPrice.model_validate(row) for row in rows]


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


@router.post("/topups", response_model=schemas.TopupResponse)
async def apply_manual_topup(
    request: schemas.TopupRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    topups: TopupProcessorProtocol = Inject(TopupProcessorProtocol),
) -> schemas.TopupResponse:
    """Credit a payment received outside the Stripe webhook flow."""
    result = await topups.apply_topup(
        db,
        ExternalId(request.external_user_id),
        amount_micro=cents_to_micro(request.amount_cents),
        provider=request.provider,
        payment_reference=request.payment_reference,
        idempotency_key=request.idempotency_key,
    )
    ctx.logger.info(
        f"Manual topup {result.topup_id} for {request.external_user_id} "
        f"(replayed={result.replayed})"
    )
    return schemas.TopupResponse(
        topup_id=result.topup_id,
        amount_micro=result.amount_micro,
        bonus_micro=result.bonus_micro,
        new_balance_micro=result.new_balance_micro,
        replayed=result.replayed,
    )


@router.post("/adjustments", response_model=schemas.AdjustmentResponse)
async def apply_balance_adjustment(
    request: schemas.AdjustmentRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    adjustments: BalanceAdjusterProtocol = Inject(BalanceAdjusterProtocol),
) -> schemas.AdjustmentResponse:
    """Credit or debit a user outside the normal flows, with an audit reason."""
    result = await adjustments.apply_balance_adjustment(
        db,
        InternalId(request.user_id),
        amount_micro=request.amount_micro,
        reason=request.reason,
        admin_id=ctx.admin_id,
        idempotency_key=request.idempotency_key,
    )
    return schemas.AdjustmentResponse(
        transaction_id=result.transaction_id,
        new_balance_micro=result.new_balance_micro,
        replayed=result.replayed,
    )


@router.get("/users/{user_id}/balance", response_model=schemas.BalanceResponse)
async def get_user_balance(
    user_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> schemas.BalanceResponse:
    """Balance of any user by billing id."""
    return balance_response(await accounts.get_balance_view(db, InternalId(user_id)))


@router.get("/low-balances", response_model=List[schemas.LowBalanceUser])
async def get_users_with_low_balances(
    threshold_cents: Optional[int] = Query(None, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(deps.get_db),
    reconciliation: ReconciliationServiceProtocol = Inject(ReconciliationServiceProtocol),
) -> List[schemas.LowBalanceUser]:
    """Users below the alert threshold, lowest balance first."""
    threshold = cents_to_micro(threshold_cents) if threshold_cents is not None else None
    entries = await reconciliation.get_users_with_low_balances(
        db, threshold_micro=threshold, limit=limit
    )
    return [
        schemas.LowBalanceUser(
            user_id=e.user_id,
            external_id=e.external_id,
            email=e.email,
            balance_micro=e.balance_micro,
            last_topup_at=e.last_topup_at,
        )
        for e in entries
    ]


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


@router.get("/analytics", response_model=schemas.BillingAnalyticsResponse)
async def get_billing_analytics(
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: AsyncSession = Depends(deps.get_db),
    reconciliation: ReconciliationServiceProtocol = Inject(ReconciliationServiceProtocol),
) -> schemas.BillingAnalyticsResponse:
    """Journal and usage aggregates for ``[start_date, end_date]``."""
    analytics = await reconciliation.get_billing_analytics(db, start=start_date, end=end_date)
    return schemas.BillingAnalyticsResponse(
        total_provider_cost_micro=analytics.total_provider_cost_micro,
        total_fees_micro=analytics.total_fees_micro,
        total_topups_micro=analytics.total_topups_micro,
        total_bonuses_micro=analytics.total_bonuses_micro,
        total_signup_credits_micro=analytics.total_signup_credits_micro,
        total_admin_adjustments_micro=analytics.total_admin_adjustments_micro,
        unique_users=analytics.unique_users,
        total_usage_calls=analytics.total_usage_calls,
        failed_insufficient_funds=analytics.failed_insufficient_funds,
    )


@router.get("/reconciliation", response_model=schemas.ReconciliationResponse)
async def get_reconciliation_data(
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    provider: Optional[str] = Query(None),
    db: AsyncSession = Depends(deps.get_db),
    reconciliation: ReconciliationServiceProtocol = Inject(ReconciliationServiceProtocol),
) -> schemas.ReconciliationResponse:
    """Recorded provider cost against invoiced cost for a window."""
    report = await reconciliation.get_reconciliation_data(
        db, start=start_date, end=end_date, provider=provider
    )
    return schemas.ReconciliationResponse(
        recorded_cost_cents=report.recorded_cost_cents,
        invoiced_cents=report.invoiced_cents,
        variance_cents=report.variance_cents,
        reconciled=report.reconciled,
        invoice_count=report.invoice_count,
    )


@router.post("/invoices", response_model=schemas.ProviderInvoiceRecorded)
async def record_provider_invoice(
    request: schemas.ProviderInvoiceCreate,
    db: AsyncSession = Depends(deps.get_db),
    reconciliation: ReconciliationServiceProtocol = Inject(ReconciliationServiceProtocol),
) -> schemas.ProviderInvoiceRecorded:
    """Record what a model provider billed us."""
    invoice_id = await reconciliation.record_provider_invoice(
        db,
        provider=request.provider,
        invoice_date=request.invoice_date,
        amount_cents=request.amount_cents,
        metadata=request.invoice_metadata,
    )
    return schemas.ProviderInvoiceRecorded(invoice_id=invoice_id)


@router.post("/invoices/reconcile", response_model=schemas.ReconcileInvoicesResponse)
async def mark_invoices_reconciled(
    request: schemas.ReconcileInvoicesRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    reconciliation: ReconciliationServiceProtocol = Inject(ReconciliationServiceProtocol),
) -> schemas.ReconcileInvoicesResponse:
    """Mark a window's invoices reconciled if recorded cost is within tolerance."""
    marked = await reconciliation.mark_invoices_reconciled(
        db, start=request.start_date, end=request.end_date, provider=request.provider
    )
    ctx.logger.info(f"Marked {marked} invoice(s) reconciled")
    return schemas.ReconcileInvoicesResponse(marked=marked)


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------


@router.post("/idempotency/purge", response_model=schemas.PurgeResponse)
async def purge_expired_idempotency_keys(
    db: AsyncSession = Depends(deps.get_db),
    idempotency: IdempotencyGuardProtocol = Inject(IdempotencyGuardProtocol),
) -> schemas.PurgeResponse:
    """Delete idempotency keys older than the retention window."""
    return schemas.PurgeResponse(deleted=await idempotency.purge_expired(db))
