"""API endpoints for the calling end user.

The caller is identified by ``X-User-Id``. Every route here delegates to a
domain service pulled from the container.
"""

from typing import List, Optional

from fastapi import Depends, Query
from fastapi.routing import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline import schemas
from ledgerline.api import deps
from ledgerline.api.context import ApiContext
from ledgerline.api.deps import Inject
from ledgerline.domains.billing.protocols import AccountServiceProtocol
from ledgerline.domains.billing.types import BalanceView, ExternalId
from ledgerline.domains.ledger.money import micro_to_cents_rounded
from ledgerline.domains.usage.protocols import UsageChargeProcessorProtocol

router = APIRouter()


def balance_response(view: BalanceView) -> schemas.BalanceResponse:
    """Shape a balance view for clients."""
    return schemas.BalanceResponse(
        user_id=view.user_id,
        balance_micro=view.balance_micro,
        balance_cents=micro_to_cents_rounded(view.balance_micro),
        reserved_micro=view.reserved_micro,
        version=view.version,
        received_signup_credit=view.received_signup_credit,
        first_paid_topup_applied=view.first_paid_topup_applied,
    )


@router.post("/me/signup", response_model=schemas.SignupResponse)
async def signup(
    request: schemas.SignupRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    user: ExternalId = Depends(deps.get_current_user),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> schemas.SignupResponse:
    """Register the caller and grant the one-time signup credit.

    Calling this again is harmless: the credit is granted once per user and
    the response reports ``replayed``.
    """
    result = await accounts.create_user_with_signup_credit(
        db,
        user,
        email=request.email,
        name=request.name,
        idempotency_key=request.idempotency_key,
    )
    ctx.logger.info(f"Signup handled for {user.value} (replayed={result.replayed})")
    return schemas.SignupResponse(
        user_id=result.user_id,
        initial_balance_micro=result.initial_balance_micro,
        replayed=result.replayed,
    )


@router.get("/me/balance", response_model=schemas.BalanceResponse)
async def get_balance(
    db: AsyncSession = Depends(deps.get_db),
    user: ExternalId = Depends(deps.get_current_user),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> schemas.BalanceResponse:
    """Current balance and credit flags for the caller."""
    return balance_response(await accounts.get_balance_view(db, user))


@router.get("/me/transactions", response_model=List[schemas.LedgerTransaction])
async def list_transactions(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(deps.get_db),
    user: ExternalId = Depends(deps.get_current_user),
    accounts: AccountServiceProtocol = Inject(AccountServiceProtocol),
) -> List[schemas.LedgerTransaction]:
    """Newest-first journal entries for the caller."""
    rows = await accounts.list_transactions(db, user, limit=limit)
    return [schemas.LedgerTransaction.model_validate(row) for row in rows]


@router.get("/me/usage", response_model=List[schemas.UsageLog])
async def list_usage(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(deps.get_db),
    user: ExternalId = Depends(deps.get_current_user),
    usage: UsageChargeProcessorProtocol = Inject(UsageChargeProcessorProtocol),
) -> List[schemas.UsageLog]:
    """Newest-first metered calls for the caller."""
    rows = await usage.list_usage(db, user, limit=limit)
    return [schemas.UsageLog.model_validate(row) for row in rows]


@router.get("/me/check-balance", response_model=schemas.BalanceCheckResponse)
async def check_balance(
    model_id: str = Query(..., min_length=1),
    estimated_input_tokens: Optional[int] = Query(None, ge=0),
    estimated_output_tokens: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(deps.get_db),
    user: ExternalId = Depends(deps.get_current_user),
    usage: UsageChargeProcessorProtocol = Inject(UsageChargeProcessorProtocol),
) -> schemas.BalanceCheckResponse:
    """Advisory check that the caller can afford a call. Never reserves funds."""
    check = await usage.check_sufficient_balance(
        db,
        user,
        model_id=model_id,
        estimated_input_tokens=estimated_input_tokens,
        estimated_output_tokens=estimated_output_tokens,
    )
    return schemas.BalanceCheckResponse(
        has_sufficient_balance=check.has_sufficient_balance,
        estimated_cost_micro=check.estimated_cost_micro,
        current_balance_micro=check.current_balance_micro,
    )


@router.post("/me/usage", response_model=schemas.UsageChargeResponse)
async def charge_usage(
    request: schemas.UsageChargeRequest,
    db: AsyncSession = Depends(deps.get_db),
    ctx: ApiContext = Depends(deps.get_context),
    user: ExternalId = Depends(deps.get_current_user),
    usage: UsageChargeProcessorProtocol = Inject(UsageChargeProcessorProtocol),
) -> schemas.UsageChargeResponse:
    """Charge the caller for a completed model call.

    An unaffordable call is still recorded and answered with ``charged=false``;
    it is not an HTTP error.
    """
    result = await usage.finalize_usage_charge(
        db,
        user,
        model_id=request.model_id,
        input_tokens=request.input_tokens,
        output_tokens=request.output_tokens,
        provider_call_id=request.provider_call_id,
        idempotency_key=request.idempotency_key,
    )
    if not result.charged:
        ctx.logger.info(f"Usage for {request.model_id} not charged: insufficient funds")
    return schemas.UsageChargeResponse(
        charged=result.charged,
        provider_cost_micro=result.provider_cost_micro,
        fee_micro=result.fee_micro,
        total_micro=result.total_micro,
        balance_micro=result.balance_micro,
        usage_log_id=result.usage_log_id,
        replayed=result.replayed,
    )
