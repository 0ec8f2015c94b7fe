"""Usage charge processor.

Turns a completed model call into money movement. The price is looked up
before any balance access; the balance check and the debit then run in one
unit of work, re-run from the top when the balance version moves. A denied
call is not an error: it is recorded as a ``failed`` usage row and reported
with ``charged=False``.

A successful charge posts three entries that net to zero against the user
debit: the debit itself, the provider payable accrual and the fee revenue.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.exceptions import NotFoundException
from ledgerline.core.logging import logger
from ledgerline.core.protocols.metrics import BillingMetrics
from ledgerline.core.shared_models import OperationType, TransactionType, UsageStatus
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.billing.exceptions import (
    BillingUserNotFoundError,
    ReplayTargetMissingError,
)
from ledgerline.domains.billing.protocols import AccountServiceProtocol
from ledgerline.domains.billing.types import UserRef
from ledgerline.domains.billing.validation import (
    validate_idempotency_key,
    validate_model_id,
    validate_token_count,
)
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.exceptions import (
    BalanceVersionConflictError,
    IdempotencyKeyConflictError,
    InsufficientFundsError,
)
from ledgerline.domains.ledger.money import bps_of
from ledgerline.domains.ledger.protocols import (
    BalanceStoreProtocol,
    IdempotencyGuardProtocol,
    JournalProtocol,
)
from ledgerline.domains.ledger.retry import run_with_cas_retry
from ledgerline.domains.ledger.types import IdempotencyRecord, JournalEntry
from ledgerline.domains.pricing.protocols import PricingCatalogProtocol
from ledgerline.domains.pricing.types import ActivePrice
from ledgerline.domains.usage.protocols import UsageChargeProcessorProtocol
from ledgerline.domains.usage.repository import UsageLogRepositoryProtocol
from ledgerline.domains.usage.types import BalanceCheck, ChargeBreakdown, UsageChargeResult
from ledgerline.models import UsageLog
from ledgerline.schemas.usage import UsageLogCreate


class UsageChargeProcessor(UsageChargeProcessorProtocol):
    """Charges users for metered model calls."""

    def __init__(
        self,
        accounts: AccountServiceProtocol,
        pricing: PricingCatalogProtocol,
        usage_repo: UsageLogRepositoryProtocol,
        balance_store: BalanceStoreProtocol,
        journal: JournalProtocol,
        idempotency: IdempotencyGuardProtocol,
        config: BillingConfig,
        metrics: Optional[BillingMetrics] = None,
    ) -> None:
        """Initialize with all required dependencies."""
        self._accounts = accounts
        self._pricing = pricing
        self._usage_repo = usage_repo
        self._balance_store = balance_store
        self._journal = journal
        self._idempotency = idempotency
        self._config = config
        self._metrics = metrics

    def price_call(
        self, price: ActivePrice, input_tokens: int, output_tokens: int
    ) -> ChargeBreakdown:
        """Provider cost at ``price`` plus the platform fee."""
        cost = price.cost_for(input_tokens, output_tokens)
        fee = bps_of(cost, self._config.fee_bps)
        return ChargeBreakdown(provider_cost_micro=cost, fee_micro=fee)

    async def finalize_usage_charge(
        self,
        db: AsyncSession,
        user: UserRef,
        *,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        provider_call_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> UsageChargeResult:
        """Price a completed call and debit the user, or record a denial.

        Args:
            db: Database session
            user: The user who made the call
            model_id: Model that served the call
            input_tokens: Prompt tokens
            output_tokens: Completion tokens
            provider_call_id: Provider-side request id, kept for audit
            idempotency_key: Optional deduplication key

        Returns:
            UsageChargeResult; ``charged`` is False on insufficient funds

        Raises:
            BillingValidationError: Bad model id, token count or key
            BillingUserNotFoundError: Unknown user
            PricingNotConfiguredError: No price covers now for ``model_id``
            ConcurrencyConflictError: Balance kept changing underneath us
        """
        model_id = validate_model_id(model_id)
        input_tokens = validate_token_count(input_tokens, self._config, "input_tokens")
        output_tokens = validate_token_count(output_tokens, self._config, "output_tokens")
        key = validate_idempotency_key(idempotency_key)
        op = OperationType.USAGE_CHARGE.value

        check = await self._idempotency.begin_or_replay(db, key, op)
        if check.is_replay:
            return await self._replay(db, check.prior)

        billing_user = await self._accounts.resolve_user(db, user, create=False)
        user_id = billing_user.id
        price = await self._pricing.get_active_price(db, model_id)
        breakdown = self.price_call(price, input_tokens, output_tokens)

        async def _attempt() -> UsageChargeResult:
            return await self._charge_once(
                db,
                user_id,
                price=price,
                breakdown=breakdown,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                provider_call_id=provider_call_id,
                key=key,
            )

        try:
            result = await run_with_cas_retry(
                _attempt,
                operation_name=op,
                max_attempts=self._config.cas_max_attempts,
                max_wait_seconds=self._config.cas_retry_max_wait_seconds,
                metrics=self._metrics,
            )
        except IdempotencyKeyConflictError:
            check = await self._idempotency.begin_or_replay(db, key, op)
            if check.is_replay:
                return await self._replay(db, check.prior)
            raise

        outcome = UsageStatus.CHARGED if result.charged else UsageStatus.FAILED
        if self._metrics:
            self._metrics.inc_usage_charge(outcome.value)
            if result.charged:
                self._metrics.add_charged_micro_cents(result.total_micro)

        log = logger.with_context(
            user_id=str(user_id), operation=op, model_id=model_id, idempotency_key=key
        )
        if result.charged:
            log.info(
                f"billing.usage_charged: cost={result.provider_cost_micro} "
                f"fee={result.fee_micro} balance={result.balance_micro}"
            )
        else:
            log.warning(
                f"billing.insufficient_funds: total={result.total_micro} "
                f"balance={result.balance_micro}"
            )
        return result

    async def _charge_once(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        price: ActivePrice,
        breakdown: ChargeBreakdown,
        input_tokens: int,
        output_tokens: int,
        provider_call_id: Optional[str],
        key: Optional[str],
    ) -> UsageChargeResult:
        total = breakdown.total_micro

        async with UnitOfWork(db) as uow:
            snapshot = await self._balance_store.read(db, user_id)

            if snapshot.balance_micro < total:
                usage = await self._record_usage(
                    db,
                    uow,
                    user_id,
                    price=price,
                    breakdown=breakdown,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    provider_call_id=provider_call_id,
                    key=key,
                    status=UsageStatus.FAILED,
                )
                await uow.commit()
                return UsageChargeResult(
                    charged=False,
                    provider_cost_micro=breakdown.provider_cost_micro,
                    fee_micro=breakdown.fee_micro,
                    total_micro=total,
                    balance_micro=snapshot.balance_micro,
                    usage_log_id=usage.id,
                )

            try:
                after = await self._balance_store.apply_delta(
                    db, user_id, -total, expected_version=snapshot.version, debit_only=True
                )
            except InsufficientFundsError as e:
                # Drained between read and write; the next attempt records the denial
                raise BalanceVersionConflictError("Balance was drained concurrently") from e

            charge_id, _, _ = await self._journal.post(
                db,
                [
                    JournalEntry(
                        type=TransactionType.MODEL_CHARGE,
                        amount_micro=-total,
                        user_id=user_id,
                        provider_cost_micro=-breakdown.provider_cost_micro,
                        fee_micro=-breakdown.fee_micro,
                        reference_id=provider_call_id,
                        idempotency_key=key,
                        provider=price.provider,
                        metadata={
                            "model_id": price.model_id,
                            "input_tokens": input_tokens,
                            "output_tokens": output_tokens,
                            "price_id": str(price.price_id),
                        },
                    ),
                    JournalEntry(
                        type=TransactionType.PROVIDER_PAYABLE_ACCRUAL,
                        amount_micro=breakdown.provider_cost_micro,
                        reference_id=provider_call_id,
                        provider=price.provider,
                        metadata={"model_id": price.model_id},
                    ),
                    JournalEntry(
                        type=TransactionType.FEE_REVENUE,
                        amount_micro=breakdown.fee_micro,
                        reference_id=provider_call_id,
                        metadata={"model_id": price.model_id},
                    ),
                ],
                uow=uow,
            )

            usage = await self._record_usage(
                db,
                uow,
                user_id,
                price=price,
                breakdown=breakdown,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                provider_call_id=provider_call_id,
                key=key,
                status=UsageStatus.CHARGED,
                charge_transaction_id=charge_id,
            )
            await uow.commit()

        return UsageChargeResult(
            charged=True,
            provider_cost_micro=breakdown.provider_cost_micro,
            fee_micro=breakdown.fee_micro,
            total_micro=total,
            balance_micro=after.balance_micro,
            usage_log_id=usage.id,
        )

    async def _record_usage(
        self,
        db: AsyncSession,
        uow: UnitOfWork,
        user_id: UUID,
        *,
        price: ActivePrice,
        breakdown: ChargeBreakdown,
        input_tokens: int,
        output_tokens: int,
        provider_call_id: Optional[str],
        key: Optional[str],
        status: UsageStatus,
        charge_transaction_id: Optional[UUID] = None,
    ) -> UsageLog:
        usage = await self._usage_repo.create(
            db,
            obj_in=UsageLogCreate(
                user_id=user_id,
                model_id=price.model_id,
                provider_call_id=provider_call_id,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                price_micro_cents_per_input_token=price.input_price_micro,
                price_micro_cents_per_output_token=price.output_price_micro,
                provider_cost_micro_cents=breakdown.provider_cost_micro,
                fee_micro_cents=breakdown.fee_micro,
                total_charge_micro_cents=breakdown.total_micro,
                charge_transaction_id=charge_transaction_id,
                idempotency_key=key,
                status=status.value,
            ),
            uow=uow,
        )
        await self._idempotency.commit(
            db,
            key=key,
            operation_type=OperationType.USAGE_CHARGE.value,
            user_id=user_id,
            result_reference=str(usage.id),
            uow=uow,
        )
        return usage

    async def _replay(self, db: AsyncSession, prior: IdempotencyRecord) -> UsageChargeResult:
        usage = await self._usage_repo.get(db, usage_log_id=UUID(prior.result_reference))
        if usage is None:
            raise ReplayTargetMissingError(prior.key, prior.result_reference)
        snapshot = await self._balance_store.read(db, usage.user_id)
        return UsageChargeResult(
            charged=usage.status == UsageStatus.CHARGED.value,
            provider_cost_micro=usage.provider_cost_micro_cents,
            fee_micro=usage.fee_micro_cents,
            total_micro=usage.total_charge_micro_cents,
            balance_micro=snapshot.balance_micro,
            usage_log_id=usage.id,
            replayed=True,
        )

    async def check_sufficient_balance(
        self,
        db: AsyncSession,
        user: UserRef,
        *,
        model_id: str,
        estimated_input_tokens: Optional[int] = None,
        estimated_output_tokens: Optional[int] = None,
    ) -> BalanceCheck:
        """Advisory pre-flight check. Never writes.

        An unknown user reports zeros and False.

        Raises:
            PricingNotConfiguredError: No price covers now for ``model_id``
        """
        est_in = (
            self._config.default_estimated_input_tokens
            if estimated_input_tokens is None
            else validate_token_count(
                estimated_input_tokens, self._config, "estimated_input_tokens"
            )
        )
        est_out = (
            self._config.default_estimated_output_tokens
            if estimated_output_tokens is None
            else validate_token_count(
                estimated_output_tokens, self._config, "estimated_output_tokens"
            )
        )

        try:
            billing_user = await self._accounts.resolve_user(db, user, create=False)
        except BillingUserNotFoundError:
            return BalanceCheck(
                has_sufficient_balance=False, estimated_cost_micro=0, current_balance_micro=0
            )
        snapshot = await self._balance_store.read(db, billing_user.id)

        price = await self._pricing.get_active_price(db, validate_model_id(model_id))

        estimate = self.price_call(price, est_in, est_out).total_micro
        return BalanceCheck(
            has_sufficient_balance=snapshot.balance_micro >= estimate,
            estimated_cost_micro=estimate,
            current_balance_micro=snapshot.balance_micro,
        )

    async def list_usage(
        self, db: AsyncSession, user: UserRef, *, limit: int = 50
    ) -> list[UsageLog]:
        """Newest-first usage rows; empty for an unknown user."""
        try:
            billing_user = await self._accounts.resolve_user(db, user, create=False)
        except NotFoundException:
            return []
        return await self._usage_repo.list_for_user(db, user_id=billing_user.id, limit=limit)
