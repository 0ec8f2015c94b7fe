"""Admin balance adjustments.

Corrections are ordinary postings: a signed ``admin_adjust`` entry plus a
version-checked balance update, guarded by an idempotency key like every
other money movement. Adjustments may not take a balance below zero.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.logging import logger
from ledgerline.core.protocols.metrics import BillingMetrics
from ledgerline.core.shared_models import OperationType, TransactionType
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.billing.protocols import AccountServiceProtocol
from ledgerline.domains.billing.types import UserRef
from ledgerline.domains.billing.validation import (
    validate_adjustment_micro,
    validate_idempotency_key,
    validate_reason,
)
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.exceptions import IdempotencyKeyConflictError
from ledgerline.domains.ledger.protocols import (
    BalanceStoreProtocol,
    IdempotencyGuardProtocol,
    JournalProtocol,
)
from ledgerline.domains.ledger.retry import run_with_cas_retry
from ledgerline.domains.ledger.types import IdempotencyRecord, JournalEntry
from ledgerline.domains.reconciliation.protocols import BalanceAdjusterProtocol
from ledgerline.domains.reconciliation.types import AdjustmentResult


class BalanceAdjuster(BalanceAdjusterProtocol):
    """Admin balance corrections."""

    def __init__(
        self,
        accounts: AccountServiceProtocol,
        balance_store: BalanceStoreProtocol,
        journal: JournalProtocol,
        idempotency: IdempotencyGuardProtocol,
        config: BillingConfig,
        metrics: Optional[BillingMetrics] = None,
    ) -> None:
        """Initialize with all required dependencies."""
        self._accounts = accounts
        self._balance_store = balance_store
        self._journal = journal
        self._idempotency = idempotency
        self._config = config
        self._metrics = metrics

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
        """Credit or debit a user with an audited journal entry.

        Raises:
            BillingValidationError: Zero amount, empty reason or bad key
            BillingUserNotFoundError: Unknown user
            InsufficientFundsError: The debit would take the balance below zero
            ConcurrencyConflictError: Balance kept changing underneath us
        """
        amount_micro = validate_adjustment_micro(amount_micro, self._config)
        reason = validate_reason(reason)
        key = validate_idempotency_key(idempotency_key)
        op = OperationType.ADMIN_ADJUST.value

        check = await self._idempotency.begin_or_replay(db, key, op)
        if check.is_replay:
            return await self._replay(db, check.prior)

        billing_user = await self._accounts.resolve_user(db, user, create=False)
        user_id = billing_user.id

        async def _attempt() -> AdjustmentResult:
            return await self._adjust_once(
                db,
                user_id,
                amount_micro=amount_micro,
                reason=reason,
                admin_id=admin_id,
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

        logger.with_context(
            user_id=str(user_id), operation=op, admin_id=admin_id, idempotency_key=key
        ).info(f"Adjusted balance by {amount_micro} micro-cents: {reason}")
        return result

    async def _adjust_once(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        amount_micro: int,
        reason: str,
        admin_id: str,
        key: Optional[str],
    ) -> AdjustmentResult:
        async with UnitOfWork(db) as uow:
            snapshot = await self._balance_store.apply_delta(db, user_id, amount_micro)
            transaction_id = await self._journal.append(
                db,
                JournalEntry(
                    type=TransactionType.ADMIN_ADJUST,
                    amount_micro=amount_micro,
                    user_id=user_id,
                    idempotency_key=key,
                    metadata={"reason": reason, "admin_id": admin_id},
                ),
                uow=uow,
            )
            await self._idempotency.commit(
                db,
                key=key,
                operation_type=OperationType.ADMIN_ADJUST.value,
                user_id=user_id,
                result_reference=str(transaction_id),
                uow=uow,
            )
            await uow.commit()
        return AdjustmentResult(
            transaction_id=transaction_id, new_balance_micro=snapshot.balance_micro
        )

    async def _replay(self, db: AsyncSession, prior: IdempotencyRecord) -> AdjustmentResult:
        balance_micro = 0
        if prior.user_id is not None:
            balance_micro = (await self._balance_store.read(db, prior.user_id)).balance_micro
        return AdjustmentResult(
            transaction_id=UUID(prior.result_reference),
            new_balance_micro=balance_micro,
            replayed=True,
        )
