"""Topup processor.

Credits an external payment to a user balance. The first paid topup also
earns a bonus, capped, which is granted at most once per user: the
``first_paid_topup_applied`` flag is flipped with a conditional update in the
same unit of work as the credit, so two concurrent first topups cannot both
collect it.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.exceptions import NotFoundException
from ledgerline.core.logging import logger
from ledgerline.core.protocols.metrics import BillingMetrics
from ledgerline.core.shared_models import OperationType, TransactionType
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.billing.exceptions import (
    BillingUserNotFoundError,
    BillingValidationError,
    ReplayTargetMissingError,
)
from ledgerline.domains.billing.protocols import AccountServiceProtocol, TopupProcessorProtocol
from ledgerline.domains.billing.repository import (
    BillingUserRepositoryProtocol,
    TopupRepositoryProtocol,
)
from ledgerline.domains.billing.types import TopupResult, UserRef
from ledgerline.domains.billing.validation import validate_amount_micro, validate_idempotency_key
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.exceptions import (
    BalanceVersionConflictError,
    IdempotencyKeyConflictError,
)
from ledgerline.domains.ledger.money import percent_of
from ledgerline.domains.ledger.protocols import (
    BalanceStoreProtocol,
    IdempotencyGuardProtocol,
    JournalProtocol,
)
from ledgerline.domains.ledger.retry import run_with_cas_retry
from ledgerline.domains.ledger.types import IdempotencyRecord, JournalEntry
from ledgerline.schemas.topup import TopupCreate

FIRST_TOPUP_FLAG = "first_paid_topup_applied"


class TopupProcessor(TopupProcessorProtocol):
    """Credits external payments to user balances."""

    def __init__(
        self,
        accounts: AccountServiceProtocol,
        user_repo: BillingUserRepositoryProtocol,
        topup_repo: TopupRepositoryProtocol,
        balance_store: BalanceStoreProtocol,
        journal: JournalProtocol,
        idempotency: IdempotencyGuardProtocol,
        config: BillingConfig,
        metrics: Optional[BillingMetrics] = None,
    ) -> None:
        """Initialize with all required dependencies."""
        self._accounts = accounts
        self._user_repo = user_repo
        self._topup_repo = topup_repo
        self._balance_store = balance_store
        self._journal = journal
        self._idempotency = idempotency
        self._config = config
        self._metrics = metrics

    def compute_bonus(self, amount_micro: int, first_topup_applied: bool) -> int:
        """Bonus earned by a topup of ``amount_micro``."""
        if amount_micro <= 0 or first_topup_applied:
            return 0
        bonus = percent_of(amount_micro, self._config.bonus_percent)
        return min(bonus, self._config.bonus_cap_micro)

    async def apply_topup(
        self,
        db: AsyncSession,
        user: UserRef,
        *,
        amount_micro: int,
        provider: str,
        payment_reference: str,
        idempotency_key: Optional[str] = None,
    ) -> TopupResult:
        """Credit a payment, plus the first-topup bonus when it applies.

        Args:
            db: Database session
            user: Internal or external user reference; unknown external ids
                are registered
            amount_micro: Amount received, in micro-cents
            provider: Payment provider label (``stripe``, ``manual``)
            payment_reference: Provider-side id of the payment
            idempotency_key: Optional deduplication key

        Returns:
            TopupResult; ``replayed`` is set when the key was already used

        Raises:
            BillingValidationError: Bad amount, reference or key
            ConcurrencyConflictError: Balance kept changing underneath us
        """
        amount_micro = validate_amount_micro(amount_micro, self._config)
        if not payment_reference or not payment_reference.strip():
            raise BillingValidationError("payment_reference is required", field="payment_reference")
        key = validate_idempotency_key(idempotency_key)
        op = OperationType.TOPUP.value

        check = await self._idempotency.begin_or_replay(db, key, op)
        if check.is_replay:
            return await self._replay(db, check.prior)

        billing_user = await self._accounts.resolve_user(db, user, create=True)
        user_id = billing_user.id

        async def _attempt() -> TopupResult:
            return await self._apply_once(
                db,
                user_id,
                amount_micro=amount_micro,
                provider=provider,
                payment_reference=payment_reference,
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

        if self._metrics:
            self._metrics.inc_topup()
        logger.with_context(
            user_id=str(user_id), operation=op, idempotency_key=key, provider=provider
        ).info(
            f"billing.topup_applied: amount={result.amount_micro} bonus={result.bonus_micro} "
            f"balance={result.new_balance_micro}"
        )
        return result

    async def _apply_once(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        amount_micro: int,
        provider: str,
        payment_reference: str,
        key: Optional[str],
    ) -> TopupResult:
        async with UnitOfWork(db) as uow:
            user = await self._user_repo.get(db, user_id=user_id)
            if user is None:
                raise BillingUserNotFoundError(f"Billing user {user_id} not found")

            bonus_micro = self.compute_bonus(amount_micro, user.first_paid_topup_applied)
            if bonus_micro > 0:
                claimed = await self._user_repo.claim_flag(
                    db, user_id=user_id, flag=FIRST_TOPUP_FLAG
                )
                if not claimed:
                    # A concurrent first topup got the bonus; re-run without it
                    raise BalanceVersionConflictError("First-topup bonus was claimed concurrently")

            snapshot = await self._balance_store.apply_delta(
                db, user_id, amount_micro + bonus_micro
            )

            topup = await self._topup_repo.create(
                db,
                obj_in=TopupCreate(
                    user_id=user_id,
                    amount_micro_cents=amount_micro,
                    bonus_micro_cents=bonus_micro,
                    payment_provider=provider,
                    payment_reference=payment_reference,
                    idempotency_key=key,
                ),
                uow=uow,
            )

            entries = [
                JournalEntry(
                    type=TransactionType.TOPUP,
                    amount_micro=amount_micro,
                    user_id=user_id,
                    reference_id=payment_reference,
                    idempotency_key=key,
                    metadata={"provider": provider, "topup_id": str(topup.id)},
                )
            ]
            if bonus_micro > 0:
                entries.append(
                    JournalEntry(
                        type=TransactionType.BONUS,
                        amount_micro=bonus_micro,
                        user_id=user_id,
                        reference_id=str(topup.id),
                        idempotency_key=key,
                        metadata={"reason": "first_topup"},
                    )
                )
            await self._journal.post(db, entries, uow=uow)

            await self._idempotency.commit(
                db,
                key=key,
                operation_type=OperationType.TOPUP.value,
                user_id=user_id,
                result_reference=str(topup.id),
                uow=uow,
            )
            await uow.commit()

        return TopupResult(
            topup_id=topup.id,
            amount_micro=amount_micro,
            bonus_micro=bonus_micro,
            new_balance_micro=snapshot.balance_micro,
        )

    async def get_topup_result(self, db: AsyncSession, topup_id: UUID) -> TopupResult:
        """Rebuild the result of an applied topup against the current balance."""
        topup = await self._topup_repo.get(db, topup_id=topup_id)
        if topup is None:
            raise NotFoundException(f"Topup {topup_id} not found")
        snapshot = await self._balance_store.read(db, topup.user_id)
        return TopupResult(
            topup_id=topup.id,
            amount_micro=topup.amount_micro_cents,
            bonus_micro=topup.bonus_micro_cents,
            new_balance_micro=snapshot.balance_micro,
            replayed=True,
        )

    async def _replay(self, db: AsyncSession, prior: IdempotencyRecord) -> TopupResult:
        try:
            return await self.get_topup_result(db, UUID(prior.result_reference))
        except NotFoundException as e:
            raise ReplayTargetMissingError(prior.key, prior.result_reference) from e
