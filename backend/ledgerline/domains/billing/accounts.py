"""Billing accounts: identity resolution and the signup credit."""

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.logging import logger
from ledgerline.core.protocols.metrics import BillingMetrics
from ledgerline.core.shared_models import OperationType, TransactionType
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.billing.exceptions import BillingUserNotFoundError, BillingValidationError
from ledgerline.domains.billing.protocols import AccountServiceProtocol
from ledgerline.domains.billing.repository import BillingUserRepositoryProtocol
from ledgerline.domains.billing.types import (
    BalanceView,
    ExternalId,
    InternalId,
    SignupResult,
    UserRef,
    describe_ref,
)
from ledgerline.domains.billing.validation import validate_idempotency_key
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.exceptions import IdempotencyKeyConflictError
from ledgerline.domains.ledger.protocols import (
    BalanceStoreProtocol,
    IdempotencyGuardProtocol,
    JournalProtocol,
)
from ledgerline.domains.ledger.retry import run_with_cas_retry
from ledgerline.domains.ledger.types import IdempotencyRecord, JournalEntry
from ledgerline.models import BillingUser, LedgerTransaction
from ledgerline.schemas.billing_user import BillingUserCreate

SIGNUP_CREDIT_FLAG = "received_signup_credit"


class AccountService(AccountServiceProtocol):
    """Billing users, their signup credit and their balances."""

    def __init__(
        self,
        user_repo: BillingUserRepositoryProtocol,
        balance_store: BalanceStoreProtocol,
        journal: JournalProtocol,
        idempotency: IdempotencyGuardProtocol,
        config: BillingConfig,
        metrics: Optional[BillingMetrics] = None,
    ) -> None:
        """Initialize with all required dependencies."""
        self._user_repo = user_repo
        self._balance_store = balance_store
        self._journal = journal
        self._idempotency = idempotency
        self._config = config
        self._metrics = metrics

    async def resolve_user(
        self,
        db: AsyncSession,
        ref: UserRef,
        *,
        create: bool = True,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> BillingUser:
        """Find the billing user behind ``ref``.

        An unknown external id is registered when ``create`` is set. The insert
        commits in its own short unit of work; when two requests register the
        same identity at once, the loser re-reads the winner's row.

        Raises:
            BillingUserNotFoundError: Unknown internal id, or unknown external
                id with ``create=False``
        """
        if isinstance(ref, InternalId):
            user = await self._user_repo.get(db, user_id=ref.value)
            if user is None:
                raise BillingUserNotFoundError(f"Billing user {ref.value} not found")
            return user

        external_id = ref.value.strip() if isinstance(ref.value, str) else ""
        if not external_id:
            raise BillingValidationError("User identity is required", field="user")

        user = await self._user_repo.get_by_external_id(db, external_id=external_id)
        if user is not None:
            return user
        if not create:
            raise BillingUserNotFoundError(f"Billing user '{external_id}' not found")

        try:
            async with UnitOfWork(db) as uow:
                user = await self._user_repo.create(
                    db,
                    obj_in=BillingUserCreate(external_id=external_id, email=email, name=name),
                    uow=uow,
                )
                await uow.commit()
        except IntegrityError:
            user = await self._user_repo.get_by_external_id(db, external_id=external_id)
            if user is None:
                raise
            return user

        logger.with_context(user_id=str(user.id)).info(
            f"Registered billing user for {describe_ref(ref)}"
        )
        return user

    async def create_user_with_signup_credit(
        self,
        db: AsyncSession,
        identity: ExternalId,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> SignupResult:
        """Create the user if needed and grant the one-time signup credit.

        A user who already received the credit gets its current balance back
        with ``replayed=True`` and no new journal entry.
        """
        key = validate_idempotency_key(idempotency_key)
        op = OperationType.SIGNUP.value

        check = await self._idempotency.begin_or_replay(db, key, op)
        if check.is_replay:
            return await self._replay(db, check.prior)

        user = await self.resolve_user(db, identity, create=True, email=email, name=name)
        user_id = user.id
        if user.received_signup_credit:
            return await self._already_credited(db, user_id)

        async def _attempt() -> Optional[SignupResult]:
            return await self._grant_signup_credit(db, user_id, key)

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

        if result is None:
            return await self._already_credited(db, user_id)
        return result

    async def _grant_signup_credit(
        self, db: AsyncSession, user_id: UUID, key: Optional[str]
    ) -> Optional[SignupResult]:
        credit = self._config.signup_credit_micro
        async with UnitOfWork(db) as uow:
            claimed = await self._user_repo.claim_flag(db, user_id=user_id, flag=SIGNUP_CREDIT_FLAG)
            if not claimed:
                # Another request granted it first; leaving uncommitted rolls back
                return None

            snapshot = await self._balance_store.apply_delta(db, user_id, credit)
            await self._journal.append(
                db,
                JournalEntry(
                    type=TransactionType.SIGNUP_CREDIT,
                    amount_micro=credit,
                    user_id=user_id,
                    reference_id=str(user_id),
                    idempotency_key=key,
                ),
                uow=uow,
            )
            await self._idempotency.commit(
                db,
                key=key,
                operation_type=OperationType.SIGNUP.value,
                user_id=user_id,
                result_reference=str(user_id),
                uow=uow,
            )
            await uow.commit()

        logger.with_context(user_id=str(user_id), operation="signup").info(
            f"Granted signup credit of {credit} micro-cents"
        )
        return SignupResult(user_id=user_id, initial_balance_micro=snapshot.balance_micro)

    async def _already_credited(self, db: AsyncSession, user_id: UUID) -> SignupResult:
        snapshot = await self._balance_store.read(db, user_id)
        return SignupResult(
            user_id=user_id, initial_balance_micro=snapshot.balance_micro, replayed=True
        )

    async def _replay(self, db: AsyncSession, prior: IdempotencyRecord) -> SignupResult:
        user_id = prior.user_id or UUID(prior.result_reference)
        return await self._already_credited(db, user_id)

    async def get_balance_view(self, db: AsyncSession, ref: UserRef) -> BalanceView:
        """Balance, version and credit flags.

        Raises:
            BillingUserNotFoundError: The user has never been seen
        """
        user = await self.resolve_user(db, ref, create=False)
        snapshot = await self._balance_store.read(db, user.id)
        return BalanceView(
            user_id=user.id,
            external_id=user.external_id,
            balance_micro=snapshot.balance_micro,
            reserved_micro=snapshot.reserved_micro,
            version=snapshot.version,
            received_signup_credit=user.received_signup_credit,
            first_paid_topup_applied=user.first_paid_topup_applied,
            email=user.email,
        )

    async def list_transactions(
        self, db: AsyncSession, ref: UserRef, *, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first journal entries; empty for an unknown user."""
        try:
            user = await self.resolve_user(db, ref, create=False)
        except BillingUserNotFoundError:
            return []
        return await self._journal.list_for_user(db, user.id, limit=limit)
