"""Ledger repositories and protocols.

Repositories never commit; they flush inside the caller's unit of work.
Unique-constraint violations are translated into domain conflicts here so
the services above never see driver exceptions.
"""

from datetime import datetime
from typing import Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline import crud
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.ledger.exceptions import (
    BalanceVersionConflictError,
    IdempotencyKeyConflictError,
)
from ledgerline.models import Balance, IdempotencyKey, LedgerTransaction
from ledgerline.schemas.idempotency_key import IdempotencyKeyCreate
from ledgerline.schemas.ledger_transaction import LedgerTransactionCreate


class BalanceRepositoryProtocol(Protocol):
    """Row-level access to balances."""

    async def get(self, db: AsyncSession, *, user_id: UUID) -> Optional[Balance]:
        """Read the balance row, or None if never written."""
        ...

    async def insert_initial(
        self, db: AsyncSession, *, user_id: UUID, balance_micro_cents: int, now: datetime
    ) -> Balance:
        """Insert the first row at version 1.

        Raises BalanceVersionConflictError if another writer inserted first.
        """
        ...

    async def compare_and_swap(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        expected_version: int,
        new_balance_micro_cents: int,
        now: datetime,
    ) -> bool:
        """Write the new balance if the row is still at ``expected_version``."""
        ...


class TransactionRepositoryProtocol(Protocol):
    """Append-only access to the journal."""

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence[LedgerTransactionCreate], uow: UnitOfWork
    ) -> list[LedgerTransaction]:
        """Append entries in order."""
        ...

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first entries for a user."""
        ...

    async def sum_for_user(self, db: AsyncSession, *, user_id: UUID) -> int:
        """Sum of a user's entry amounts."""
        ...


class IdempotencyKeyRepositoryProtocol(Protocol):
    """Access to recorded idempotency keys."""

    async def get_by_key(self, db: AsyncSession, *, key: str) -> Optional[IdempotencyKey]:
        """Look up a recorded key."""
        ...

    async def create(
        self, db: AsyncSession, *, obj_in: IdempotencyKeyCreate, uow: UnitOfWork
    ) -> IdempotencyKey:
        """Record a key.

        Raises IdempotencyKeyConflictError if the key already exists.
        """
        ...

    async def delete_older_than(self, db: AsyncSession, *, cutoff: datetime) -> int:
        """Delete keys created before ``cutoff``."""
        ...


class BalanceRepository(BalanceRepositoryProtocol):
    """Delegates to the crud.balance singleton."""

    async def get(self, db: AsyncSession, *, user_id: UUID) -> Optional[Balance]:
        """Read the balance row, or None if never written."""
        return await crud.balance.get(db, user_id=user_id)

    async def insert_initial(
        self, db: AsyncSession, *, user_id: UUID, balance_micro_cents: int, now: datetime
    ) -> Balance:
        """Insert the first row at version 1."""
        try:
            return await crud.balance.insert_initial(
                db, user_id=user_id, balance_micro_cents=balance_micro_cents, now=now
            )
        except IntegrityError as e:
            raise BalanceVersionConflictError("Balance row was created concurrently") from e

    async def compare_and_swap(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        expected_version: int,
        new_balance_micro_cents: int,
        now: datetime,
    ) -> bool:
        """Write the new balance if the row is still at ``expected_version``."""
        return await crud.balance.compare_and_swap(
            db,
            user_id=user_id,
            expected_version=expected_version,
            new_balance_micro_cents=new_balance_micro_cents,
            now=now,
        )


class TransactionRepository(TransactionRepositoryProtocol):
    """Delegates to the crud.ledger_transaction singleton."""

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence[LedgerTransactionCreate], uow: UnitOfWork
    ) -> list[LedgerTransaction]:
        """Append entries in order."""
        return await crud.ledger_transaction.create_many(db, objs_in=objs_in, uow=uow)

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first entries for a user."""
        return await crud.ledger_transaction.list_for_user(db, user_id=user_id, limit=limit)

    async def sum_for_user(self, db: AsyncSession, *, user_id: UUID) -> int:
        """Sum of a user's entry amounts."""
        return await crud.ledger_transaction.sum_for_user(db, user_id=user_id)


class IdempotencyKeyRepository(IdempotencyKeyRepositoryProtocol):
    """Delegates to the crud.idempotency_key singleton."""

    async def get_by_key(self, db: AsyncSession, *, key: str) -> Optional[IdempotencyKey]:
        """Look up a recorded key."""
        return await crud.idempotency_key.get_by_key(db, key=key)

    async def create(
        self, db: AsyncSession, *, obj_in: IdempotencyKeyCreate, uow: UnitOfWork
    ) -> IdempotencyKey:
        """Record a key, translating the unique violation."""
        try:
            return await crud.idempotency_key.create(db, obj_in=obj_in, uow=uow)
        except IntegrityError as e:
            raise IdempotencyKeyConflictError(obj_in.key) from e

    async def delete_older_than(self, db: AsyncSession, *, cutoff: datetime) -> int:
        """Delete keys created before ``cutoff``."""
        return await crud.idempotency_key.delete_older_than(db, cutoff=cutoff)
