"""Ledger domain protocols."""

from datetime import datetime
from typing import Optional, Protocol, Sequence, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.ledger.types import BalanceSnapshot, IdempotencyCheck, JournalEntry
from ledgerline.models import LedgerTransaction


@runtime_checkable
class BalanceStoreProtocol(Protocol):
    """Per-user balance with compare-and-swap writes."""

    async def read(self, db: AsyncSession, user_id: UUID) -> BalanceSnapshot:
        """Current balance, or a zero snapshot at version 0."""
        ...

    async def apply_delta(
        self,
        db: AsyncSession,
        user_id: UUID,
        delta_micro: int,
        *,
        expected_version: Optional[int] = None,
        debit_only: bool = False,
    ) -> BalanceSnapshot:
        """Apply ``delta_micro`` if the balance is still at ``expected_version``."""
        ...


@runtime_checkable
class JournalProtocol(Protocol):
    """Append-only transaction journal."""

    async def post(
        self, db: AsyncSession, entries: Sequence[JournalEntry], *, uow: UnitOfWork
    ) -> list[UUID]:
        """Append all entries of one economic event."""
        ...

    async def append(self, db: AsyncSession, entry: JournalEntry, *, uow: UnitOfWork) -> UUID:
        """Append a single entry."""
        ...

    async def list_for_user(
        self, db: AsyncSession, user_id: UUID, *, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first entries for a user."""
        ...

    async def sum_for_user(self, db: AsyncSession, user_id: UUID) -> int:
        """Sum of a user's entries."""
        ...


@runtime_checkable
class IdempotencyGuardProtocol(Protocol):
    """At-most-once execution per idempotency key."""

    async def begin_or_replay(
        self, db: AsyncSession, key: Optional[str], operation_type: str
    ) -> IdempotencyCheck:
        """Return the prior result for ``key`` if one was recorded."""
        ...

    async def commit(
        self,
        db: AsyncSession,
        *,
        key: Optional[str],
        operation_type: str,
        user_id: Optional[UUID],
        result_reference: str,
        uow: UnitOfWork,
    ) -> None:
        """Record the key inside the operation's unit of work."""
        ...

    async def purge_expired(self, db: AsyncSession, *, now: Optional[datetime] = None) -> int:
        """Delete keys older than the retention window."""
        ...
