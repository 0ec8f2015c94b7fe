"""Transaction journal.

Append-only. A posting is the full set of entries for one economic event
(for a usage charge: the user debit, the provider accrual and the fee
revenue) and is written in a single flush inside the caller's unit of work,
so it lands completely or not at all.
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.ledger.exceptions import EmptyPostingError
from ledgerline.domains.ledger.protocols import JournalProtocol
from ledgerline.domains.ledger.repository import TransactionRepositoryProtocol
from ledgerline.domains.ledger.types import JournalEntry
from ledgerline.models import LedgerTransaction
from ledgerline.schemas.ledger_transaction import LedgerTransactionCreate


def _to_create(entry: JournalEntry) -> LedgerTransactionCreate:
    return LedgerTransactionCreate(
        user_id=entry.user_id,
        type=entry.type.value,
        amount_micro_cents=entry.amount_micro,
        provider_cost_micro_cents=entry.provider_cost_micro,
        fee_micro_cents=entry.fee_micro,
        reference_id=entry.reference_id,
        idempotency_key=entry.idempotency_key,
        provider=entry.provider,
        entry_metadata=dict(entry.metadata) or None,
    )


class TransactionJournal(JournalProtocol):
    """Writes postings and answers per-user journal queries."""

    def __init__(self, transaction_repo: TransactionRepositoryProtocol) -> None:
        """Initialize with the transaction repository."""
        self._transaction_repo = transaction_repo

    async def post(
        self, db: AsyncSession, entries: Sequence[JournalEntry], *, uow: UnitOfWork
    ) -> list[UUID]:
        """Append all entries of one economic event.

        Returns:
            Created transaction ids, in the order given
        """
        if not entries:
            raise EmptyPostingError()
        created = await self._transaction_repo.create_many(
            db, objs_in=[_to_create(e) for e in entries], uow=uow
        )
        return [row.id for row in created]

    async def append(self, db: AsyncSession, entry: JournalEntry, *, uow: UnitOfWork) -> UUID:
        """Append a single-entry posting."""
        ids = await self.post(db, [entry], uow=uow)
        return ids[0]

    async def list_for_user(
        self, db: AsyncSession, user_id: UUID, *, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first entries for a user."""
        return await self._transaction_repo.list_for_user(db, user_id=user_id, limit=limit)

    async def sum_for_user(self, db: AsyncSession, user_id: UUID) -> int:
        """Sum of a user's entries; equals the balance when the ledger is consistent."""
        return await self._transaction_repo.sum_for_user(db, user_id=user_id)
