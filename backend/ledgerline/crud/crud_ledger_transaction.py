"""CRUD operations for the LedgerTransaction model.

No update or delete methods exist: the journal is append-only.
"""

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.shared_models import TransactionType
from ledgerline.crud._base import CRUDBase
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.models.ledger_transaction import LedgerTransaction
from ledgerline.schemas.ledger_transaction import LedgerTransactionCreate


class CRUDLedgerTransaction(CRUDBase[LedgerTransaction, LedgerTransactionCreate]):
    """CRUD operations for the LedgerTransaction model."""

    async def create_many(
        self,
        db: AsyncSession,
        *,
        objs_in: Sequence[LedgerTransactionCreate],
        uow: UnitOfWork,
    ) -> list[LedgerTransaction]:
        """Insert several entries in one flush, preserving order."""
        db_objs = [self.model(**obj_in.model_dump()) for obj_in in objs_in]
        db.add_all(db_objs)
        await db.flush()
        return db_objs

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first entries for a user."""
        query = (
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def sum_for_user(self, db: AsyncSession, *, user_id: UUID) -> int:
        """Sum of all entry amounts for a user."""
        query = select(func.coalesce(func.sum(self.model.amount_micro_cents), 0)).where(
            self.model.user_id == user_id
        )
        result = await db.execute(query)
        return int(result.scalar_one())

    async def sum_by_type(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> dict[str, int]:
        """Per-type amount totals inside ``[start, end]``."""
        query = (
            select(self.model.type, func.coalesce(func.sum(self.model.amount_micro_cents), 0))
            .where(and_(self.model.created_at >= start, self.model.created_at <= end))
            .group_by(self.model.type)
        )
        result = await db.execute(query)
        return {row[0]: int(row[1]) for row in result.all()}

    async def sum_accruals(
        self,
        db: AsyncSession,
        *,
        start: datetime,
        end: datetime,
        provider: Optional[str] = None,
    ) -> int:
        """Sum of provider payable accruals in the window, optionally per provider."""
        conditions = [
            self.model.type == TransactionType.PROVIDER_PAYABLE_ACCRUAL.value,
            self.model.created_at >= start,
            self.model.created_at <= end,
        ]
        if provider is not None:
            conditions.append(self.model.provider == provider)
        query = select(func.coalesce(func.sum(self.model.amount_micro_cents), 0)).where(
            and_(*conditions)
        )
        result = await db.execute(query)
        return int(result.scalar_one())

    async def count_distinct_users(
        self, db: AsyncSession, *, start: datetime, end: datetime
    ) -> int:
        """Distinct users with at least one entry in the window."""
        query = select(func.count(func.distinct(self.model.user_id))).where(
            and_(
                self.model.user_id.is_not(None),
                self.model.created_at >= start,
                self.model.created_at <= end,
            )
        )
        result = await db.execute(query)
        return int(result.scalar_one())


ledger_transaction = CRUDLedgerTransaction(LedgerTransaction)
