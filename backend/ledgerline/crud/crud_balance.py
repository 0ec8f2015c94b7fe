"""CRUD operations for the Balance model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.models.balance import Balance
from ledgerline.models.billing_user import BillingUser
from ledgerline.models.topup import Topup


class CRUDBalance:
    """Balance access. Mutations go through ``compare_and_swap`` only."""

    model = Balance

    async def get(self, db: AsyncSession, *, user_id: UUID) -> Optional[Balance]:
        """Read the balance row, bypassing any stale identity-map copy."""
        query = select(Balance).where(Balance.user_id == user_id)
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def insert_initial(
        self, db: AsyncSession, *, user_id: UUID, balance_micro_cents: int, now: datetime
    ) -> Balance:
        """Insert the first balance row at version 1.

        A concurrent first write surfaces as ``IntegrityError`` on flush.
        """
        db_obj = Balance(
            user_id=user_id,
            balance_micro_cents=balance_micro_cents,
            reserved_micro_cents=0,
            version=1,
            updated_at=now,
        )
        db.add(db_obj)
        await db.flush()
        return db_obj

    async def compare_and_swap(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        expected_version: int,
        new_balance_micro_cents: int,
        now: datetime,
    ) -> bool:
        """Write a new balance only if the row is still at ``expected_version``.

        Returns:
            True if exactly one row was updated
        """
        stmt = (
            update(Balance)
            .where(Balance.user_id == user_id, Balance.version == expected_version)
            .values(
                balance_micro_cents=new_balance_micro_cents,
                version=expected_version + 1,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def list_below(
        self, db: AsyncSession, *, threshold_micro_cents: int, limit: int
    ) -> list[tuple[BillingUser, int, Optional[datetime]]]:
        """Users whose balance is under ``threshold``, lowest first.

        Returns:
            (user, balance_micro_cents, last_topup_at) tuples
        """
        last_topup = (
            select(Topup.user_id, func.max(Topup.created_at).label("last_topup_at"))
            .group_by(Topup.user_id)
            .subquery()
        )
        query = (
            select(BillingUser, Balance.balance_micro_cents, last_topup.c.last_topup_at)
            .join(Balance, Balance.user_id == BillingUser.id)
            .outerjoin(last_topup, last_topup.c.user_id == BillingUser.id)
            .where(Balance.balance_micro_cents < threshold_micro_cents)
            .order_by(Balance.balance_micro_cents.asc())
            .limit(limit)
        )
        result = await db.execute(query)
        return [(row[0], row[1], row[2]) for row in result.all()]


balance = CRUDBalance()
