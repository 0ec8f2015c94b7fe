"""CRUD operations for the BillingUser model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.crud._base import CRUDBase
from ledgerline.models.billing_user import BillingUser
from ledgerline.schemas.billing_user import BillingUserCreate


class CRUDBillingUser(CRUDBase[BillingUser, BillingUserCreate]):
    """CRUD operations for the BillingUser model."""

    async def get(self, db: AsyncSession, id: UUID) -> Optional[BillingUser]:
        """Get a billing user by id, always reloading the credit flags."""
        query = select(self.model).where(self.model.id == id)
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_by_external_id(
        self, db: AsyncSession, *, external_id: str
    ) -> Optional[BillingUser]:
        """Get a billing user by external identity."""
        query = select(self.model).where(self.model.external_id == external_id)
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def claim_flag(self, db: AsyncSession, *, user_id: UUID, flag: str) -> bool:
        """Flip a one-way boolean flag from False to True.

        The update is conditional on the flag still being False, so exactly
        one concurrent caller can claim it.

        Args:
            db: Database session
            user_id: Billing user id
            flag: Column name, ``received_signup_credit`` or ``first_paid_topup_applied``

        Returns:
            True if this call flipped the flag
        """
        column = getattr(self.model, flag)
        stmt = (
            update(self.model)
            .where(self.model.id == user_id, column.is_(False))
            .values({flag: True, "modified_at": utc_now_naive()})
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1


billing_user = CRUDBillingUser(BillingUser)
