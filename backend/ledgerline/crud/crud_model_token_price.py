"""CRUD operations for the ModelTokenPrice model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.crud._base import CRUDBase
from ledgerline.models.model_token_price import ModelTokenPrice
from ledgerline.schemas.pricing import ModelTokenPriceCreate


class CRUDModelTokenPrice(CRUDBase[ModelTokenPrice, ModelTokenPriceCreate]):
    """CRUD operations for the ModelTokenPrice model."""

    async def get_active_at(
        self, db: AsyncSession, *, model_id: str, at: datetime
    ) -> Optional[ModelTokenPrice]:
        """Get the price row covering ``at`` for a model.

        Args:
            db: Database session
            model_id: Model identifier
            at: The timestamp to consider as "now"

        Returns:
            The row whose range contains ``at``, or None
        """
        query = (
            select(self.model)
            .where(
                and_(
                    self.model.model_id == model_id,
                    self.model.effective_from <= at,
                    or_(self.model.effective_to.is_(None), self.model.effective_to >= at),
                )
            )
            .order_by(self.model.effective_from.desc())
            .limit(1)
        )
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalars().first()

    async def get_open(self, db: AsyncSession, *, model_id: str) -> Optional[ModelTokenPrice]:
        """Get the row with no end date (the latest scheduled price)."""
        query = select(self.model).where(
            and_(self.model.model_id == model_id, self.model.effective_to.is_(None))
        )
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def close(self, db: AsyncSession, *, price_id: UUID, effective_to: datetime) -> bool:
        """Set ``effective_to`` on a still-open row.

        Returns:
            False if the row was already closed by someone else
        """
        stmt = (
            update(self.model)
            .where(and_(self.model.id == price_id, self.model.effective_to.is_(None)))
            .values(effective_to=effective_to)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def get_history(
        self, db: AsyncSession, *, model_id: str, limit: int = 20
    ) -> list[ModelTokenPrice]:
        """Newest-first price rows for a model."""
        query = (
            select(self.model)
            .where(self.model.model_id == model_id)
            .order_by(self.model.effective_from.desc())
            .limit(limit)
        )
        result = await db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())


model_token_price = CRUDModelTokenPrice(ModelTokenPrice)
