"""CRUD operations for the UsageLog model."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.crud._base import CRUDBase
from ledgerline.models.usage_log import UsageLog
from ledgerline.schemas.usage import UsageLogCreate


class CRUDUsageLog(CRUDBase[UsageLog, UsageLogCreate]):
    """CRUD operations for the UsageLog model."""

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[UsageLog]:
        """Newest-first usage rows for a user."""
        query = (
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc())
            .limit(limit)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def count_in_window(
        self,
        db: AsyncSession,
        *,
        start: datetime,
        end: datetime,
        status: Optional[str] = None,
    ) -> int:
        """Count usage rows in ``[start, end]``, optionally filtered by status."""
        conditions = [self.model.created_at >= start, self.model.created_at <= end]
        if status is not None:
            conditions.append(self.model.status == status)
        query = select(func.count(self.model.id)).where(and_(*conditions))
        result = await db.execute(query)
        return int(result.scalar_one())


usage_log = CRUDUsageLog(UsageLog)
