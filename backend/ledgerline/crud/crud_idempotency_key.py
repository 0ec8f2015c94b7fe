"""CRUD operations for the IdempotencyKey model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.crud._base import CRUDBase
from ledgerline.models.idempotency_key import IdempotencyKey
from ledgerline.schemas.idempotency_key import IdempotencyKeyCreate


class CRUDIdempotencyKey(CRUDBase[IdempotencyKey, IdempotencyKeyCreate]):
    """CRUD operations for the IdempotencyKey model."""

    async def get_by_key(self, db: AsyncSession, *, key: str) -> Optional[IdempotencyKey]:
        """Look up a recorded key."""
        result = await db.execute(select(self.model).where(self.model.key == key))
        return result.scalar_one_or_none()

    async def delete_older_than(self, db: AsyncSession, *, cutoff: datetime) -> int:
        """Delete keys created before ``cutoff`` and commit.

        Returns:
            Number of rows removed
        """
        result = await db.execute(delete(self.model).where(self.model.created_at < cutoff))
        await db.commit()
        return result.rowcount or 0


idempotency_key = CRUDIdempotencyKey(IdempotencyKey)
