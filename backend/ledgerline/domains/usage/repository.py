"""Usage log repository and protocol."""

from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline import crud
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.models import UsageLog
from ledgerline.schemas.usage import UsageLogCreate


class UsageLogRepositoryProtocol(Protocol):
    """Access to usage log rows."""

    async def get(self, db: AsyncSession, *, usage_log_id: UUID) -> Optional[UsageLog]:
        """Get a usage row by id."""
        ...

    async def create(
        self, db: AsyncSession, *, obj_in: UsageLogCreate, uow: UnitOfWork
    ) -> UsageLog:
        """Insert a usage row."""
        ...

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[UsageLog]:
        """Newest-first usage rows for a user."""
        ...


class UsageLogRepository(UsageLogRepositoryProtocol):
    """Delegates to the crud.usage_log singleton."""

    async def get(self, db: AsyncSession, *, usage_log_id: UUID) -> Optional[UsageLog]:
        """Get a usage row by id."""
        return await crud.usage_log.get(db, usage_log_id)

    async def create(
        self, db: AsyncSession, *, obj_in: UsageLogCreate, uow: UnitOfWork
    ) -> UsageLog:
        """Insert a usage row."""
        return await crud.usage_log.create(db, obj_in=obj_in, uow=uow)

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[UsageLog]:
        """Newest-first usage rows for a user."""
        return await crud.usage_log.list_for_user(db, user_id=user_id, limit=limit)
