"""Billing repositories and protocols."""

from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline import crud
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.models import BillingUser, Topup
from ledgerline.schemas.billing_user import BillingUserCreate
from ledgerline.schemas.topup import TopupCreate


class BillingUserRepositoryProtocol(Protocol):
    """Access to billing users."""

    async def get(self, db: AsyncSession, *, user_id: UUID) -> Optional[BillingUser]:
        """Get a user by billing id."""
        ...

    async def get_by_external_id(
        self, db: AsyncSession, *, external_id: str
    ) -> Optional[BillingUser]:
        """Get a user by external identity."""
        ...

    async def create(
        self, db: AsyncSession, *, obj_in: BillingUserCreate, uow: UnitOfWork
    ) -> BillingUser:
        """Insert a user. IntegrityError propagates for the caller to re-fetch."""
        ...

    async def claim_flag(self, db: AsyncSession, *, user_id: UUID, flag: str) -> bool:
        """Flip a one-way flag; False if it was already set."""
        ...


class TopupRepositoryProtocol(Protocol):
    """Access to applied topups."""

    async def get(self, db: AsyncSession, *, topup_id: UUID) -> Optional[Topup]:
        """Get a topup by id."""
        ...

    async def create(self, db: AsyncSession, *, obj_in: TopupCreate, uow: UnitOfWork) -> Topup:
        """Insert a topup row."""
        ...


class BillingUserRepository(BillingUserRepositoryProtocol):
    """Delegates to the crud.billing_user singleton."""

    async def get(self, db: AsyncSession, *, user_id: UUID) -> Optional[BillingUser]:
        """Get a user by billing id."""
        return await crud.billing_user.get(db, id=user_id)

    async def get_by_external_id(
        self, db: AsyncSession, *, external_id: str
    ) -> Optional[BillingUser]:
        """Get a user by external identity."""
        return await crud.billing_user.get_by_external_id(db, external_id=external_id)

    async def create(
        self, db: AsyncSession, *, obj_in: BillingUserCreate, uow: UnitOfWork
    ) -> BillingUser:
        """Insert a user."""
        return await crud.billing_user.create(db, obj_in=obj_in, uow=uow)

    async def claim_flag(self, db: AsyncSession, *, user_id: UUID, flag: str) -> bool:
        """Flip a one-way flag; False if it was already set."""
        return await crud.billing_user.claim_flag(db, user_id=user_id, flag=flag)


class TopupRepository(TopupRepositoryProtocol):
    """Delegates to the crud.topup singleton."""

    async def get(self, db: AsyncSession, *, topup_id: UUID) -> Optional[Topup]:
        """Get a topup by id."""
        return await crud.topup.get(db, topup_id)

    async def create(self, db: AsyncSession, *, obj_in: TopupCreate, uow: UnitOfWork) -> Topup:
        """Insert a topup row."""
        return await crud.topup.create(db, obj_in=obj_in, uow=uow)
