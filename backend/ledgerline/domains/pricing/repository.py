"""Pricing repository and protocol."""

from datetime import datetime
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline import crud
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.pricing.exceptions import PriceVersionConflictError
from ledgerline.models import ModelTokenPrice
from ledgerline.schemas.pricing import ModelTokenPriceCreate


class ModelTokenPriceRepositoryProtocol(Protocol):
    """Access to versioned price rows."""

    async def get_active_at(
        self, db: AsyncSession, *, model_id: str, at: datetime
    ) -> Optional[ModelTokenPrice]:
        """Row whose range covers ``at``."""
        ...

    async def get_open(self, db: AsyncSession, *, model_id: str) -> Optional[ModelTokenPrice]:
        """Row with no end date."""
        ...

    async def close(self, db: AsyncSession, *, price_id: UUID, effective_to: datetime) -> bool:
        """End an open row; False if it was already closed."""
        ...

    async def create(
        self, db: AsyncSession, *, obj_in: ModelTokenPriceCreate, uow: UnitOfWork
    ) -> ModelTokenPrice:
        """Insert a new open row."""
        ...

    async def get_history(
        self, db: AsyncSession, *, model_id: str, limit: int = 20
    ) -> list[ModelTokenPrice]:
        """Newest-first rows."""
        ...


class ModelTokenPriceRepository(ModelTokenPriceRepositoryProtocol):
    """Delegates to the crud.model_token_price singleton."""

    async def get_active_at(
        self, db: AsyncSession, *, model_id: str, at: datetime
    ) -> Optional[ModelTokenPrice]:
        """Row whose range covers ``at``."""
        return await crud.model_token_price.get_active_at(db, model_id=model_id, at=at)

    async def get_open(self, db: AsyncSession, *, model_id: str) -> Optional[ModelTokenPrice]:
        """Row with no end date."""
        return await crud.model_token_price.get_open(db, model_id=model_id)

    async def close(self, db: AsyncSession, *, price_id: UUID, effective_to: datetime) -> bool:
        """End an open row; False if it was already closed."""
        return await crud.model_token_price.close(db, price_id=price_id, effective_to=effective_to)

    async def create(
        self, db: AsyncSession, *, obj_in: ModelTokenPriceCreate, uow: UnitOfWork
    ) -> ModelTokenPrice:
        """Insert a new open row; the active-row unique index rejects a racing insert."""
        try:
            return await crud.model_token_price.create(db, obj_in=obj_in, uow=uow)
        except IntegrityError as e:
            raise PriceVersionConflictError(obj_in.model_id) from e

    async def get_history(
        self, db: AsyncSession, *, model_id: str, limit: int = 20
    ) -> list[ModelTokenPrice]:
        """Newest-first rows."""
        return await crud.model_token_price.get_history(db, model_id=model_id, limit=limit)
