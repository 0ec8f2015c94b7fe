"""Pricing catalog.

Prices are append-only history. Setting a new price closes the open row one
microsecond before the new row starts and inserts the new row in the same
unit of work, so a reader sees either the old price or the new one and never
two or none. The close is conditional on the row still being open and a
partial unique index allows one open row per model, so concurrent admins
cannot both win.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import to_naive_utc, utc_now_naive
from ledgerline.core.logging import logger
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.billing.validation import validate_model_id, validate_price_micro
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.pricing.exceptions import (
    InvalidPriceScheduleError,
    PriceVersionConflictError,
    PricingNotConfiguredError,
)
from ledgerline.domains.pricing.protocols import PricingCatalogProtocol
from ledgerline.domains.pricing.repository import ModelTokenPriceRepositoryProtocol
from ledgerline.domains.pricing.types import ActivePrice
from ledgerline.models import ModelTokenPrice
from ledgerline.schemas.pricing import ModelTokenPriceCreate

# Smallest step the DateTime columns can represent
CLOSE_RESOLUTION = timedelta(microseconds=1)


def _to_active(row: ModelTokenPrice) -> ActivePrice:
    return ActivePrice(
        price_id=row.id,
        model_id=row.model_id,
        input_price_micro=row.price_micro_cents_per_input_token,
        output_price_micro=row.price_micro_cents_per_output_token,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        provider=row.provider,
    )


class PricingCatalog(PricingCatalogProtocol):
    """Versioned, time-ranged per-model token prices."""

    def __init__(self, price_repo: ModelTokenPriceRepositoryProtocol, config: BillingConfig):
        """Initialize with the price repository and billing limits."""
        self._price_repo = price_repo
        self._config = config

    async def set_price(
        self,
        db: AsyncSession,
        *,
        model_id: str,
        input_price_micro: int,
        output_price_micro: int,
        admin_id: str,
        provider: Optional[str] = None,
        effective_from: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> UUID:
        """Close the active price for ``model_id`` and insert a new one.

        Args:
            db: Database session
            model_id: Model identifier
            input_price_micro: Micro-cents per input token
            output_price_micro: Micro-cents per output token
            admin_id: Who made the change
            provider: Optional provider scope, used by reconciliation
            effective_from: Start of the new price; defaults to now
            reason: Free-text audit note

        Returns:
            Id of the new price row

        Raises:
            BillingValidationError: Bad model id or price
            InvalidPriceScheduleError: New start is not after the current start
            PriceVersionConflictError: Another admin changed the price concurrently
        """
        validate_model_id(model_id)
        validate_price_micro(input_price_micro, self._config, "input_price_micro")
        validate_price_micro(output_price_micro, self._config, "output_price_micro")
        starts_at = to_naive_utc(effective_from) if effective_from else utc_now_naive()

        async with UnitOfWork(db) as uow:
            current = await self._price_repo.get_open(db, model_id=model_id)
            if current is not None:
                if starts_at <= current.effective_from:
                    raise InvalidPriceScheduleError(
                        f"New price for '{model_id}' must start after "
                        f"{current.effective_from.isoformat()}"
                    )
                closed = await self._price_repo.close(
                    db, price_id=current.id, effective_to=starts_at - CLOSE_RESOLUTION
                )
                if not closed:
                    raise PriceVersionConflictError(model_id)

            row = await self._price_repo.create(
                db,
                obj_in=ModelTokenPriceCreate(
                    model_id=model_id,
                    provider=provider,
                    price_micro_cents_per_input_token=input_price_micro,
                    price_micro_cents_per_output_token=output_price_micro,
                    effective_from=starts_at,
                    admin_id=admin_id,
                    reason=reason,
                ),
                uow=uow,
            )
            await uow.commit()

        logger.with_context(model_id=model_id, admin_id=admin_id).info(
            f"Price set: in={input_price_micro} out={output_price_micro} micro/token "
            f"from {starts_at.isoformat()}"
        )
        return row.id

    async def set_blended_price(
        self,
        db: AsyncSession,
        *,
        model_id: str,
        price_micro_per_token: int,
        admin_id: str,
        provider: Optional[str] = None,
        effective_from: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> UUID:
        """Schedule one price for both input and output tokens."""
        return await self.set_price(
            db,
            model_id=model_id,
            input_price_micro=price_micro_per_token,
            output_price_micro=price_micro_per_token,
            admin_id=admin_id,
            provider=provider,
            effective_from=effective_from,
            reason=reason,
        )

    async def get_active_price(
        self, db: AsyncSession, model_id: str, at: Optional[datetime] = None
    ) -> ActivePrice:
        """Price covering ``at`` (default now).

        Raises:
            PricingNotConfiguredError: No row covers ``at``
        """
        at = to_naive_utc(at) if at else utc_now_naive()
        row = await self._price_repo.get_active_at(db, model_id=model_id, at=at)
        if row is None:
            raise PricingNotConfiguredError(model_id, at)
        return _to_active(row)

    async def get_current_price(self, db: AsyncSession, model_id: str) -> Optional[ActivePrice]:
        """Price covering now, or None."""
        row = await self._price_repo.get_active_at(db, model_id=model_id, at=utc_now_naive())
        return _to_active(row) if row else None

    async def get_price_history(
        self, db: AsyncSession, model_id: str, *, limit: int = 20
    ) -> list[ModelTokenPrice]:
        """Newest-first price rows for a model."""
        return await self._price_repo.get_history(db, model_id=model_id, limit=limit)
