"""Pricing domain protocols."""

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.domains.pricing.types import ActivePrice
from ledgerline.models import ModelTokenPrice


@runtime_checkable
class PricingCatalogProtocol(Protocol):
    """Versioned, time-ranged per-model token prices."""

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
        """Close the active price and schedule a new one."""
        ...

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
        ...

    async def get_active_price(
        self, db: AsyncSession, model_id: str, at: Optional[datetime] = None
    ) -> ActivePrice:
        """Price covering ``at``; raises PricingNotConfiguredError if none."""
        ...

    async def get_current_price(self, db: AsyncSession, model_id: str) -> Optional[ActivePrice]:
        """Price covering now, or None."""
        ...

    async def get_price_history(
        self, db: AsyncSession, model_id: str, *, limit: int = 20
    ) -> list[ModelTokenPrice]:
        """Newest-first price rows."""
        ...
