"""Fake pricing repository for testing."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.domains.pricing.exceptions import PriceVersionConflictError
from ledgerline.models import ModelTokenPrice


class FakeModelTokenPriceRepository:
    """In-memory fake for ModelTokenPriceRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: list[ModelTokenPrice] = []
        self._calls: list[tuple] = []

    def seed(
        self,
        model_id: str,
        input_price: int,
        output_price: Optional[int] = None,
        effective_from: Optional[datetime] = None,
        effective_to: Optional[datetime] = None,
        provider: Optional[str] = None,
    ) -> ModelTokenPrice:
        """Populate store with test data."""
        row = ModelTokenPrice(
            id=uuid4(),
            model_id=model_id,
            provider=provider,
            price_micro_cents_per_input_token=input_price,
            price_micro_cents_per_output_token=(
                input_price if output_price is None else output_price
            ),
            effective_from=effective_from or datetime(2020, 1, 1),
            effective_to=effective_to,
            admin_id="seed",
            reason=None,
            created_at=utc_now_naive(),
        )
        self._store.append(row)
        return row

    def rows_for(self, model_id: str) -> list[ModelTokenPrice]:
        """All rows for a model, insertion order."""
        return [r for r in self._store if r.model_id == model_id]

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    async def get_active_at(
        self, db: AsyncSession, *, model_id: str, at: datetime
    ) -> Optional[ModelTokenPrice]:
        """Row whose range covers ``at``."""
        self._calls.append(("get_active_at", model_id, at))
        matches = [
            r
            for r in self._store
            if r.model_id == model_id
            and r.effective_from <= at
            and (r.effective_to is None or r.effective_to >= at)
        ]
        matches.sort(key=lambda r: r.effective_from, reverse=True)
        return matches[0] if matches else None

    async def get_open(self, db: AsyncSession, *, model_id: str) -> Optional[ModelTokenPrice]:
        """Row with no end date."""
        self._calls.append(("get_open", model_id))
        for r in self._store:
            if r.model_id == model_id and r.effective_to is None:
                return r
        return None

    async def close(self, db: AsyncSession, *, price_id: UUID, effective_to: datetime) -> bool:
        """End an open row."""
        self._calls.append(("close", price_id, effective_to))
        for r in self._store:
            if r.id == price_id and r.effective_to is None:
                r.effective_to = effective_to
                return True
        return False

    async def create(self, db: AsyncSession, *, obj_in: object, uow: object) -> ModelTokenPrice:
        """Insert a new open row, enforcing one open row per model."""
        self._calls.append(("create", obj_in, uow))
        if any(r.model_id == obj_in.model_id and r.effective_to is None for r in self._store):
            raise PriceVersionConflictError(obj_in.model_id)
        row = ModelTokenPrice(id=uuid4(), created_at=utc_now_naive(), **obj_in.model_dump())
        self._store.append(row)
        return row

    async def get_history(
        self, db: AsyncSession, *, model_id: str, limit: int = 20
    ) -> list[ModelTokenPrice]:
        """Newest-first rows."""
        self._calls.append(("get_history", model_id, limit))
        rows = sorted(self.rows_for(model_id), key=lambda r: r.effective_from, reverse=True)
        return rows[:limit]
