"""Price history storage: time ranges and the one-open-row index."""

from datetime import datetime, timedelta

import pytest

from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.pricing.catalog import CLOSE_RESOLUTION
from ledgerline.domains.pricing.exceptions import (
    PriceVersionConflictError,
    PricingNotConfiguredError,
)
from ledgerline.domains.pricing.repository import ModelTokenPriceRepository
from ledgerline.schemas.pricing import ModelTokenPriceCreate

JAN = datetime(2026, 1, 1)
FEB = datetime(2026, 2, 1)


class TestPriceHistory:
    @pytest.mark.asyncio
    async def test_new_price_closes_previous_row(self, services, session):
        pricing = services["pricing"]
        await pricing.set_price(
            session,
            model_id="gpt-x",
            input_price_micro=2_000,
            output_price_micro=6_000,
            admin_id="ops",
            effective_from=JAN,
        )
        await pricing.set_price(
            session,
            model_id="gpt-x",
            input_price_micro=1_500,
            output_price_micro=5_000,
            admin_id="ops",
            effective_from=FEB,
        )

        newest, oldest = await pricing.get_price_history(session, "gpt-x")
        assert newest.effective_to is None
        assert oldest.effective_to == FEB - CLOSE_RESOLUTION

        before = await pricing.get_active_price(session, "gpt-x", at=FEB - CLOSE_RESOLUTION)
        after = await pricing.get_active_price(session, "gpt-x", at=FEB)
        assert before.input_price_micro == 2_000
        assert after.input_price_micro == 1_500

    @pytest.mark.asyncio
    async def test_time_before_first_price_is_unpriced(self, services, session):
        pricing = services["pricing"]
        await pricing.set_blended_price(
            session, model_id="gpt-y", price_micro_per_token=100, admin_id="ops", effective_from=FEB
        )

        with pytest.raises(PricingNotConfiguredError):
            await pricing.get_active_price(session, "gpt-y", at=FEB - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_second_open_row_is_rejected(self, session):
        repo = ModelTokenPriceRepository()

        def _row(starts_at: datetime) -> ModelTokenPriceCreate:
            return ModelTokenPriceCreate(
                model_id="gpt-z",
                price_micro_cents_per_input_token=1,
                price_micro_cents_per_output_token=1,
                effective_from=starts_at,
                admin_id="ops",
            )

        async with UnitOfWork(session) as uow:
            await repo.create(session, obj_in=_row(JAN), uow=uow)
            await uow.commit()

        with pytest.raises(PriceVersionConflictError):
            async with UnitOfWork(session) as uow:
                await repo.create(session, obj_in=_row(FEB), uow=uow)
                await uow.commit()

        assert len(await repo.get_history(session, model_id="gpt-z")) == 1
