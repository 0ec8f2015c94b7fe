"""Signup, topup, pricing and charging end to end on a real database."""

from datetime import timedelta

import pytest

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.domains.billing.types import ExternalId

USER = ExternalId("auth0|flow")


@pytest.fixture
def window():
    now = utc_now_naive()
    return now - timedelta(hours=1), now + timedelta(hours=1)


async def _fund_and_price(services, db) -> None:
    await services["accounts"].create_user_with_signup_credit(db, USER, email="flow@example.com")
    await services["topups"].apply_topup(
        db,
        USER,
        amount_micro=2_500_000_000,
        provider="stripe",
        payment_reference="pi_flow",
        idempotency_key="stripe:pi:pi_flow",
    )
    await services["pricing"].set_price(
        db,
        model_id="gpt-x",
        input_price_micro=2_000,
        output_price_micro=6_000,
        admin_id="ops",
        provider="openai",
        effective_from=utc_now_naive() - timedelta(minutes=1),
    )


class TestBillingFlow:
    @pytest.mark.asyncio
    async def test_charge_after_signup_and_topup(self, services, session):
        await _fund_and_price(services, session)

        result = await services["usage"].finalize_usage_charge(
            session,
            USER,
            model_id="gpt-x",
            input_tokens=10_000,
            output_tokens=0,
            provider_call_id="call-1",
            idempotency_key="usage-1",
        )

        assert result.charged
        assert result.provider_cost_micro == 20_000_000
        assert result.fee_micro == 2_800_000
        assert result.balance_micro == 3_177_200_000

        view = await services["accounts"].get_balance_view(session, USER)
        assert view.balance_micro == 3_177_200_000
        assert view.received_signup_credit
        assert view.first_paid_topup_applied
        assert await services["journal"].sum_for_user(session, view.user_id) == view.balance_micro

    @pytest.mark.asyncio
    async def test_replayed_charge_moves_no_money(self, services, session):
        await _fund_and_price(services, session)
        usage = services["usage"]

        first = await usage.finalize_usage_charge(
            session, USER, model_id="gpt-x", input_tokens=1, output_tokens=0, idempotency_key="k"
        )
        second = await usage.finalize_usage_charge(
            session, USER, model_id="gpt-x", input_tokens=1, output_tokens=0, idempotency_key="k"
        )

        assert second.replayed
        assert second.usage_log_id == first.usage_log_id
        assert len(await usage.list_usage(session, USER)) == 1
        view = await services["accounts"].get_balance_view(session, USER)
        assert view.balance_micro == 3_200_000_000 - 2_280

    @pytest.mark.asyncio
    async def test_unaffordable_call_is_logged_not_charged(self, services, session):
        await _fund_and_price(services, session)

        result = await services["usage"].finalize_usage_charge(
            session, USER, model_id="gpt-x", input_tokens=2_000_000, output_tokens=0
        )

        assert result.charged is False
        (row,) = await services["usage"].list_usage(session, USER)
        assert row.status == "failed"
        view = await services["accounts"].get_balance_view(session, USER)
        assert view.balance_micro == 3_200_000_000

    @pytest.mark.asyncio
    async def test_reporting_sees_the_flow(self, services, session, window):
        await _fund_and_price(services, session)
        await services["usage"].finalize_usage_charge(
            session, USER, model_id="gpt-x", input_tokens=10_000, output_tokens=0
        )
        reconciliation = services["reconciliation"]
        start, end = window

        analytics = await reconciliation.get_billing_analytics(session, start=start, end=end)
        assert analytics.total_provider_cost_micro == 20_000_000
        assert analytics.total_fees_micro == 2_800_000
        assert analytics.total_topups_micro == 2_500_000_000
        assert analytics.total_bonuses_micro == 500_000_000
        assert analytics.total_signup_credits_micro == 200_000_000
        assert analytics.unique_users == 1
        assert analytics.total_usage_calls == 1

        await reconciliation.record_provider_invoice(
            session, provider="openai", invoice_date=utc_now_naive(), amount_cents=20
        )
        report = await reconciliation.get_reconciliation_data(
            session, start=start, end=end, provider="openai"
        )
        assert report.recorded_cost_cents == 20
        assert report.reconciled
        assert (
            await reconciliation.mark_invoices_reconciled(
                session, start=start, end=end, provider="openai"
            )
            == 1
        )

    @pytest.mark.asyncio
    async def test_low_balance_listing(self, services, session):
        accounts = services["accounts"]
        await accounts.create_user_with_signup_credit(session, ExternalId("auth0|poor"))
        await _fund_and_price(services, session)

        entries = await services["reconciliation"].get_users_with_low_balances(
            session, threshold_micro=300_000_000
        )

        assert [e.external_id for e in entries] == ["auth0|poor"]
        assert entries[0].balance_micro == 200_000_000
