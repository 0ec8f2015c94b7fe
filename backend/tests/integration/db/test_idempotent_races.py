"""Two requests carrying the same idempotency key, racing on a real database.

The loser passes its first key check before the winner records the key, then
trips over the unique index on its own commit. It must roll back and answer
with the winner's recorded result. A signup loser finds the credit already claimed.
"""

from datetime import timedelta

import pytest

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.domains.billing.types import ExternalId

USER = ExternalId("auth0|racer")


async def _setup(services, db) -> None:
    await services["accounts"].create_user_with_signup_credit(db, USER)
    await services["pricing"].set_price(
        db,
        model_id="gpt-x",
        input_price_micro=2_000,
        output_price_micro=6_000,
        admin_id="ops",
        provider="openai",
        effective_from=utc_now_naive() - timedelta(minutes=1),
    )


def _race_after_first_check(monkeypatch, guard, winner) -> dict:
    """Run ``winner`` to completion right after the first key check reports new.

    Returns:
        dict whose ``"winner"`` entry receives the winner's result
    """
    original = guard.begin_or_replay
    state: dict = {"raced": False, "winner": None}

    async def begin_or_replay(db, key, operation_type):
        check = await original(db, key, operation_type)
        if not state["raced"]:
            state["raced"] = True
            state["winner"] = await winner()
        return check

    monkeypatch.setattr(guard, "begin_or_replay", begin_or_replay)
    return state


async def _assert_single_posting(services, session_factory, entry_type: str) -> None:
    async with session_factory() as db:
        view = await services["accounts"].get_balance_view(db, USER)
        journal = services["journal"]
        entries = await journal.list_for_user(db, view.user_id)
        assert [e.type for e in entries].count(entry_type) == 1
        assert await journal.sum_for_user(db, view.user_id) == view.balance_micro


class TestSameKeyRaces:
    @pytest.mark.asyncio
    async def test_usage_charge_loser_replays_winner(
        self, services, session, session_factory, monkeypatch
    ):
        await _setup(services, session)
        usage = services["usage"]

        async def charge(db):
            return await usage.finalize_usage_charge(
                db,
                USER,
                model_id="gpt-x",
                input_tokens=1_000,
                output_tokens=0,
                provider_call_id="call-1",
                idempotency_key="usage-race",
            )

        async with session_factory() as loser_db, session_factory() as winner_db:
            race = _race_after_first_check(
                monkeypatch, services["idempotency"], lambda: charge(winner_db)
            )
            lost = await charge(loser_db)

        winner = race["winner"]
        assert winner.charged and not winner.replayed
        assert lost.replayed
        assert lost.usage_log_id == winner.usage_log_id
        assert len(await usage.list_usage(session, USER)) == 1
        await _assert_single_posting(services, session_factory, "model_charge")

    @pytest.mark.asyncio
    async def test_topup_loser_replays_winner(
        self, services, session, session_factory, monkeypatch
    ):
        await _setup(services, session)
        topups = services["topups"]

        async def topup(db):
            return await topups.apply_topup(
                db,
                USER,
                amount_micro=1_000_000_000,
                provider="stripe",
                payment_reference="pi_race",
                idempotency_key="stripe:pi:pi_race",
            )

        async with session_factory() as loser_db, session_factory() as winner_db:
            race = _race_after_first_check(
                monkeypatch, services["idempotency"], lambda: topup(winner_db)
            )
            lost = await topup(loser_db)

        winner = race["winner"]
        assert not winner.replayed
        assert winner.bonus_micro == 200_000_000
        assert lost.replayed
        assert lost.topup_id == winner.topup_id
        await _assert_single_posting(services, session_factory, "topup")
        await _assert_single_posting(services, session_factory, "bonus")
        async with session_factory() as db:
            view = await services["accounts"].get_balance_view(db, USER)
        assert view.balance_micro == 200_000_000 + 1_000_000_000 + 200_000_000

    @pytest.mark.asyncio
    async def test_adjustment_loser_replays_winner(
        self, services, session, session_factory, monkeypatch
    ):
        await _setup(services, session)
        adjustments = services["adjustments"]

        async def adjust(db):
            return await adjustments.apply_balance_adjustment(
                db,
                USER,
                amount_micro=50_000_000,
                reason="goodwill",
                admin_id="ops",
                idempotency_key="adjust-race",
            )

        async with session_factory() as loser_db, session_factory() as winner_db:
            race = _race_after_first_check(
                monkeypatch, services["idempotency"], lambda: adjust(winner_db)
            )
            lost = await adjust(loser_db)

        winner = race["winner"]
        assert not winner.replayed
        assert lost.replayed
        assert lost.transaction_id == winner.transaction_id
        assert lost.new_balance_micro == 250_000_000
        await _assert_single_posting(services, session_factory, "admin_adjust")

    @pytest.mark.asyncio
    async def test_signup_loser_reports_existing_credit(
        self, services, session_factory, monkeypatch
    ):
        accounts = services["accounts"]

        async def signup(db):
            return await accounts.create_user_with_signup_credit(
                db, USER, idempotency_key="signup-race"
            )

        async with session_factory() as loser_db, session_factory() as winner_db:
            race = _race_after_first_check(
                monkeypatch, services["idempotency"], lambda: signup(winner_db)
            )
            lost = await signup(loser_db)

        winner = race["winner"]
        assert not winner.replayed
        assert lost.replayed
        assert lost.user_id == winner.user_id
        assert lost.initial_balance_micro == 200_000_000
        await _assert_single_posting(services, session_factory, "signup_credit")
