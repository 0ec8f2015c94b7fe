"""Unit tests for UsageChargeProcessor."""

import pytest

from ledgerline.domains.billing.exceptions import BillingUserNotFoundError, BillingValidationError
from ledgerline.domains.billing.types import ExternalId, InternalId
from ledgerline.domains.ledger.money import cents_to_micro
from ledgerline.domains.pricing.exceptions import PricingNotConfiguredError

MODEL = "gpt-x"


@pytest.fixture
def funded_user(fake_user_repo, fake_balance_repo):
    """A user holding $32.00, the balance after signup credit, a $25 topup and its bonus."""
    user = fake_user_repo.seed(
        "auth0|alice", received_signup_credit=True, first_paid_topup_applied=True
    )
    fake_balance_repo.seed(user.id, cents_to_micro(3200))
    return user


@pytest.fixture
def priced_model(fake_price_repo):
    return fake_price_repo.seed(MODEL, 2000, provider="openai")


class TestFinalizeUsageCharge:
    @pytest.mark.asyncio
    async def test_charge_posts_balanced_entries(
        self,
        db,
        usage,
        funded_user,
        priced_model,
        fake_transaction_repo,
        fake_usage_repo,
        fake_billing_metrics,
    ):
        result = await usage.finalize_usage_charge(
            db,
            InternalId(funded_user.id),
            model_id=MODEL,
            input_tokens=10_000,
            output_tokens=0,
            provider_call_id="req_1",
        )

        assert result.charged
        assert result.provider_cost_micro == 20_000_000
        assert result.fee_micro == 2_800_000
        assert result.total_micro == 22_800_000
        assert result.balance_micro == 3_177_200_000

        charge, accrual, fee = fake_transaction_repo.entries
        assert (charge.type, charge.amount_micro_cents) == ("model_charge", -22_800_000)
        assert charge.user_id == funded_user.id
        assert accrual.type == "provider_payable_accrual"
        assert accrual.amount_micro_cents == 20_000_000
        assert accrual.provider == "openai"
        assert (fee.type, fee.amount_micro_cents) == ("fee_revenue", 2_800_000)
        assert sum(t.amount_micro_cents for t in fake_transaction_repo.entries) == 0

        [log] = fake_usage_repo.logs
        assert log.status == "charged"
        assert log.charge_transaction_id == charge.id
        assert log.id == result.usage_log_id
        assert fake_billing_metrics.usage_charges["charged"] == 1
        assert fake_billing_metrics.charged_micro_cents == 22_800_000

    @pytest.mark.asyncio
    async def test_unaffordable_call_is_recorded_not_raised(
        self,
        db,
        usage,
        fake_user_repo,
        fake_balance_repo,
        priced_model,
        fake_transaction_repo,
        fake_usage_repo,
        fake_billing_metrics,
    ):
        user = fake_user_repo.seed("auth0|bob")
        fake_balance_repo.seed(user.id, 100)

        result = await usage.finalize_usage_charge(
            db, ExternalId("auth0|bob"), model_id=MODEL, input_tokens=1, output_tokens=0
        )

        assert not result.charged
        assert result.balance_micro == 100
        assert result.total_micro == 2280
        assert fake_transaction_repo.entries == []
        [log] = fake_usage_repo.logs
        assert log.status == "failed"
        assert log.charge_transaction_id is None
        assert fake_billing_metrics.usage_charges["failed"] == 1

    @pytest.mark.asyncio
    async def test_exact_balance_is_enough(
        self, db, usage, fake_user_repo, fake_balance_repo, priced_model
    ):
        user = fake_user_repo.seed("auth0|bob")
        fake_balance_repo.seed(user.id, 2280)

        result = await usage.finalize_usage_charge(
            db, InternalId(user.id), model_id=MODEL, input_tokens=1, output_tokens=0
        )

        assert result.charged
        assert result.balance_micro == 0

    @pytest.mark.asyncio
    async def test_unpriced_model_raises_before_any_write(
        self, db, usage, funded_user, fake_usage_repo, fake_balance_repo
    ):
        with pytest.raises(PricingNotConfiguredError):
            await usage.finalize_usage_charge(
                db, InternalId(funded_user.id), model_id="unknown", input_tokens=1, output_tokens=1
            )

        assert fake_usage_repo.logs == []
        assert fake_balance_repo.call_count("compare_and_swap") == 0

    @pytest.mark.asyncio
    async def test_unknown_user_is_not_registered(self, db, usage, priced_model, fake_user_repo):
        with pytest.raises(BillingUserNotFoundError):
            await usage.finalize_usage_charge(
                db, ExternalId("auth0|ghost"), model_id=MODEL, input_tokens=1, output_tokens=1
            )

        assert fake_user_repo.call_count("create") == 0

    @pytest.mark.asyncio
    async def test_same_key_charges_once(
        self, db, usage, funded_user, priced_model, fake_transaction_repo
    ):
        kwargs = dict(model_id=MODEL, input_tokens=10_000, output_tokens=0, idempotency_key="c-1")

        first = await usage.finalize_usage_charge(db, InternalId(funded_user.id), **kwargs)
        second = await usage.finalize_usage_charge(db, InternalId(funded_user.id), **kwargs)

        assert second.replayed
        assert second.charged
        assert second.usage_log_id == first.usage_log_id
        assert second.balance_micro == first.balance_micro
        assert len(fake_transaction_repo.of_type("model_charge")) == 1

    @pytest.mark.asyncio
    async def test_denied_call_replays_as_denied(
        self, db, usage, fake_user_repo, fake_balance_repo, priced_model, fake_usage_repo
    ):
        user = fake_user_repo.seed("auth0|bob")
        fake_balance_repo.seed(user.id, 0)
        kwargs = dict(model_id=MODEL, input_tokens=1, output_tokens=0, idempotency_key="c-1")

        await usage.finalize_usage_charge(db, InternalId(user.id), **kwargs)
        second = await usage.finalize_usage_charge(db, InternalId(user.id), **kwargs)

        assert second.replayed
        assert not second.charged
        assert len(fake_usage_repo.logs) == 1

    @pytest.mark.asyncio
    async def test_retries_when_balance_moves(
        self,
        db,
        usage,
        funded_user,
        priced_model,
        fake_balance_repo,
        fake_transaction_repo,
        fake_billing_metrics,
    ):
        fake_balance_repo.fail_next_cas = 1

        result = await usage.finalize_usage_charge(
            db, InternalId(funded_user.id), model_id=MODEL, input_tokens=10_000, output_tokens=0
        )

        assert result.charged
        assert result.balance_micro == 3_177_200_000
        assert fake_billing_metrics.cas_retries["usage_charge"] == 1
        assert len(fake_transaction_repo.of_type("model_charge")) == 1

    @pytest.mark.asyncio
    async def test_balance_drained_mid_charge_is_denied_on_retry(
        self,
        db,
        usage,
        balance_store,
        funded_user,
        priced_model,
        fake_balance_repo,
        fake_transaction_repo,
        monkeypatch,
    ):
        original = balance_store.apply_delta
        drained = []

        async def _drain_first(db, user_id, delta_micro, **kwargs):
            if not drained:
                drained.append(True)
                fake_balance_repo.seed(user_id, 0, version=kwargs["expected_version"])
            return await original(db, user_id, delta_micro, **kwargs)

        monkeypatch.setattr(balance_store, "apply_delta", _drain_first)

        result = await usage.finalize_usage_charge(
            db, InternalId(funded_user.id), model_id=MODEL, input_tokens=10_000, output_tokens=0
        )

        assert not result.charged
        assert result.balance_micro == 0
        assert fake_transaction_repo.entries == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "model_id,input_tokens,output_tokens,field",
        [
            ("", 1, 1, "model_id"),
            (MODEL, -1, 1, "input_tokens"),
            (MODEL, 1, 10_000_001, "output_tokens"),
        ],
    )
    async def test_bad_input(
        self, db, usage, funded_user, model_id, input_tokens, output_tokens, field
    ):
        with pytest.raises(BillingValidationError) as exc_info:
            await usage.finalize_usage_charge(
                db,
                InternalId(funded_user.id),
                model_id=model_id,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        assert exc_info.value.field == field


class TestCheckSufficientBalance:
    @pytest.mark.asyncio
    async def test_default_estimate(self, db, usage, funded_user, priced_model, fake_balance_repo):
        check = await usage.check_sufficient_balance(db, InternalId(funded_user.id), model_id=MODEL)

        assert check.estimated_cost_micro == 6_840_000
        assert check.current_balance_micro == cents_to_micro(3200)
        assert check.has_sufficient_balance
        assert fake_balance_repo.call_count("compare_and_swap") == 0

    @pytest.mark.asyncio
    async def test_explicit_estimate_above_balance(self, db, usage, funded_user, priced_model):
        check = await usage.check_sufficient_balance(
            db,
            InternalId(funded_user.id),
            model_id=MODEL,
            estimated_input_tokens=10_000_000,
            estimated_output_tokens=0,
        )

        assert not check.has_sufficient_balance

    @pytest.mark.asyncio
    async def test_unknown_user_reports_zero(self, db, usage, priced_model):
        check = await usage.check_sufficient_balance(db, ExternalId("auth0|ghost"), model_id=MODEL)

        assert not check.has_sufficient_balance
        assert check.current_balance_micro == 0

    @pytest.mark.asyncio
    async def test_unpriced_model_is_not_estimated_at_zero(self, db, usage, funded_user):
        with pytest.raises(PricingNotConfiguredError):
            await usage.check_sufficient_balance(
                db, InternalId(funded_user.id), model_id="unknown"
            )


class TestListUsage:
    @pytest.mark.asyncio
    async def test_newest_first(self, db, usage, funded_user, priced_model):
        for tokens in (1, 2):
            await usage.finalize_usage_charge(
                db, InternalId(funded_user.id), model_id=MODEL, input_tokens=tokens, output_tokens=0
            )

        rows = await usage.list_usage(db, InternalId(funded_user.id))

        assert [r.input_tokens for r in rows] == [2, 1]

    @pytest.mark.asyncio
    async def test_unknown_user_is_empty(self, db, usage):
        assert await usage.list_usage(db, ExternalId("auth0|ghost")) == []
