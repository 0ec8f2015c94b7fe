"""API tests for the Stripe webhook endpoint."""

import pytest

from ledgerline.adapters.payment.fake import _obj, make_event, make_payment_intent


def _succeeded(pi_id="pi_1", amount_cents=2500, user="auth0|alice"):
    return make_event(
        "payment_intent.succeeded", make_payment_intent(pi_id, amount_cents, {"userId": user})
    )


class TestStripeWebhook:
    @pytest.mark.asyncio
    async def test_missing_signature_is_400(self, client):
        response = await client.post("/webhooks/stripe", content=b"{}")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bad_signature_is_400(self, client):
        response = await client.post(
            "/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "bad"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_payment_credits_user_once(
        self, client, fake_payment_gateway, fake_topup_repo, user_headers
    ):
        fake_payment_gateway.next_event = _succeeded()

        for _ in range(2):
            response = await client.post(
                "/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"}
            )
            assert response.status_code == 200

        assert len(fake_topup_repo.topups) == 1
        balance = await client.get("/users/me/balance", headers=user_headers)
        assert balance.json()["balance_micro"] == 3_000_000_000

    @pytest.mark.asyncio
    async def test_processing_failure_is_500(self, client, fake_payment_gateway):
        session = _obj(
            id="cs_1",
            mode="payment",
            payment_status="paid",
            payment_intent="pi_unknown",
            metadata={"userId": "auth0|alice"},
        )
        fake_payment_gateway.next_event = make_event("checkout.session.completed", session)

        response = await client.post(
            "/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "sig"}
        )

        assert response.status_code == 500
