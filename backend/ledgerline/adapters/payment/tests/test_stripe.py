"""Tests for StripePaymentGateway.

Signatures are computed the way Stripe signs webhooks, so verification runs
through the real SDK without network access.
"""

import hashlib
import hmac
import json
import time

import pytest
import stripe

from ledgerline.adapters.payment.stripe import StripePaymentGateway
from ledgerline.core.exceptions import ExternalServiceError

SECRET = "whsec_test"


def _sign(payload: bytes, secret: str = SECRET) -> str:
    timestamp = int(time.time())
    signed = f"{timestamp}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def _event_payload(event_type: str = "payment_intent.succeeded") -> bytes:
    return json.dumps(
        {
            "id": "evt_1",
            "object": "event",
            "type": event_type,
            "data": {"object": {"id": "pi_1", "object": "payment_intent", "amount": 2500}},
        }
    ).encode()


@pytest.fixture
def gateway():
    return StripePaymentGateway(api_key="sk_test", webhook_secret=SECRET, timeout_seconds=0.05)


class TestVerifyWebhookSignature:
    def test_valid_signature(self, gateway):
        payload = _event_payload()

        event = gateway.verify_webhook_signature(payload, _sign(payload))

        assert event.id == "evt_1"
        assert event.type == "payment_intent.succeeded"
        assert event.data.object.id == "pi_1"

    def test_wrong_secret_is_value_error(self, gateway):
        payload = _event_payload()

        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(payload, _sign(payload, "whsec_other"))

    def test_tampered_payload_is_value_error(self, gateway):
        signature = _sign(_event_payload())

        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(_event_payload("charge.refunded"), signature)

    def test_malformed_header_is_value_error(self, gateway):
        with pytest.raises(ValueError):
            gateway.verify_webhook_signature(_event_payload(), "garbage")


class TestRetrievePaymentIntent:
    @pytest.mark.asyncio
    async def test_returns_sdk_object(self, gateway, monkeypatch):
        monkeypatch.setattr(stripe.PaymentIntent, "retrieve", lambda pi_id: {"id": pi_id})

        assert await gateway.retrieve_payment_intent("pi_1") == {"id": "pi_1"}

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_external_service_error(self, gateway, monkeypatch):
        def _boom(pi_id):
            raise stripe.StripeError("card network down")

        monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _boom)

        with pytest.raises(ExternalServiceError) as exc_info:
            await gateway.retrieve_payment_intent("pi_1")

        assert exc_info.value.service_name == "Stripe"

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self, gateway, monkeypatch):
        def _slow(pi_id):
            time.sleep(0.5)

        monkeypatch.setattr(stripe.PaymentIntent, "retrieve", _slow)

        with pytest.raises(ExternalServiceError) as exc_info:
            await gateway.retrieve_payment_intent("pi_1")

        assert "Timed out" in exc_info.value.message
