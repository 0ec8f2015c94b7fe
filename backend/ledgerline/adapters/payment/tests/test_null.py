"""Tests for NullPaymentGateway."""

import pytest

from ledgerline.adapters.payment.null import NullPaymentGateway
from ledgerline.core.protocols.payment import PaymentGatewayProtocol
from ledgerline.domains.billing.exceptions import BillingNotAvailableError


def test_satisfies_protocol():
    assert isinstance(NullPaymentGateway(), PaymentGatewayProtocol)


def test_rejects_every_webhook():
    with pytest.raises(ValueError):
        NullPaymentGateway().verify_webhook_signature(b"{}", "t=1,v1=abc")


@pytest.mark.asyncio
async def test_lookups_are_unavailable():
    with pytest.raises(BillingNotAvailableError):
        await NullPaymentGateway().retrieve_payment_intent("pi_1")
