"""Null payment gateway for when Stripe is not configured.

Satisfies PaymentGatewayProtocol so the container can always be fully
constructed. ``verify_webhook_signature`` raises ValueError, matching the
Stripe adapter's contract for invalid signatures, so unconfigured instances
reject every webhook.
"""

from typing import Any

from ledgerline.core.protocols.payment import PaymentGatewayProtocol
from ledgerline.domains.billing.exceptions import BillingNotAvailableError


class NullPaymentGateway(PaymentGatewayProtocol):
    """No-op payment gateway used when Stripe is disabled."""

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Reject: there is no secret to verify against."""
        raise ValueError("Payment webhooks are not configured")

    async def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        """Raise: lookups need a real provider."""
        raise BillingNotAvailableError()
