"""Stripe payment gateway.

The Stripe SDK is synchronous; calls run in a worker thread and are bounded
by ``asyncio.wait_for`` so a slow provider can never hold a request open
indefinitely.
"""

import asyncio
from typing import Any

import stripe

from ledgerline.core.exceptions import ExternalServiceError
from ledgerline.core.logging import logger
from ledgerline.core.protocols.payment import PaymentGatewayProtocol


class StripePaymentGateway(PaymentGatewayProtocol):
    """PaymentGatewayProtocol backed by the Stripe API."""

    def __init__(self, api_key: str, webhook_secret: str, timeout_seconds: float = 10.0) -> None:
        """Configure the SDK with credentials and a per-call timeout."""
        stripe.api_key = api_key
        self._webhook_secret = webhook_secret
        self._timeout = timeout_seconds

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Verify and construct webhook event from payload and signature.

        Raises:
            ValueError: Signature or payload is invalid
        """
        try:
            return stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe webhook signature verification failed: {e}")
            raise ValueError("Invalid Stripe signature") from e
        except ValueError as e:
            logger.warning(f"Stripe webhook payload could not be parsed: {e}")
            raise

    async def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        """Fetch a PaymentIntent, bounded by the configured timeout."""
        return await self._call(stripe.PaymentIntent.retrieve, payment_intent_id)

    async def _call(self, fn, *args: Any, **kwargs: Any) -> Any:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            raise ExternalServiceError(
                service_name="Stripe", message=f"Timed out after {self._timeout}s"
            ) from e
        except stripe.StripeError as e:
            raise ExternalServiceError(service_name="Stripe", message=str(e)) from e
