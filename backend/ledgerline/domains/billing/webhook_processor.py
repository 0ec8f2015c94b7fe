"""Webhook processor for Stripe payment events.

Payments are the only inbound money. A successful PaymentIntent becomes a
topup keyed by ``stripe:pi:<intent id>``, so Stripe's at-least-once delivery
and the checkout/intent event pair both collapse to a single credit.
"""

from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.config.enums import PaymentProvider
from ledgerline.core.logging import ContextualLogger, logger
from ledgerline.core.protocols.payment import PaymentGatewayProtocol
from ledgerline.domains.billing.exceptions import wrap_gateway_errors
from ledgerline.domains.billing.protocols import BillingWebhookProtocol, TopupProcessorProtocol
from ledgerline.domains.billing.types import ExternalId
from ledgerline.domains.ledger.money import cents_to_micro

USER_METADATA_KEYS = ("userId", "user_id")


def payment_intent_key(payment_intent_id: str) -> str:
    """Idempotency key for crediting a PaymentIntent."""
    return f"stripe:pi:{payment_intent_id}"


def _metadata_user(obj: Any) -> Optional[str]:
    metadata = getattr(obj, "metadata", None) or {}
    for key in USER_METADATA_KEYS:
        value = metadata.get(key)
        if value:
            return str(value)
    return None


def _checkout_user(session: Any) -> Optional[str]:
    reference = getattr(session, "client_reference_id", None)
    if reference:
        return str(reference)
    return _metadata_user(session)


class BillingWebhookProcessor(BillingWebhookProtocol):
    """Process Stripe webhook events for billing."""

    def __init__(
        self,
        payment_gateway: PaymentGatewayProtocol,
        topups: TopupProcessorProtocol,
    ) -> None:
        """Initialize with all required dependencies."""
        self._payment_gateway = payment_gateway
        self._topups = topups

        # Event handler mapping
        self.handlers = {
            "payment_intent.succeeded": self._handle_payment_intent_succeeded,
            "checkout.session.completed": self._handle_checkout_completed,
            "payment_intent.payment_failed": self._handle_payment_failed,
            "charge.dispute.created": self._handle_dispute_created,
        }

    async def process_webhook(self, db: AsyncSession, payload: bytes, signature: str) -> None:
        """Verify webhook signature and process the resulting event.

        Raises ValueError if the signature is invalid.
        """
        event = self._payment_gateway.verify_webhook_signature(payload, signature)
        await self._process_event(db, event)

    async def _process_event(self, db: AsyncSession, event: Any) -> None:
        """Process a verified Stripe webhook event."""
        log = logger.with_context(stripe_event_id=event.id, stripe_event_type=event.type)

        handler = self.handlers.get(event.type)
        if handler:
            try:
                log.info(f"Processing webhook event: {event.type}")
                await handler(db, event, log)
            except Exception as e:
                log.error(f"Error handling {event.type}: {e}", exc_info=True)
                raise
        else:
            log.info(f"Unhandled webhook event type: {event.type}")

    # Event handlers

    async def _handle_payment_intent_succeeded(
        self, db: AsyncSession, event: Any, log: ContextualLogger
    ) -> None:
        """Credit the captured amount to the user named in the intent metadata."""
        await self._credit_payment_intent(db, event.data.object, log)

    @wrap_gateway_errors
    async def _handle_checkout_completed(
        self, db: AsyncSession, event: Any, log: ContextualLogger
    ) -> None:
        """Credit a paid one-off checkout through its PaymentIntent."""
        session = event.data.object
        mode = getattr(session, "mode", None)
        payment_status = getattr(session, "payment_status", None)
        if mode != "payment" or payment_status != "paid":
            log.info(f"Skipping checkout {session.id}: mode={mode} payment_status={payment_status}")
            return

        payment_intent_id = getattr(session, "payment_intent", None)
        if not payment_intent_id:
            log.error(f"Checkout {session.id} has no payment intent")
            return

        intent = await self._payment_gateway.retrieve_payment_intent(payment_intent_id)
        # The checkout names its user through client_reference_id or metadata; the intent
        # carries metadata only when checkout was configured to copy it
        await self._credit_payment_intent(db, intent, log, fallback_user=_checkout_user(session))

    async def _handle_payment_failed(
        self, db: AsyncSession, event: Any, log: ContextualLogger
    ) -> None:
        """Log only; nothing was credited."""
        intent = event.data.object
        error = getattr(intent, "last_payment_error", None)
        message = getattr(error, "message", None) if error else None
        log.warning(
            f"Payment failed for intent {intent.id} (user={_metadata_user(intent)}): {message}"
        )

    async def _handle_dispute_created(
        self, db: AsyncSession, event: Any, log: ContextualLogger
    ) -> None:
        """Log only; disputes are resolved by an admin adjustment."""
        dispute = event.data.object
        log.warning(
            f"Dispute {dispute.id} opened for charge {getattr(dispute, 'charge', None)}, "
            f"amount={getattr(dispute, 'amount', None)} cents"
        )

    async def _credit_payment_intent(
        self,
        db: AsyncSession,
        intent: Any,
        log: ContextualLogger,
        fallback_user: Optional[str] = None,
    ) -> None:
        external_id = _metadata_user(intent) or fallback_user
        if not external_id:
            log.error(f"PaymentIntent {intent.id} has no user metadata, skipping")
            return

        amount_cents = getattr(intent, "amount_received", None)
        if amount_cents is None:
            amount_cents = getattr(intent, "amount", None)
        if not isinstance(amount_cents, int) or amount_cents <= 0:
            log.error(f"PaymentIntent {intent.id} has no captured amount, skipping")
            return

        result = await self._topups.apply_topup(
            db,
            ExternalId(external_id),
            amount_micro=cents_to_micro(amount_cents),
            provider=PaymentProvider.STRIPE.value,
            payment_reference=intent.id,
            idempotency_key=payment_intent_key(intent.id),
        )
        log.info(
            f"Credited PaymentIntent {intent.id} to {external_id}: topup={result.topup_id} "
            f"replayed={result.replayed}"
        )
