"""Inbound payment provider webhooks."""

from typing import Optional

from fastapi import Depends, Header, Request, Response
from fastapi.routing import APIRouter
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.api import deps
from ledgerline.api.deps import Inject
from ledgerline.core.exceptions import ExternalServiceError
from ledgerline.core.logging import logger
from ledgerline.domains.billing.protocols import BillingWebhookProtocol

router = APIRouter()


@router.post("/stripe", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(deps.get_db),
    webhook: BillingWebhookProtocol = Inject(BillingWebhookProtocol),
) -> Response:
    """Handle Stripe webhook events.

    Credits succeeded PaymentIntents and paid Checkout Sessions. Redelivered
    events replay through the idempotency key derived from the PaymentIntent id.

    Args:
        request: Raw HTTP request
        stripe_signature: Stripe signature header
        db: Database session
        webhook: Webhook processor (handles signature verification + processing)

    Returns:
        200 OK on success, 400 on signature error, 500 on processing error so
        Stripe retries the delivery
    """
    try:
        payload = await request.body()
    except Exception:
        return Response(status_code=400)

    if not stripe_signature:
        return Response(status_code=400)

    try:
        await webhook.process_webhook(db, payload, stripe_signature)
        return Response(status_code=200)
    except ValueError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        return Response(status_code=400)
    except ExternalServiceError as e:
        logger.error(f"Stripe webhook could not reach the provider: {e}")
        return Response(status_code=500)
    except Exception as e:
        logger.error(f"Stripe webhook processing failed: {e}", exc_info=True)
        return Response(status_code=500)
