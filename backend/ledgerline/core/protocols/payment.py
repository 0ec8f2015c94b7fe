"""Payment gateway protocol.

Cross-cutting infrastructure protocol for the payment provider. The ledger
never collects money itself; it only needs to authenticate webhook payloads
and look up the payment objects they reference.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PaymentGatewayProtocol(Protocol):
    """Protocol for payment gateway operations."""

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Verify and construct webhook event from payload and signature.

        Raises ValueError if the signature is invalid.
        """
        ...

    async def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        """Fetch a PaymentIntent by id."""
        ...
