"""Fake payment gateway for testing.

In-memory implementation of PaymentGatewayProtocol. Records all calls for
assertions. No external API calls.
"""

from typing import Any, Optional


class _obj:
    """Tiny attribute-bag to emulate Stripe object shapes in tests."""

    def __init__(self, **kwargs: Any):
        for k, v in kwargs.items():
            setattr(self, k, v)

    def get(self, key: str, default: Any = None) -> Any:
        """Get attribute by key with default."""
        return getattr(self, key, default)


def make_event(event_type: str, obj: Any, event_id: str = "evt_fake") -> Any:
    """Build a Stripe-shaped event wrapping ``obj``."""
    return _obj(type=event_type, id=event_id, data=_obj(object=obj))


def make_payment_intent(
    pi_id: str,
    amount_cents: int,
    metadata: Optional[dict] = None,
    status: str = "succeeded",
) -> Any:
    """Build a Stripe-shaped PaymentIntent."""
    return _obj(
        id=pi_id,
        object="payment_intent",
        amount=amount_cents,
        amount_received=amount_cents,
        currency="usd",
        status=status,
        metadata=metadata or {},
    )


class FakePaymentGateway:
    """Test implementation of PaymentGatewayProtocol.

    Usage::

        fake = FakePaymentGateway()
        fake.next_event = make_event("payment_intent.succeeded", pi)
        event = fake.verify_webhook_signature(b"{}", "sig")
        assert fake.call_count("verify_webhook_signature") == 1
    """

    def __init__(self, should_raise: Optional[Exception] = None) -> None:
        """Initialize with optional error injection."""
        self._should_raise = should_raise
        self._calls: list[tuple[str, tuple]] = []
        self._payment_intents: dict[str, Any] = {}
        self.next_event: Any = make_event("test.event", _obj())

    def _record(self, method: str, *args: Any) -> None:
        self._calls.append((method, args))
        if self._should_raise:
            raise self._should_raise

    # ---- Test helpers ----

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for name, _ in self._calls if name == method)

    def add_payment_intent(self, pi: Any) -> None:
        """Make ``pi`` retrievable by id."""
        self._payment_intents[pi.id] = pi

    # ---- Protocol ----

    def verify_webhook_signature(self, payload: bytes, signature: str) -> Any:
        """Return ``next_event``; the signature ``bad`` is rejected."""
        self._record("verify_webhook_signature", payload, signature)
        if signature == "bad":
            raise ValueError("Invalid signature")
        return self.next_event

    async def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        """Return a previously added PaymentIntent."""
        self._record("retrieve_payment_intent", payment_intent_id)
        return self._payment_intents[payment_intent_id]
