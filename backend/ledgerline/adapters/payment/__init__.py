"""Payment gateway adapters."""

from ledgerline.adapters.payment.fake import FakePaymentGateway
from ledgerline.adapters.payment.null import NullPaymentGateway
from ledgerline.adapters.payment.stripe import StripePaymentGateway

__all__ = ["FakePaymentGateway", "NullPaymentGateway", "StripePaymentGateway"]
