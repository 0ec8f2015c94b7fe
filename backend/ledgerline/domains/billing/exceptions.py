"""Billing domain exceptions."""

import functools
from typing import Optional

from ledgerline.core.exceptions import (
    ExternalServiceError,
    InvalidInputError,
    InvalidStateError,
    NotFoundException,
)


class BillingValidationError(InvalidInputError):
    """Raised when billing input is malformed or out of range."""

    def __init__(self, message: str = "Invalid billing input", field: Optional[str] = None):
        """Initialize with default message and the offending field."""
        super().__init__(message, field=field)


class BillingUserNotFoundError(NotFoundException):
    """Raised when a billing user cannot be resolved."""

    def __init__(self, message: str = "Billing user not found"):
        """Initialize with default message."""
        super().__init__(message)


class BillingNotAvailableError(InvalidStateError):
    """Raised by NullPaymentGateway when no payment provider is configured."""

    def __init__(self, message: str = "Billing is not enabled for this instance"):
        """Initialize with default message."""
        super().__init__(message)


class ReplayTargetMissingError(InvalidStateError):
    """Raised when a recorded idempotency key points at a row that no longer exists."""

    def __init__(self, key: str, reference: str):
        """Initialize with the key and its dangling reference."""
        self.key = key
        self.reference = reference
        super().__init__(f"Idempotency key '{key}' references missing record {reference}")


class PaymentGatewayError(ExternalServiceError):
    """Wraps ExternalServiceError from the payment adapter at the domain boundary."""

    def __init__(self, message: str = "Payment gateway error"):
        """Initialize with default message."""
        super().__init__(service_name="PaymentGateway", message=message)


def wrap_gateway_errors(fn):
    """Decorator: catch ExternalServiceError from payment gateway, wrap as PaymentGatewayError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PaymentGatewayError:
            raise
        except ExternalServiceError as e:
            raise PaymentGatewayError(message=e.message) from e

    return wrapper
