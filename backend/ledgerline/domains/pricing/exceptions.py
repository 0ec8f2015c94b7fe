"""Pricing domain exceptions."""

from datetime import datetime

from ledgerline.core.exceptions import ConflictException, InvalidStateError, NotFoundException


class PricingNotConfiguredError(NotFoundException):
    """Raised when a model has no price covering the requested time.

    There is no fallback price; a model cannot be billed until an admin has
    configured one.
    """

    def __init__(self, model_id: str, at: datetime | None = None):
        """Initialize with the model and lookup time."""
        self.model_id = model_id
        self.at = at
        suffix = f" at {at.isoformat()}" if at else ""
        super().__init__(f"No price configured for model '{model_id}'{suffix}")


class InvalidPriceScheduleError(InvalidStateError):
    """Raised when a new price would not start after the current one."""

    def __init__(self, message: str = "New price must start after the current price"):
        """Initialize with default message."""
        super().__init__(message)


class PriceVersionConflictError(ConflictException):
    """Raised when another admin replaced the active price concurrently."""

    def __init__(self, model_id: str):
        """Initialize with the contested model."""
        self.model_id = model_id
        super().__init__(f"Price for model '{model_id}' was changed concurrently")
