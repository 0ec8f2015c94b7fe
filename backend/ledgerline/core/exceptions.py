"""Shared exceptions module."""

from typing import Optional

from pydantic import ValidationError


class LedgerlineException(Exception):
    """Base exception for Ledgerline services."""

    pass


class PermissionException(LedgerlineException):
    """Exception raised when a caller is not allowed to perform an action."""

    def __init__(
        self,
        message: Optional[str] = "Caller does not have the right to perform this action",
    ):
        """Create a new PermissionException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class NotFoundException(LedgerlineException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class InvalidInputError(LedgerlineException):
    """Exception raised when caller input is malformed or out of range."""

    def __init__(self, message: Optional[str] = "Invalid input", field: Optional[str] = None):
        """Create a new InvalidInputError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            field (str, optional): Name of the offending field.

        """
        self.message = message
        self.field = field
        super().__init__(self.message)


class ConflictException(LedgerlineException):
    """Exception raised when a write lost a race and may be retried."""

    def __init__(self, message: Optional[str] = "Conflicting concurrent update"):
        """Create a new ConflictException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ExternalServiceError(Exception):
    """Exception raised when an external service fails."""

    def __init__(self, service_name: str, message: Optional[str] = "External service failed"):
        """Create a new ExternalServiceError instance.

        Args:
        ----
            service_name (str): The name of the external service.
            message (str, optional): The error message. Has default message.

        """
        self.service_name = service_name
        self.message = message
        super().__init__(f"{service_name}: {message}")


class InvalidStateError(Exception):
    """Exception raised when an object is in an invalid state."""

    def __init__(self, message: Optional[str] = "Object is in an invalid state"):
        """Create a new InvalidStateError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
