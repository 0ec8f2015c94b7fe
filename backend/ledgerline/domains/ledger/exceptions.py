"""Ledger domain exceptions."""

from typing import Optional

from ledgerline.core.exceptions import (
    ConflictException,
    InvalidInputError,
    InvalidStateError,
)


class BalanceVersionConflictError(ConflictException):
    """Raised when a balance write finds a different version than expected.

    Internal to the retry loop; callers see ``ConcurrencyConflictError`` once
    retries are exhausted.
    """

    def __init__(self, message: str = "Balance was modified concurrently"):
        """Initialize with default message."""
        super().__init__(message)


class ConcurrencyConflictError(ConflictException):
    """Raised when a balance mutation kept losing races and gave up."""

    def __init__(
        self,
        message: str = "Too many concurrent balance updates, retry later",
        attempts: Optional[int] = None,
    ):
        """Initialize with default message and the number of attempts made."""
        self.attempts = attempts
        super().__init__(message)


class InsufficientFundsError(InvalidStateError):
    """Raised when a delta would take a balance below zero."""

    def __init__(
        self,
        message: str = "Insufficient balance",
        available_micro: Optional[int] = None,
        required_micro: Optional[int] = None,
    ):
        """Initialize with default message and the amounts involved."""
        self.available_micro = available_micro
        self.required_micro = required_micro
        super().__init__(message)


class IdempotencyKeyConflictError(ConflictException):
    """Raised when another request committed the same key first."""

    def __init__(self, key: str, message: str = "Idempotency key was committed concurrently"):
        """Initialize with the contested key."""
        self.key = key
        super().__init__(message)


class IdempotencyKeyReuseError(InvalidStateError):
    """Raised when a key is reused for a different kind of operation."""

    def __init__(self, key: str, recorded: str, requested: str):
        """Initialize with the key and both operation types."""
        self.key = key
        self.recorded = recorded
        self.requested = requested
        super().__init__(
            f"Idempotency key already used for '{recorded}', cannot reuse for '{requested}'"
        )


class EmptyPostingError(InvalidInputError):
    """Raised when a posting has no entries."""

    def __init__(self, message: str = "A posting needs at least one entry"):
        """Initialize with default message."""
        super().__init__(message)
