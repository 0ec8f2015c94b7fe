"""Value types for the billing domain."""

from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID


@dataclass(frozen=True)
class InternalId:
    """A user addressed by its billing id."""

    value: UUID


@dataclass(frozen=True)
class ExternalId:
    """A user addressed by the identity provider's id."""

    value: str


# Every entry point takes one of these; there is no "maybe a UUID" string.
UserRef = Union[InternalId, ExternalId]


def describe_ref(ref: UserRef) -> str:
    """Short label for logs."""
    if isinstance(ref, InternalId):
        return f"id:{ref.value}"
    return f"ext:{ref.value}"


@dataclass(frozen=True)
class SignupResult:
    """Outcome of granting the signup credit."""

    user_id: UUID
    initial_balance_micro: int
    replayed: bool = False


@dataclass(frozen=True)
class TopupResult:
    """Outcome of applying a topup."""

    topup_id: UUID
    amount_micro: int
    bonus_micro: int
    new_balance_micro: int
    replayed: bool = False


@dataclass(frozen=True)
class BalanceView:
    """Balance plus credit flags, as shown to a user."""

    user_id: UUID
    external_id: str
    balance_micro: int
    reserved_micro: int
    version: int
    received_signup_credit: bool
    first_paid_topup_applied: bool
    email: Optional[str] = None
