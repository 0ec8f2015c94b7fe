"""Billing domain protocols.

AccountServiceProtocol: identity resolution, signup credit and balance views.
TopupProcessorProtocol: crediting external payments.
BillingWebhookProtocol: single method for webhook event processing.
"""

from typing import Optional, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.domains.billing.types import (
    BalanceView,
    ExternalId,
    SignupResult,
    TopupResult,
    UserRef,
)
from ledgerline.models import BillingUser, LedgerTransaction


@runtime_checkable
class AccountServiceProtocol(Protocol):
    """Billing users, their signup credit and their balances."""

    async def resolve_user(
        self,
        db: AsyncSession,
        ref: UserRef,
        *,
        create: bool = True,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> BillingUser:
        """Find (or create) the billing user behind ``ref``."""
        ...

    async def create_user_with_signup_credit(
        self,
        db: AsyncSession,
        identity: ExternalId,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> SignupResult:
        """Create the user if needed and grant the one-time signup credit."""
        ...

    async def get_balance_view(self, db: AsyncSession, ref: UserRef) -> BalanceView:
        """Balance, version and credit flags."""
        ...

    async def list_transactions(
        self, db: AsyncSession, ref: UserRef, *, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first journal entries for a user."""
        ...


@runtime_checkable
class TopupProcessorProtocol(Protocol):
    """Credits external payments to user balances."""

    async def apply_topup(
        self,
        db: AsyncSession,
        user: UserRef,
        *,
        amount_micro: int,
        provider: str,
        payment_reference: str,
        idempotency_key: Optional[str] = None,
    ) -> TopupResult:
        """Credit a payment, plus the first-topup bonus when it applies."""
        ...

    async def get_topup_result(self, db: AsyncSession, topup_id: UUID) -> TopupResult:
        """Rebuild the result of an applied topup."""
        ...


@runtime_checkable
class BillingWebhookProtocol(Protocol):
    """Payment provider webhook processing."""

    async def process_webhook(self, db: AsyncSession, payload: bytes, signature: str) -> None:
        """Verify the payload signature and process the event.

        Raises ValueError if the signature is invalid.
        """
        ...
