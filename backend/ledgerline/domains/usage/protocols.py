"""Usage domain protocols."""

from typing import Optional, Protocol, runtime_checkable

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.domains.billing.types import UserRef
from ledgerline.domains.usage.types import BalanceCheck, UsageChargeResult
from ledgerline.models import UsageLog


@runtime_checkable
class UsageChargeProcessorProtocol(Protocol):
    """Charges users for metered model calls."""

    async def finalize_usage_charge(
        self,
        db: AsyncSession,
        user: UserRef,
        *,
        model_id: str,
        input_tokens: int,
        output_tokens: int,
        provider_call_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> UsageChargeResult:
        """Price a completed call and debit the user, or record a denial."""
        ...

    async def check_sufficient_balance(
        self,
        db: AsyncSession,
        user: UserRef,
        *,
        model_id: str,
        estimated_input_tokens: Optional[int] = None,
        estimated_output_tokens: Optional[int] = None,
    ) -> BalanceCheck:
        """Advisory pre-flight check. Never writes."""
        ...

    async def list_usage(
        self, db: AsyncSession, user: UserRef, *, limit: int = 50
    ) -> list[UsageLog]:
        """Newest-first usage rows for a user."""
        ...
