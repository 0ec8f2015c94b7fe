"""Fake topup processor for webhook tests."""

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.domains.billing.types import TopupResult, UserRef


class FakeTopupProcessor:
    """Records apply_topup calls; replays repeated idempotency keys."""

    def __init__(self) -> None:
        """Initialize with an empty call log."""
        self.calls: list[dict] = []
        self._by_key: dict[str, TopupResult] = {}

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
        """Record the call and return a canned result."""
        self.calls.append(
            dict(
                user=user,
                amount_micro=amount_micro,
                provider=provider,
                payment_reference=payment_reference,
                idempotency_key=idempotency_key,
            )
        )
        if idempotency_key and idempotency_key in self._by_key:
            prior = self._by_key[idempotency_key]
            return TopupResult(
                topup_id=prior.topup_id,
                amount_micro=prior.amount_micro,
                bonus_micro=prior.bonus_micro,
                new_balance_micro=prior.new_balance_micro,
                replayed=True,
            )
        result = TopupResult(
            topup_id=uuid4(),
            amount_micro=amount_micro,
            bonus_micro=0,
            new_balance_micro=amount_micro,
        )
        if idempotency_key:
            self._by_key[idempotency_key] = result
        return result

    async def get_topup_result(self, db: AsyncSession, topup_id: UUID) -> TopupResult:
        """Look up a result recorded by apply_topup."""
        for result in self._by_key.values():
            if result.topup_id == topup_id:
                return result
        raise KeyError(topup_id)
