"""Balance store with optimistic concurrency.

The version column is the only concurrency control. ``apply_delta`` reads the
row, checks the caller's expected version, and writes with a conditional
``UPDATE ... WHERE version = :expected``; if another writer got there first
the update touches no rows and the call raises ``BalanceVersionConflictError``
for the retry loop to handle.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.core.logging import logger
from ledgerline.domains.ledger.exceptions import (
    BalanceVersionConflictError,
    InsufficientFundsError,
)
from ledgerline.domains.ledger.protocols import BalanceStoreProtocol
from ledgerline.domains.ledger.repository import BalanceRepositoryProtocol
from ledgerline.domains.ledger.types import BalanceSnapshot


class BalanceStore(BalanceStoreProtocol):
    """Reads and compare-and-swap writes of per-user balances."""

    def __init__(self, balance_repo: BalanceRepositoryProtocol) -> None:
        """Initialize with the balance repository."""
        self._balance_repo = balance_repo

    async def read(self, db: AsyncSession, user_id: UUID) -> BalanceSnapshot:
        """Current balance, or a zero snapshot at version 0."""
        row = await self._balance_repo.get(db, user_id=user_id)
        if row is None:
            return BalanceSnapshot(user_id=user_id)
        return BalanceSnapshot(
            user_id=user_id,
            balance_micro=row.balance_micro_cents,
            reserved_micro=row.reserved_micro_cents,
            version=row.version,
            updated_at=row.updated_at,
        )

    async def apply_delta(
        self,
        db: AsyncSession,
        user_id: UUID,
        delta_micro: int,
        *,
        expected_version: Optional[int] = None,
        debit_only: bool = False,
    ) -> BalanceSnapshot:
        """Apply a signed delta with a version check.

        Args:
            db: Database session (inside the caller's unit of work)
            user_id: Billing user id
            delta_micro: Signed amount; negative debits
            expected_version: Version the caller based its decision on. None
                means "whatever is current", still written conditionally.
                0 means the caller saw no row.
            debit_only: Set by usage charges, whose delta must be a debit

        Returns:
            The snapshot after the write

        Raises:
            BalanceVersionConflictError: The row moved since it was read
            InsufficientFundsError: The result would be negative
        """
        if debit_only and delta_micro > 0:
            raise ValueError("debit_only deltas must not be positive")

        current = await self.read(db, user_id)
        if expected_version is not None and current.version != expected_version:
            raise BalanceVersionConflictError(
                f"Expected balance version {expected_version}, found {current.version}"
            )

        new_balance = current.balance_micro + delta_micro
        if new_balance < 0:
            raise InsufficientFundsError(
                available_micro=current.balance_micro, required_micro=-delta_micro
            )

        now = utc_now_naive()
        if not current.exists:
            await self._balance_repo.insert_initial(
                db, user_id=user_id, balance_micro_cents=new_balance, now=now
            )
            new_version = 1
        else:
            swapped = await self._balance_repo.compare_and_swap(
                db,
                user_id=user_id,
                expected_version=current.version,
                new_balance_micro_cents=new_balance,
                now=now,
            )
            if not swapped:
                raise BalanceVersionConflictError()
            new_version = current.version + 1

        logger.with_context(user_id=str(user_id)).debug(
            f"Balance moved by {delta_micro} to {new_balance} (v{new_version})"
        )
        return BalanceSnapshot(
            user_id=user_id,
            balance_micro=new_balance,
            reserved_micro=current.reserved_micro,
            version=new_version,
            updated_at=now,
        )
