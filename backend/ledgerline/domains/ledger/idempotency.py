"""Idempotency guard.

Maps a caller-supplied key to the result of a completed operation. The key is
recorded inside the same unit of work as the operation's writes, so either
both become durable or neither does. Concurrent first attempts race on the
unique index; the loser's unit of work rolls back and the caller replays the
winner's result.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.core.logging import logger
from ledgerline.core.protocols.metrics import BillingMetrics
from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.domains.ledger.exceptions import IdempotencyKeyReuseError
from ledgerline.domains.ledger.protocols import IdempotencyGuardProtocol
from ledgerline.domains.ledger.repository import IdempotencyKeyRepositoryProtocol
from ledgerline.domains.ledger.types import IdempotencyCheck, IdempotencyRecord
from ledgerline.schemas.idempotency_key import IdempotencyKeyCreate


class IdempotencyGuard(IdempotencyGuardProtocol):
    """At-most-once execution per idempotency key."""

    def __init__(
        self,
        key_repo: IdempotencyKeyRepositoryProtocol,
        retention_days: int,
        metrics: Optional[BillingMetrics] = None,
    ) -> None:
        """Initialize with the key repository and retention window."""
        self._key_repo = key_repo
        self._retention = timedelta(days=retention_days)
        self._metrics = metrics

    async def begin_or_replay(
        self, db: AsyncSession, key: Optional[str], operation_type: str
    ) -> IdempotencyCheck:
        """Check whether ``key`` already completed.

        A missing or empty key disables deduplication and always reports new.

        Raises:
            IdempotencyKeyReuseError: The key belongs to a different operation type
        """
        if not key:
            return IdempotencyCheck(is_new=True)

        row = await self._key_repo.get_by_key(db, key=key)
        if row is None:
            return IdempotencyCheck(is_new=True)

        if row.operation_type != operation_type:
            raise IdempotencyKeyReuseError(key, row.operation_type, operation_type)

        if self._metrics:
            self._metrics.inc_idempotency_hit(operation_type)
        logger.with_context(idempotency_key=key, operation=operation_type).info(
            "billing.idempotency_hit: replaying recorded result"
        )
        return IdempotencyCheck(
            is_new=False,
            prior=IdempotencyRecord(
                key=row.key,
                operation_type=row.operation_type,
                result_reference=row.result_reference,
                user_id=row.user_id,
                created_at=row.created_at,
            ),
        )

    async def commit(
        self,
        db: AsyncSession,
        *,
        key: Optional[str],
        operation_type: str,
        user_id: Optional[UUID],
        result_reference: str,
        uow: UnitOfWork,
    ) -> None:
        """Record ``key`` in the caller's unit of work. No-op without a key.

        Raises:
            IdempotencyKeyConflictError: Another request recorded the key first
        """
        if not key:
            return
        await self._key_repo.create(
            db,
            obj_in=IdempotencyKeyCreate(
                key=key,
                operation_type=operation_type,
                user_id=user_id,
                result_reference=result_reference,
            ),
            uow=uow,
        )

    async def purge_expired(self, db: AsyncSession, *, now: Optional[datetime] = None) -> int:
        """Delete keys older than the retention window.

        Returns:
            Number of keys removed
        """
        cutoff = (now or utc_now_naive()) - self._retention
        deleted = await self._key_repo.delete_older_than(db, cutoff=cutoff)
        logger.info(f"Purged {deleted} idempotency keys created before {cutoff.isoformat()}")
        return deleted
