"""Fake ledger repositories for testing.

Writes apply immediately; rollback behavior is covered by the SQL
integration tests.
"""

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.domains.ledger.exceptions import (
    BalanceVersionConflictError,
    IdempotencyKeyConflictError,
)
from ledgerline.models import Balance, IdempotencyKey, LedgerTransaction


class FakeBalanceRepository:
    """In-memory fake for BalanceRepositoryProtocol.

    ``fail_next_cas`` makes the next N compare-and-swap calls lose, as if a
    concurrent writer had bumped the version.
    """

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[UUID, Balance] = {}
        self._calls: list[tuple] = []
        self.fail_next_cas = 0

    def seed(self, user_id: UUID, balance_micro: int, version: int = 1) -> Balance:
        """Populate store with test data."""
        row = Balance(
            user_id=user_id,
            balance_micro_cents=balance_micro,
            reserved_micro_cents=0,
            version=version,
            updated_at=utc_now_naive(),
        )
        self._store[user_id] = row
        return row

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    async def get(self, db: AsyncSession, *, user_id: UUID) -> Optional[Balance]:
        """Read the balance row."""
        self._calls.append(("get", user_id))
        return self._store.get(user_id)

    async def insert_initial(
        self, db: AsyncSession, *, user_id: UUID, balance_micro_cents: int, now: datetime
    ) -> Balance:
        """Insert the first row at version 1."""
        self._calls.append(("insert_initial", user_id, balance_micro_cents))
        if user_id in self._store:
            raise BalanceVersionConflictError("Balance row was created concurrently")
        return self.seed(user_id, balance_micro_cents)

    async def compare_and_swap(
        self,
        db: AsyncSession,
        *,
        user_id: UUID,
        expected_version: int,
        new_balance_micro_cents: int,
        now: datetime,
    ) -> bool:
        """Conditional write against the in-memory version."""
        self._calls.append(("compare_and_swap", user_id, expected_version, new_balance_micro_cents))
        row = self._store.get(user_id)
        if self.fail_next_cas > 0:
            self.fail_next_cas -= 1
            if row is not None:
                row.version += 1
            return False
        if row is None or row.version != expected_version:
            return False
        row.balance_micro_cents = new_balance_micro_cents
        row.version = expected_version + 1
        row.updated_at = now
        return True


class FakeTransactionRepository:
    """In-memory fake for TransactionRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty journal and call log."""
        self._store: list[LedgerTransaction] = []
        self._calls: list[tuple] = []

    @property
    def entries(self) -> list[LedgerTransaction]:
        """All appended entries, oldest first."""
        return list(self._store)

    def of_type(self, type_: str) -> list[LedgerTransaction]:
        """Entries of a given transaction type."""
        return [t for t in self._store if t.type == type_]

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    async def create_many(
        self, db: AsyncSession, *, objs_in: Sequence, uow: object
    ) -> list[LedgerTransaction]:
        """Append entries in order."""
        self._calls.append(("create_many", len(objs_in), uow))
        created = []
        for obj_in in objs_in:
            row = LedgerTransaction(id=uuid4(), created_at=utc_now_naive(), **obj_in.model_dump())
            self._store.append(row)
            created.append(row)
        return created

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[LedgerTransaction]:
        """Newest-first entries for a user."""
        self._calls.append(("list_for_user", user_id, limit))
        rows = [t for t in self._store if t.user_id == user_id]
        return list(reversed(rows))[:limit]

    async def sum_for_user(self, db: AsyncSession, *, user_id: UUID) -> int:
        """Sum of a user's entry amounts."""
        self._calls.append(("sum_for_user", user_id))
        return sum(t.amount_micro_cents for t in self._store if t.user_id == user_id)


class FakeIdempotencyKeyRepository:
    """In-memory fake for IdempotencyKeyRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: dict[str, IdempotencyKey] = {}
        self._calls: list[tuple] = []

    def seed(
        self,
        key: str,
        operation_type: str,
        result_reference: str,
        user_id: Optional[UUID] = None,
        created_at: Optional[datetime] = None,
    ) -> IdempotencyKey:
        """Populate store with test data."""
        row = IdempotencyKey(
            id=uuid4(),
            key=key,
            operation_type=operation_type,
            user_id=user_id,
            result_reference=result_reference,
            created_at=created_at or utc_now_naive(),
        )
        self._store[key] = row
        return row

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    async def get_by_key(self, db: AsyncSession, *, key: str) -> Optional[IdempotencyKey]:
        """Look up a recorded key."""
        self._calls.append(("get_by_key", key))
        return self._store.get(key)

    async def create(self, db: AsyncSession, *, obj_in: object, uow: object) -> IdempotencyKey:
        """Record a key, rejecting duplicates like the unique index does."""
        self._calls.append(("create", obj_in, uow))
        if obj_in.key in self._store:
            raise IdempotencyKeyConflictError(obj_in.key)
        return self.seed(
            obj_in.key, obj_in.operation_type, obj_in.result_reference, obj_in.user_id
        )

    async def delete_older_than(self, db: AsyncSession, *, cutoff: datetime) -> int:
        """Delete keys created before ``cutoff``."""
        self._calls.append(("delete_older_than", cutoff))
        stale = [k for k, row in self._store.items() if row.created_at < cutoff]
        for k in stale:
            del self._store[k]
        return len(stale)
