"""Fake usage log repository for testing."""

from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.models import UsageLog


class FakeUsageLogRepository:
    """In-memory fake for UsageLogRepositoryProtocol."""

    def __init__(self) -> None:
        """Initialize with empty store and call log."""
        self._store: list[UsageLog] = []
        self._calls: list[tuple] = []

    @property
    def logs(self) -> list[UsageLog]:
        """All usage rows, oldest first."""
        return list(self._store)

    def with_status(self, status: str) -> list[UsageLog]:
        """Usage rows with a given status."""
        return [u for u in self._store if u.status == status]

    def call_count(self, method: str) -> int:
        """Number of times a method was called."""
        return sum(1 for c in self._calls if c[0] == method)

    async def get(self, db: AsyncSession, *, usage_log_id: UUID) -> Optional[UsageLog]:
        """Get a usage row by id."""
        self._calls.append(("get", usage_log_id))
        for row in self._store:
            if row.id == usage_log_id:
                return row
        return None

    async def create(self, db: AsyncSession, *, obj_in: object, uow: object) -> UsageLog:
        """Insert a usage row."""
        self._calls.append(("create", obj_in, uow))
        row = UsageLog(id=uuid4(), created_at=utc_now_naive(), **obj_in.model_dump())
        self._store.append(row)
        return row

    async def list_for_user(
        self, db: AsyncSession, *, user_id: UUID, limit: int = 50
    ) -> list[UsageLog]:
        """Newest-first usage rows for a user."""
        self._calls.append(("list_for_user", user_id, limit))
        rows = [u for u in self._store if u.user_id == user_id]
        return list(reversed(rows))[:limit]
