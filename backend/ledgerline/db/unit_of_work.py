"""Unit of work over an AsyncSession.

Every money-moving operation runs its writes inside one ``UnitOfWork``. The
repositories only ``flush``; the unit of work decides whether the whole group
becomes durable. Leaving the block without calling ``commit()`` (including
by exception) rolls everything back, so a balance update, its journal
entries, and its idempotency key are stored together or not at all.

Usage:
    async with UnitOfWork(db) as uow:
        await balance_store.apply_delta(db, ...)
        await journal.post(db, entries, uow=uow)
        await uow.commit()
"""

from sqlalchemy.ext.asyncio import AsyncSession


class UnitOfWork:
    """Async transaction boundary shared by all repositories of one operation."""

    def __init__(self, session: AsyncSession):
        """Wrap ``session``; nothing is committed until ``commit()``."""
        self.session = session
        self._committed = False

    @property
    def committed(self) -> bool:
        """Whether ``commit()`` completed."""
        return self._committed

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None or not self._committed:
            await self.rollback()

    async def commit(self) -> None:
        """Commit the session."""
        await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        """Roll the session back."""
        await self.session.rollback()
        self._committed = False
