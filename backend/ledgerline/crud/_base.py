"""Base CRUD class for ledger tables.

Ledger rows are written once and never updated through the generic path, so
the base class only knows how to read by primary key and insert. Writes made
with a ``UnitOfWork`` are flushed and left for the unit of work to commit;
writes without one are committed immediately.
"""

from typing import Any, Generic, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ledgerline.db.unit_of_work import UnitOfWork
from ledgerline.models._base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)


class CRUDBase(Generic[ModelType, CreateSchemaType]):
    """Read-by-id and insert for a single model."""

    def __init__(self, model: Type[ModelType]):
        """Bind the CRUD object to ``model``."""
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """Get a row by primary key."""
        return await db.get(self.model, id)

    async def create(
        self,
        db: AsyncSession,
        *,
        obj_in: Union[CreateSchemaType, dict[str, Any]],
        uow: Optional[UnitOfWork] = None,
    ) -> ModelType:
        """Insert a row.

        Args:
            db: Database session
            obj_in: Create schema or plain dict of column values
            uow: Unit of work owning the transaction; when given, the row is
                only flushed

        Returns:
            The inserted row
        """
        data = obj_in if isinstance(obj_in, dict) else obj_in.model_dump()
        db_obj = self.model(**data)
        db.add(db_obj)
        if uow is not None:
            await db.flush()
        else:
            await db.commit()
            await db.refresh(db_obj)
        return db_obj
