"""Idempotency key model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.models._base import Base, CreatedAtMixin, IdMixin


class IdempotencyKey(Base, IdMixin, CreatedAtMixin):
    """Record of a completed guarded operation, unique per key."""

    __tablename__ = "idempotency_key"

    key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    operation_type: Mapped[str] = mapped_column(String(40), nullable=False)
    user_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    result_reference: Mapped[str] = mapped_column(String(255), nullable=False)

    __table_args__ = (Index("idx_idempotency_key_created_at", "created_at"),)
