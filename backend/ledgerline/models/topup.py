"""Topup model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.core.shared_models import TopupStatus
from ledgerline.models._base import Base, CreatedAtMixin, IdMixin


class Topup(Base, IdMixin, CreatedAtMixin):
    """One applied external payment."""

    __tablename__ = "topup"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("billing_user.id", name="fk_topup_user_id"), nullable=False
    )
    amount_micro_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bonus_micro_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    payment_provider: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_reference: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TopupStatus.APPLIED.value, nullable=False
    )
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_topup_user_created", "user_id", "created_at"),
        Index("idx_topup_payment_reference", "payment_reference"),
    )
