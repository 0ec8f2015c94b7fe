"""Balance model."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.core.datetime_utils import utc_now_naive
from ledgerline.models._base import Base


class Balance(Base):
    """Per-user balance, mutated only through version-checked updates."""

    __tablename__ = "balance"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("billing_user.id", name="fk_balance_user_id"), primary_key=True
    )
    balance_micro_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    reserved_micro_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, nullable=False)

    __table_args__ = (
        CheckConstraint("balance_micro_cents >= 0", name="balance_non_negative"),
        CheckConstraint("reserved_micro_cents >= 0", name="reserved_non_negative"),
    )
