"""Usage log model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.models._base import Base, CreatedAtMixin, IdMixin


class UsageLog(Base, IdMixin, CreatedAtMixin):
    """One row per metered call, charged or denied."""

    __tablename__ = "usage_log"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("billing_user.id", name="fk_usage_log_user_id"), nullable=False
    )
    model_id: Mapped[str] = mapped_column(String(100), nullable=False)
    provider_call_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    input_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False)
    output_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price_micro_cents_per_input_token: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price_micro_cents_per_output_token: Mapped[int] = mapped_column(BigInteger, nullable=False)
    provider_cost_micro_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    fee_micro_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_charge_micro_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    charge_transaction_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        Index("idx_usage_log_user_created", "user_id", "created_at"),
        Index("idx_usage_log_status_created", "status", "created_at"),
    )
