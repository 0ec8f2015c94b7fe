"""Model token price model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.models._base import Base, CreatedAtMixin, IdMixin


class ModelTokenPrice(Base, IdMixin, CreatedAtMixin):
    """Versioned per-token price for a model.

    ``effective_to`` is null for the active row. Rows are closed, never
    deleted, so the table is the full price history.
    """

    __tablename__ = "model_token_price"

    model_id: Mapped[str] = mapped_column(String(100), nullable=False)
    provider: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price_micro_cents_per_input_token: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price_micro_cents_per_output_token: Mapped[int] = mapped_column(BigInteger, nullable=False)
    effective_from: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    effective_to: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    admin_id: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        Index("idx_model_token_price_model_from", "model_id", "effective_from"),
        # At most one active row per model
        Index(
            "uq_model_token_price_active",
            "model_id",
            unique=True,
            postgresql_where=text("effective_to IS NULL"),
            sqlite_where=text("effective_to IS NULL"),
        ),
    )
