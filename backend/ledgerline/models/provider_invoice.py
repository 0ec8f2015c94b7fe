"""Provider invoice model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.models._base import Base, CreatedAtMixin, IdMixin, JSONType


class ProviderInvoice(Base, IdMixin, CreatedAtMixin):
    """Externally reported provider cost, in whole cents."""

    __tablename__ = "provider_invoice"

    provider: Mapped[str] = mapped_column(String(100), nullable=False)
    invoice_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    invoice_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)
    reconciled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (Index("idx_provider_invoice_provider_date", "provider", "invoice_date"),)
