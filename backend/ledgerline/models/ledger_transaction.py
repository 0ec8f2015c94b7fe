"""Ledger transaction (journal entry) model."""

from typing import Optional
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ledgerline.models._base import Base, CreatedAtMixin, IdMixin, JSONType


class LedgerTransaction(Base, IdMixin, CreatedAtMixin):
    """Immutable journal entry.

    Positive amounts credit the user, negative amounts debit. Platform-level
    entries (provider accruals, fee revenue) have no user.
    """

    __tablename__ = "ledger_transaction"

    user_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("billing_user.id", name="fk_ledger_transaction_user_id"), nullable=True
    )
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    amount_micro_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    provider_cost_micro_cents: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    fee_micro_cents: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    reference_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    idempotency_key: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    provider: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    entry_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    __table_args__ = (
        Index("idx_ledger_transaction_user_created", "user_id", "created_at"),
        Index("idx_ledger_transaction_type_created", "type", "created_at"),
        Index("idx_ledger_transaction_reference", "reference_id"),
    )
