"""Ledger transaction schemas."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class LedgerTransactionCreate(BaseModel):
    """Schema for appending a journal entry."""

    user_id: Optional[UUID] = None
    type: str
    amount_micro_cents: int
    provider_cost_micro_cents: Optional[int] = None
    fee_micro_cents: Optional[int] = None
    reference_id: Optional[str] = None
    idempotency_key: Optional[str] = None
    provider: Optional[str] = None
    entry_metadata: Optional[Dict[str, Any]] = None


class LedgerTransaction(BaseModel):
    """Journal entry as returned to clients."""

    id: UUID
    user_id: Optional[UUID] = None
    type: str
    amount_micro_cents: int
    provider_cost_micro_cents: Optional[int] = None
    fee_micro_cents: Optional[int] = None
    reference_id: Optional[str] = None
    provider: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="entry_metadata")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)
