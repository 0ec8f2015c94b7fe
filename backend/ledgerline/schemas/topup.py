"""Topup schemas."""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class TopupCreate(BaseModel):
    """Schema for recording an applied topup."""

    user_id: UUID
    amount_micro_cents: int = Field(..., ge=0)
    bonus_micro_cents: int = Field(0, ge=0)
    payment_provider: str
    payment_reference: str
    idempotency_key: Optional[str] = None


class TopupRequest(BaseModel):
    """Manual topup request (admin or trusted internal callers)."""

    external_user_id: str = Field(..., min_length=1, max_length=255)
    amount_cents: int = Field(..., description="Whole cents received from the provider")
    provider: str = Field("manual", max_length=50)
    payment_reference: str = Field(..., min_length=1, max_length=255)
    idempotency_key: Optional[str] = Field(None, max_length=255)


class TopupResponse(BaseModel):
    """Result of applying a topup."""

    topup_id: UUID
    amount_micro: int
    bonus_micro: int
    new_balance_micro: int
    replayed: bool = False
