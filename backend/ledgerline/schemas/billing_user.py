"""Billing user schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BillingUserCreate(BaseModel):
    """Schema for creating a billing user."""

    external_id: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=320)
    name: Optional[str] = Field(None, max_length=255)


class BillingUser(BaseModel):
    """Billing user as returned to clients."""

    id: UUID
    external_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    status: str
    received_signup_credit: bool
    first_paid_topup_applied: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SignupRequest(BaseModel):
    """Request body for granting the signup credit."""

    email: Optional[str] = Field(None, max_length=320)
    name: Optional[str] = Field(None, max_length=255)
    idempotency_key: Optional[str] = Field(None, max_length=255)


class SignupResponse(BaseModel):
    """Result of a signup credit grant."""

    user_id: UUID
    initial_balance_micro: int
    replayed: bool = False


class BalanceResponse(BaseModel):
    """Current balance plus credit flags for a user."""

    user_id: UUID
    balance_micro: int
    balance_cents: int = Field(..., description="Rounded for display only")
    reserved_micro: int
    version: int
    received_signup_credit: bool
    first_paid_topup_applied: bool
