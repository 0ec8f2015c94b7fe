"""Usage schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UsageLogCreate(BaseModel):
    """Schema for recording a metered call attempt."""

    model_config = ConfigDict(protected_namespaces=())

    user_id: UUID
    model_id: str
    provider_call_id: Optional[str] = None
    input_tokens: int
    output_tokens: int
    price_micro_cents_per_input_token: int
    price_micro_cents_per_output_token: int
    provider_cost_micro_cents: int
    fee_micro_cents: int
    total_charge_micro_cents: int
    charge_transaction_id: Optional[UUID] = None
    idempotency_key: Optional[str] = None
    status: str


class UsageLog(BaseModel):
    """Usage log row as returned to clients."""

    id: UUID
    model_id: str
    provider_call_id: Optional[str] = None
    input_tokens: int
    output_tokens: int
    provider_cost_micro_cents: int
    fee_micro_cents: int
    total_charge_micro_cents: int
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())


class UsageChargeRequest(BaseModel):
    """Request body reported by the metering layer after a model call."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    provider_call_id: Optional[str] = Field(None, max_length=255)
    input_tokens: int
    output_tokens: int
    idempotency_key: Optional[str] = None


class UsageChargeResponse(BaseModel):
    """Outcome of a usage charge. ``charged`` is False on insufficient funds."""

    charged: bool
    provider_cost_micro: int
    fee_micro: int
    total_micro: int
    balance_micro: int
    usage_log_id: UUID
    replayed: bool = False


class BalanceCheckResponse(BaseModel):
    """Advisory pre-flight affordability check."""

    has_sufficient_balance: bool
    estimated_cost_micro: int
    current_balance_micro: int
