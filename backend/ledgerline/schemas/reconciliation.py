"""Reconciliation, analytics and admin schemas."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProviderInvoiceCreate(BaseModel):
    """Schema for recording a provider invoice."""

    provider: str = Field(..., min_length=1, max_length=100)
    invoice_date: datetime
    amount_cents: int = Field(..., ge=0)
    invoice_metadata: Optional[Dict[str, Any]] = Field(None, alias="metadata")

    model_config = ConfigDict(populate_by_name=True)


class DateRange(BaseModel):
    """Inclusive reporting window."""

    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def check_order(self) -> "DateRange":
        """Reject windows that end before they start."""
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class ReconciliationResponse(BaseModel):
    """Recorded provider cost against invoiced cost for a window."""

    recorded_cost_cents: int
    invoiced_cents: int
    variance_cents: int
    reconciled: bool
    invoice_count: int


class BillingAnalyticsResponse(BaseModel):
    """Journal and usage aggregates for a window, in micro-cents."""

    total_provider_cost_micro: int
    total_fees_micro: int
    total_topups_micro: int
    total_bonuses_micro: int
    total_signup_credits_micro: int
    total_admin_adjustments_micro: int
    unique_users: int
    total_usage_calls: int
    failed_insufficient_funds: int


class AdjustmentRequest(BaseModel):
    """Admin balance correction."""

    user_id: UUID
    amount_micro: int
    reason: str = Field(..., min_length=1, max_length=500)
    idempotency_key: Optional[str] = Field(None, max_length=255)


class AdjustmentResponse(BaseModel):
    """Result of an admin balance correction."""

    transaction_id: UUID
    new_balance_micro: int
    replayed: bool = False


class LowBalanceUser(BaseModel):
    """A user whose balance is under the alert threshold."""

    user_id: UUID
    external_id: str
    email: Optional[str] = None
    balance_micro: int
    last_topup_at: Optional[datetime] = None


class PurgeResponse(BaseModel):
    """Number of idempotency keys removed by retention cleanup."""

    deleted: int


class ProviderInvoiceRecorded(BaseModel):
    """Id of a newly recorded provider invoice."""

    invoice_id: UUID


class ReconcileInvoicesRequest(DateRange):
    """Window (and optional provider) whose invoices should be marked reconciled."""

    provider: Optional[str] = Field(None, max_length=100)


class ReconcileInvoicesResponse(BaseModel):
    """How many invoices were marked; 0 when the window is out of tolerance."""

    marked: int
