"""Reconciliation value types."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class BillingAnalytics:
    """Journal and usage aggregates for a window, in micro-cents."""

    total_provider_cost_micro: int = 0
    total_fees_micro: int = 0
    total_topups_micro: int = 0
    total_bonuses_micro: int = 0
    total_signup_credits_micro: int = 0
    total_admin_adjustments_micro: int = 0
    unique_users: int = 0
    total_usage_calls: int = 0
    failed_insufficient_funds: int = 0


@dataclass(frozen=True)
class ReconciliationReport:
    """Recorded provider cost against invoiced cost, in whole cents."""

    recorded_cost_cents: int
    invoiced_cents: int
    variance_cents: int
    reconciled: bool
    invoice_count: int


@dataclass(frozen=True)
class AdjustmentResult:
    """Outcome of an admin balance correction."""

    transaction_id: UUID
    new_balance_micro: int
    replayed: bool = False


@dataclass(frozen=True)
class LowBalanceEntry:
    """A user under the low-balance threshold."""

    user_id: UUID
    external_id: str
    balance_micro: int
    email: Optional[str] = None
    last_topup_at: Optional[datetime] = None
