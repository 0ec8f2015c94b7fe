"""Shared models for the backend."""

from enum import Enum


class AuthMethod(str, Enum):
    """How a request was authenticated."""

    SYSTEM = "system"
    USER_HEADER = "user_header"
    ADMIN_KEY = "admin_key"
    WEBHOOK = "webhook"


class BillingUserStatus(str, Enum):
    """Billing user status enum."""

    ACTIVE = "active"
    SUSPENDED = "suspended"


class TransactionType(str, Enum):
    """Journal entry types."""

    SIGNUP_CREDIT = "signup_credit"
    TOPUP = "topup"
    BONUS = "bonus"
    MODEL_CHARGE = "model_charge"
    PROVIDER_PAYABLE_ACCRUAL = "provider_payable_accrual"
    FEE_REVENUE = "fee_revenue"
    ADMIN_ADJUST = "admin_adjust"


class OperationType(str, Enum):
    """Idempotency-guarded operation types."""

    SIGNUP = "signup"
    TOPUP = "topup"
    USAGE_CHARGE = "usage_charge"
    ADMIN_ADJUST = "admin_adjust"


class TopupStatus(str, Enum):
    """Topup status enum."""

    APPLIED = "applied"


class UsageStatus(str, Enum):
    """Usage log status enum."""

    CHARGED = "charged"
    FAILED = "failed"
