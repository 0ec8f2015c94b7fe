"""Pydantic schemas for the API and repositories."""

from .billing_user import (
    BalanceResponse,
    BillingUser,
    BillingUserCreate,
    SignupRequest,
    SignupResponse,
)
from .idempotency_key import IdempotencyKeyCreate
from .ledger_transaction import LedgerTransaction, LedgerTransactionCreate
from .pricing import ModelTokenPrice, ModelTokenPriceCreate, SetPriceRequest, SetPriceResponse
from .reconciliation import (
    AdjustmentRequest,
    AdjustmentResponse,
    BillingAnalyticsResponse,
    DateRange,
    LowBalanceUser,
    ProviderInvoiceCreate,
    ProviderInvoiceRecorded,
    PurgeResponse,
    ReconcileInvoicesRequest,
    ReconcileInvoicesResponse,
    ReconciliationResponse,
)
from .topup import TopupCreate, TopupRequest, TopupResponse
from .usage import (
    BalanceCheckResponse,
    UsageChargeRequest,
    UsageChargeResponse,
    UsageLog,
    UsageLogCreate,
)
