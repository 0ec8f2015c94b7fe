"""Models for the application."""

from ._base import Base
from .balance import Balance
from .billing_user import BillingUser
from .idempotency_key import IdempotencyKey
from .ledger_transaction import LedgerTransaction
from .model_token_price import ModelTokenPrice
from .provider_invoice import ProviderInvoice
from .topup import Topup
from .usage_log import UsageLog

__all__ = [
    "Base",
    "Balance",
    "BillingUser",
    "IdempotencyKey",
    "LedgerTransaction",
    "ModelTokenPrice",
    "ProviderInvoice",
    "Topup",
    "UsageLog",
]
