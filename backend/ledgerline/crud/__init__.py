"""CRUD singletons, one per table."""

from .crud_balance import balance
from .crud_billing_user import billing_user
from .crud_idempotency_key import idempotency_key
from .crud_ledger_transaction import ledger_transaction
from .crud_model_token_price import model_token_price
from .crud_provider_invoice import provider_invoice
from .crud_topup import topup
from .crud_usage_log import usage_log

__all__ = [
    "balance",
    "billing_user",
    "idempotency_key",
    "ledger_transaction",
    "model_token_price",
    "provider_invoice",
    "topup",
    "usage_log",
]
