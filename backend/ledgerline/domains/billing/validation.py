"""Boundary validation for billing input.

Everything here runs before any read or write. Amount bounds live here and
not in the money helpers, which accept any int.
"""

from typing import Any, Optional

from ledgerline.domains.billing.exceptions import BillingValidationError
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.money import cents_to_micro

MAX_MODEL_ID_LENGTH = 100
MAX_IDEMPOTENCY_KEY_LENGTH = 255


def _require_int(value: Any, field: str) -> int:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise BillingValidationError(f"{field} must be an integer", field=field)
    return value


def validate_amount_cents(amount_cents: Any, config: BillingConfig, field: str = "amount") -> int:
    """Whole-cent amount in ``[0, max_amount_cents]``."""
    amount_cents = _require_int(amount_cents, field)
    if amount_cents < 0:
        raise BillingValidationError(f"{field} must not be negative", field=field)
    if amount_cents > config.max_amount_cents:
        raise BillingValidationError(
            f"{field} exceeds the maximum of {config.max_amount_cents} cents", field=field
        )
    return amount_cents


def validate_amount_micro(amount_micro: Any, config: BillingConfig, field: str = "amount") -> int:
    """Micro-cent credit in ``[0, max_amount]``."""
    amount_micro = _require_int(amount_micro, field)
    if amount_micro < 0:
        raise BillingValidationError(f"{field} must not be negative", field=field)
    if amount_micro > cents_to_micro(config.max_amount_cents):
        raise BillingValidationError(f"{field} exceeds the maximum allowed amount", field=field)
    return amount_micro


def validate_adjustment_micro(amount_micro: Any, config: BillingConfig) -> int:
    """Signed, non-zero adjustment whose magnitude is within the maximum."""
    amount_micro = _require_int(amount_micro, "amount")
    if amount_micro == 0:
        raise BillingValidationError("Adjustment amount must not be zero", field="amount")
    if abs(amount_micro) > cents_to_micro(config.max_amount_cents):
        raise BillingValidationError(
            "Adjustment exceeds the maximum allowed amount", field="amount"
        )
    return amount_micro


def validate_token_count(tokens: Any, config: BillingConfig, field: str) -> int:
    """Token count in ``[0, max_tokens_per_call]``."""
    tokens = _require_int(tokens, field)
    if tokens < 0:
        raise BillingValidationError(f"{field} must not be negative", field=field)
    if tokens > config.max_tokens_per_call:
        raise BillingValidationError(
            f"{field} exceeds the maximum of {config.max_tokens_per_call}", field=field
        )
    return tokens


def validate_price_micro(price: Any, config: BillingConfig, field: str) -> int:
    """Per-token price in ``[0, max_price_micro_per_token]``."""
    price = _require_int(price, field)
    if price < 0:
        raise BillingValidationError(f"{field} must not be negative", field=field)
    if price > config.max_price_micro_per_token:
        raise BillingValidationError(f"{field} exceeds the maximum price", field=field)
    return price


def validate_model_id(model_id: Any) -> str:
    """Non-blank model identifier of bounded length."""
    if not isinstance(model_id, str) or not model_id.strip():
        raise BillingValidationError("model_id is required", field="model_id")
    if len(model_id) > MAX_MODEL_ID_LENGTH:
        raise BillingValidationError(
            f"model_id must be at most {MAX_MODEL_ID_LENGTH} characters", field="model_id"
        )
    return model_id


def validate_idempotency_key(key: Optional[str]) -> Optional[str]:
    """Optional key of bounded length; blank keys count as absent."""
    if key is None:
        return None
    if not isinstance(key, str):
        raise BillingValidationError("idempotency_key must be a string", field="idempotency_key")
    key = key.strip()
    if not key:
        return None
    if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
        raise BillingValidationError(
            f"idempotency_key must be at most {MAX_IDEMPOTENCY_KEY_LENGTH} characters",
            field="idempotency_key",
        )
    return key


def validate_reason(reason: Any) -> str:
    """Non-blank free-text reason."""
    if not isinstance(reason, str) or not reason.strip():
        raise BillingValidationError("reason is required", field="reason")
    return reason.strip()
