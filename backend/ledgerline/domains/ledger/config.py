"""Billing configuration injected into the ledger services.

Money constants are never read from module globals inside the domain; each
service receives a ``BillingConfig`` at construction so tests can run with
alternate rates.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ledgerline.domains.ledger.money import cents_to_micro

if TYPE_CHECKING:
    from ledgerline.core.config import Settings


@dataclass(frozen=True)
class BillingConfig:
    """Rates, caps and limits for the billing engine."""

    signup_credit_micro: int = cents_to_micro(200)
    bonus_percent: int = 20
    bonus_cap_micro: int = cents_to_micro(500)
    fee_bps: int = 1400
    max_amount_cents: int = 100_000_000
    max_tokens_per_call: int = 10_000_000
    max_price_micro_per_token: int = 100_000_000_000
    cas_max_attempts: int = 5
    cas_retry_max_wait_seconds: float = 0.05
    idempotency_retention_days: int = 90
    reconciliation_tolerance_cents: int = 100
    low_balance_threshold_micro: int = cents_to_micro(100)
    default_estimated_input_tokens: int = 1000
    default_estimated_output_tokens: int = 2000

    @classmethod
    def from_settings(cls, settings: "Settings") -> "BillingConfig":
        """Build the config from application settings."""
        return cls(
            signup_credit_micro=cents_to_micro(settings.SIGNUP_CREDIT_CENTS),
            bonus_percent=settings.FIRST_TOPUP_BONUS_PERCENT,
            bonus_cap_micro=cents_to_micro(settings.FIRST_TOPUP_BONUS_CAP_CENTS),
            fee_bps=settings.PLATFORM_FEE_BPS,
            max_amount_cents=settings.MAX_AMOUNT_CENTS,
            max_tokens_per_call=settings.MAX_TOKENS_PER_CALL,
            max_price_micro_per_token=settings.MAX_PRICE_MICRO_PER_TOKEN,
            cas_max_attempts=settings.BALANCE_CAS_MAX_ATTEMPTS,
            idempotency_retention_days=settings.IDEMPOTENCY_RETENTION_DAYS,
            reconciliation_tolerance_cents=settings.RECONCILIATION_TOLERANCE_CENTS,
            low_balance_threshold_micro=cents_to_micro(settings.LOW_BALANCE_THRESHOLD_CENTS),
        )
