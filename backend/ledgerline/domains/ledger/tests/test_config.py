"""Unit tests for building BillingConfig from settings."""

import pytest

from ledgerline.core.config.settings import Settings
from ledgerline.domains.ledger.config import BillingConfig
from ledgerline.domains.ledger.exceptions import (
    BalanceVersionConflictError,
    ConcurrencyConflictError,
)
from ledgerline.domains.ledger.retry import run_with_cas_retry


class TestFromSettings:
    def test_cas_attempts_setting_is_the_total_attempt_count(self):
        settings = Settings(_env_file=None, BALANCE_CAS_MAX_ATTEMPTS=3)

        config = BillingConfig.from_settings(settings)

        assert config.cas_max_attempts == 3

    def test_cas_attempts_below_one_rejected(self):
        with pytest.raises(ValueError):
            Settings(_env_file=None, BALANCE_CAS_MAX_ATTEMPTS=0)

    @pytest.mark.asyncio
    async def test_configured_attempts_bound_the_retry_loop(self):
        config = BillingConfig.from_settings(
            Settings(_env_file=None, BALANCE_CAS_MAX_ATTEMPTS=4)
        )
        calls = 0

        async def op():
            nonlocal calls
            calls += 1
            raise BalanceVersionConflictError()

        with pytest.raises(ConcurrencyConflictError):
            await run_with_cas_retry(
                op,
                operation_name="topup",
                max_attempts=config.cas_max_attempts,
                max_wait_seconds=0,
            )

        assert calls == 4
