"""Unit tests for exception handlers in middleware.py.

Calls handlers directly to cover mappings that no endpoint currently triggers.
"""

from unittest.mock import MagicMock

import pytest

from ledgerline.api.middleware import (
    conflict_exception_handler,
    external_service_exception_handler,
    invalid_input_exception_handler,
    ledgerline_exception_handler,
)
from ledgerline.core.exceptions import ExternalServiceError, LedgerlineException
from ledgerline.domains.billing.exceptions import BillingValidationError
from ledgerline.domains.ledger.exceptions import ConcurrencyConflictError


@pytest.mark.asyncio
async def test_conflict_returns_409_with_retry_after():
    response = await conflict_exception_handler(MagicMock(), ConcurrencyConflictError(attempts=5))
    assert response.status_code == 409
    assert response.headers["Retry-After"] == "1"


@pytest.mark.asyncio
async def test_invalid_input_names_field():
    response = await invalid_input_exception_handler(
        MagicMock(), BillingValidationError("amount must not be negative", field="amount")
    )
    assert response.status_code == 422
    assert b'"field":"amount"' in response.body


@pytest.mark.asyncio
async def test_external_service_error_returns_502():
    response = await external_service_exception_handler(
        MagicMock(), ExternalServiceError(service_name="Stripe", message="timeout")
    )
    assert response.status_code == 502
    assert b"Stripe" in response.body


@pytest.mark.asyncio
async def test_unmapped_ledgerline_exception_returns_500():
    response = await ledgerline_exception_handler(MagicMock(), LedgerlineException("unexpected"))
    assert response.status_code == 500
    assert b"unexpected" in response.body
