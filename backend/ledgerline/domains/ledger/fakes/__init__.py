"""Fakes for ledger domain testing."""

from ledgerline.domains.ledger.fakes.repository import (
    FakeBalanceRepository,
    FakeIdempotencyKeyRepository,
    FakeTransactionRepository,
)

__all__ = [
    "FakeBalanceRepository",
    "FakeIdempotencyKeyRepository",
    "FakeTransactionRepository",
]
