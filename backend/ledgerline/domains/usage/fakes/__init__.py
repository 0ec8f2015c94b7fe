"""Fakes for usage domain testing."""

from ledgerline.domains.usage.fakes.repository import FakeUsageLogRepository

__all__ = ["FakeUsageLogRepository"]
