"""Fakes for pricing domain testing."""

from ledgerline.domains.pricing.fakes.repository import FakeModelTokenPriceRepository

__all__ = ["FakeModelTokenPriceRepository"]
