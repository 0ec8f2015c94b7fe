"""Metrics protocols for dependency injection.

- BillingMetrics: counters for money-moving operations
- MetricsRenderer: metrics serialization for scraping
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class BillingMetrics(Protocol):
    """Protocol for billing instrumentation."""

    def inc_idempotency_hit(self, operation: str) -> None:
        """Count a replayed (deduplicated) operation."""
        ...

    def inc_cas_retry(self, operation: str) -> None:
        """Count a balance version conflict that triggered a retry."""
        ...

    def inc_usage_charge(self, outcome: str) -> None:
        """Count a usage charge by outcome (``charged`` / ``failed``)."""
        ...

    def inc_topup(self) -> None:
        """Count an applied topup."""
        ...

    def add_charged_micro_cents(self, amount: int) -> None:
        """Accumulate the total micro-cents charged for usage."""
        ...


@runtime_checkable
class MetricsRenderer(Protocol):
    """Serialize collected metrics for a scraper."""

    @property
    def content_type(self) -> str:
        """Media type of the rendered payload."""
        ...

    def generate(self) -> bytes:
        """Render all registered metrics."""
        ...
