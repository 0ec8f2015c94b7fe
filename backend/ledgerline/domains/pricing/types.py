"""Pricing value types."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID


@dataclass(frozen=True)
class ActivePrice:
    """Per-token rates in micro-cents, as used to price one call."""

    price_id: UUID
    model_id: str
    input_price_micro: int
    output_price_micro: int
    effective_from: datetime
    effective_to: Optional[datetime] = None
    provider: Optional[str] = None

    def cost_for(self, input_tokens: int, output_tokens: int) -> int:
        """Exact provider cost for the given token counts."""
        return input_tokens * self.input_price_micro + output_tokens * self.output_price_micro
