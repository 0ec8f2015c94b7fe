"""Usage value types."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class ChargeBreakdown:
    """Cost of one call, before it touches any balance."""

    provider_cost_micro: int
    fee_micro: int

    @property
    def total_micro(self) -> int:
        """What the user pays."""
        return self.provider_cost_micro + self.fee_micro


@dataclass(frozen=True)
class UsageChargeResult:
    """Outcome of a usage charge.

    ``charged`` is False when the balance could not cover ``total_micro``;
    ``balance_micro`` is then the untouched balance.
    """

    charged: bool
    provider_cost_micro: int
    fee_micro: int
    total_micro: int
    balance_micro: int
    usage_log_id: UUID
    replayed: bool = False


@dataclass(frozen=True)
class BalanceCheck:
    """Advisory affordability estimate."""

    has_sufficient_balance: bool
    estimated_cost_micro: int
    current_balance_micro: int
