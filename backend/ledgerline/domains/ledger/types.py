"""Value types for the ledger domain."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from ledgerline.core.shared_models import TransactionType


@dataclass(frozen=True)
class BalanceSnapshot:
    """A balance as read at one version.

    ``version == 0`` means no row exists yet; the balance is then zero.
    """

    user_id: UUID
    balance_micro: int = 0
    reserved_micro: int = 0
    version: int = 0
    updated_at: Optional[datetime] = None

    @property
    def exists(self) -> bool:
        """Whether a balance row has been written."""
        return self.version > 0


@dataclass(frozen=True)
class JournalEntry:
    """One line of a posting, before it is written."""

    type: TransactionType
    amount_micro: int
    user_id: Optional[UUID] = None
    provider_cost_micro: Optional[int] = None
    fee_micro: Optional[int] = None
    reference_id: Optional[str] = None
    idempotency_key: Optional[str] = None
    provider: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IdempotencyRecord:
    """A completed guarded operation."""

    key: str
    operation_type: str
    result_reference: str
    user_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class IdempotencyCheck:
    """Outcome of ``begin_or_replay``."""

    is_new: bool
    prior: Optional[IdempotencyRecord] = None

    @property
    def is_replay(self) -> bool:
        """Whether a prior result exists for the key."""
        return not self.is_new
