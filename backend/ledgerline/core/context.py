"""Base context for all operations.

Carries request identity and a contextual logger. The API layer extends it
with authentication details; background paths (webhooks, maintenance) use it
directly.
"""

from dataclasses import dataclass, field
from typing import Dict

from ledgerline.core.logging import ContextualLogger


@dataclass
class BaseContext:
    """Base context for all operations.

    ``logger`` is keyword-only with a default of None; when omitted it is
    derived from ``request_id`` in __post_init__.
    """

    request_id: str = ""

    logger: ContextualLogger = field(default=None, kw_only=True, repr=False)

    def __post_init__(self):
        """Auto-derive logger from request identity if not provided."""
        if self.logger is None:
            from ledgerline.core.logging import logger as base_logger

            dims: Dict[str, str] = {}
            if self.request_id:
                dims["request_id"] = self.request_id
            self.logger = base_logger.with_context(**dims)
