"""HTTP API request context.

Extends BaseContext with request-specific fields: how the caller
authenticated and who they are. Only the API layer creates these via
deps.get_context().
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ledgerline.core.context import BaseContext
from ledgerline.core.shared_models import AuthMethod
from ledgerline.domains.billing.types import ExternalId


@dataclass
class ApiContext(BaseContext):
    """Full HTTP request context.

    Created by deps.get_context() and injected into endpoints via Depends().
    """

    # Authentication context
    auth_method: AuthMethod = AuthMethod.SYSTEM

    # Caller identity: an end user (X-User-Id) and/or an operator (X-Admin-Key)
    external_user_id: Optional[str] = None
    admin_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        """Whether the request carried a valid admin key."""
        return self.auth_method == AuthMethod.ADMIN_KEY

    @property
    def user_ref(self) -> Optional[ExternalId]:
        """The caller as a billing user reference, if one was supplied."""
        return ExternalId(self.external_user_id) if self.external_user_id else None

    def to_log_dict(self) -> Dict[str, Any]:
        """Dimensions worth attaching to request logs."""
        dims: Dict[str, Any] = {"request_id": self.request_id, "auth_method": self.auth_method}
        if self.external_user_id:
            dims["external_user_id"] = self.external_user_id
        if self.admin_id:
            dims["admin_id"] = self.admin_id
        return dims
