"""Dependencies that are used in the API endpoints."""

import hmac
import uuid
from typing import Optional, get_type_hints

from fastapi import Depends, Header, HTTPException, Request

from ledgerline.api.context import ApiContext
from ledgerline.core import container as container_mod
from ledgerline.core.config import settings
from ledgerline.core.container import Container
from ledgerline.core.exceptions import PermissionException
from ledgerline.core.logging import logger
from ledgerline.core.shared_models import AuthMethod
from ledgerline.db.session import get_db
from ledgerline.domains.billing.types import ExternalId

__all__ = [
    "Inject",
    "get_container",
    "get_context",
    "get_current_user",
    "get_db",
    "require_admin",
]


def _admin_key_matches(candidate: Optional[str]) -> bool:
    """Constant-time comparison against the configured admin key."""
    if not candidate or not settings.ADMIN_API_KEY:
        return False
    return hmac.compare_digest(candidate.encode(), settings.ADMIN_API_KEY.encode())


async def get_context(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
    x_admin_id: Optional[str] = Header(None, alias="X-Admin-Id"),
) -> ApiContext:
    """Build the request context from the identity headers.

    ``X-User-Id`` names the end user as known to the identity provider.
    ``X-Admin-Key`` unlocks operator routes; ``X-Admin-Id`` is recorded on the
    changes the operator makes.

    Args:
        request: Incoming request
        x_user_id: External user id
        x_admin_key: Shared admin secret
        x_admin_id: Operator label for audit fields

    Returns:
        ApiContext with a logger carrying the request dimensions
    """
    request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
    external_user_id = x_user_id.strip() if x_user_id and x_user_id.strip() else None

    if _admin_key_matches(x_admin_key):
        auth_method = AuthMethod.ADMIN_KEY
        admin_id = (x_admin_id or "").strip() or "admin"
    else:
        if x_admin_key:
            logger.with_context(request_id=request_id).warning("Rejected admin key")
        auth_method = AuthMethod.USER_HEADER if external_user_id else AuthMethod.SYSTEM
        admin_id = None

    ctx = ApiContext(
        request_id=request_id,
        auth_method=auth_method,
        external_user_id=external_user_id,
        admin_id=admin_id,
    )
    ctx.logger = logger.with_context(**ctx.to_log_dict())
    request.state.api_context = ctx
    return ctx


async def require_admin(ctx: ApiContext = Depends(get_context)) -> ApiContext:
    """Reject callers without a valid ``X-Admin-Key``.

    Raises:
        PermissionException: Mapped to 403
    """
    if not ctx.is_admin:
        raise PermissionException("Admin key required")
    return ctx


async def get_current_user(ctx: ApiContext = Depends(get_context)) -> ExternalId:
    """The calling end user.

    Raises:
        HTTPException: 401 when ``X-User-Id`` is missing
    """
    ref = ctx.user_ref
    if ref is None:
        raise HTTPException(status_code=401, detail="X-User-Id header is required")
    return ref


# ---------------------------------------------------------------------------
# Container injection
# ---------------------------------------------------------------------------


def get_container() -> Container:
    """Return the global container.

    Overridden in tests via ``app.dependency_overrides[get_container]``.

    Raises:
        RuntimeError: If the container has not been initialized
    """
    if container_mod.container is None:
        raise RuntimeError("Container not initialized. Call initialize_container() first.")
    return container_mod.container


_INJECT_CACHE: dict[type, str] = {}


def _resolve_field_name(protocol_type: type) -> str:
    """Find the Container field whose annotation is ``protocol_type``."""
    if protocol_type in _INJECT_CACHE:
        return _INJECT_CACHE[protocol_type]

    for name, hint in get_type_hints(Container).items():
        if hint is protocol_type:
            _INJECT_CACHE[protocol_type] = name
            return name

    raise TypeError(f"Container has no field of type {protocol_type!r}")


def Inject(protocol_type: type):  # noqa: N802
    """Resolve a protocol implementation from the container.

    Usage:
        @router.post("/charge")
        async def charge(
            usage: UsageChargeProcessorProtocol = Inject(UsageChargeProcessorProtocol),
        ):
            ...
    """
    field_name = _resolve_field_name(protocol_type)

    def _resolve(c: Container = Depends(get_container)):
        return getattr(c, field_name)

    return Depends(_resolve)
