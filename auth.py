"""
Role-based access for the FleetGuard API

Callers identify themselves through request headers set by the upstream
gateway:

    x-role        FLEET | SUPERVISOR | OWNER
    x-vehicle-id  vehicle bound to a FLEET device (optional)

Missing role -> 401, role not allowed for the endpoint -> 403.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, Header
from pydantic import BaseModel

from errors import AuthenticationError, AuthorizationError
from fleetguard.models import UserRole

logger = logging.getLogger(__name__)


class CallerIdentity(BaseModel):
    """Identity resolved from the role headers"""

    role: UserRole
    vehicle_id: Optional[str] = None


# ============================================================================
# DEPENDENCY INJECTION FOR PROTECTED ROUTES
# ============================================================================
async def get_current_caller(
    x_role: Optional[str] = Header(None),
    x_vehicle_id: Optional[str] = Header(None),
) -> Optional[CallerIdentity]:
    """
    Resolve the caller from headers.
    Returns None when no role header is present.
    Raises AuthorizationError for an unknown role.
    """
    if not x_role or not x_role.strip():
        return None

    try:
        role = UserRole(x_role.strip().upper())
    except ValueError:
        logger.warning(f"🔒 Unknown role header: {x_role!r}")
        raise AuthorizationError(f"Unknown role '{x_role}'")

    vehicle_id = x_vehicle_id.strip() if x_vehicle_id and x_vehicle_id.strip() else None
    return CallerIdentity(role=role, vehicle_id=vehicle_id)


async def require_auth(
    caller: Optional[CallerIdentity] = Depends(get_current_caller),
) -> CallerIdentity:
    """Require a role header - raises 401 if missing"""
    if caller is None:
        raise AuthenticationError("x-role header required")
    return caller


def require_roles(*roles: UserRole) -> Callable:
    """Dependency allowing only the given roles (403 otherwise)"""
    allowed = {UserRole(r) for r in roles}

    async def _require(caller: CallerIdentity = Depends(require_auth)) -> CallerIdentity:
        if caller.role not in allowed:
            raise AuthorizationError(
                f"Role {caller.role.value} not allowed "
                f"(requires {', '.join(sorted(r.value for r in allowed))})"
            )
        return caller

    return _require


def ensure_vehicle_access(caller: CallerIdentity, vehicle_id: str) -> None:
    """A FLEET device bound to a vehicle may only report for that vehicle"""
    if (
        caller.role == UserRole.FLEET
        and caller.vehicle_id is not None
        and caller.vehicle_id != vehicle_id
    ):
        raise AuthorizationError(
            f"Device bound to {caller.vehicle_id} cannot report for {vehicle_id}"
        )
