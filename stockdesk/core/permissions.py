from collections.abc import Callable

from fastapi import Depends, HTTPException, status

from stockdesk.core.security_current import CurrentUser, get_current_user
from stockdesk.models.user import ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF, USER_ROLES


def require_roles(*allowed_roles: str) -> Callable[[CurrentUser], CurrentUser]:
    normalized_allowed = {role.strip().upper() for role in allowed_roles if role.strip()}
    if not normalized_allowed:
        raise ValueError("At least one allowed role is required")
    unknown = normalized_allowed - set(USER_ROLES)
    if unknown:
        raise ValueError(f"Unknown role(s): {', '.join(sorted(unknown))}")

    def dependency(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if (current.role or "").upper() not in normalized_allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this action",
            )
        return current

    return dependency


require_staff = require_roles(ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF)
require_manager = require_roles(ROLE_ADMIN, ROLE_MANAGER)
require_admin = require_roles(ROLE_ADMIN)


def include_deleted(requested: bool, current: CurrentUser) -> bool:
    """withDeleted is an admin-only view; other roles silently get live rows."""
    return bool(requested) and current.is_admin
