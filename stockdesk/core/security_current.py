from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockdesk.core.config import settings
from stockdesk.core.deps import get_db
from stockdesk.core.security import TokenValidationError, decode_token
from stockdesk.models.user import ROLE_ADMIN, User, UserRole

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    user: User
    role: str
    permissions: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _extract_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> CurrentUser:
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = decode_token(token)
    except TokenValidationError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc

    user = db.execute(
        select(User).where(User.id == payload["sub"], User.deleted_at.is_(None))
    ).scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    assignment = db.execute(
        select(UserRole).where(UserRole.user_id == user.id, UserRole.deleted_at.is_(None))
    ).scalar_one_or_none()
    if not assignment or not assignment.is_active:
        raise HTTPException(status_code=403, detail="User has no active role")

    return CurrentUser(user=user, role=assignment.role, permissions=list(assignment.permissions or []))
