from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockdesk.core.api_docs import error_responses
from stockdesk.core.config import settings
from stockdesk.core.deps import get_db
from stockdesk.core.messages import API_MESSAGES
from stockdesk.core.permissions import require_admin
from stockdesk.core.responses import envelope, page_data
from stockdesk.core.security_current import CurrentUser
from stockdesk.schemas.common import ApiResponse, PageOut, SortOrder
from stockdesk.schemas.user import RoleName, UserCreate, UserOut, UserUpdate
from stockdesk.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[UserOut],
    summary="Create user with a role",
    responses=error_responses(401, 403, 409, 422, 500),
)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    user, assignment = user_service.create_user(db, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(
        UserOut(**user_service.user_view(user, assignment)),
        message=API_MESSAGES["users.created"],
        status_code=201,
    )


@router.get(
    "",
    response_model=ApiResponse[PageOut[UserOut]],
    summary="List users",
    responses=error_responses(401, 403, 422, 500),
)
def list_users(
    role: RoleName | None = Query(default=None),
    email: str | None = Query(default=None),
    is_email_verified: bool | None = Query(default=None, alias="isEmailVerified"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: Literal["email", "createdAt", "role"] = Query(default="createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    result = user_service.list_users(
        db,
        role=role,
        email=email,
        is_email_verified=is_email_verified,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    roles = user_service.role_map(db, result.items)
    items = [UserOut(**user_service.user_view(u, roles.get(u.id))) for u in result.items]
    return envelope(page_data(result, items), message=API_MESSAGES["users.fetched"])


@router.get(
    "/role/{role}",
    response_model=ApiResponse[list[UserOut]],
    summary="List users holding a role",
    responses=error_responses(401, 403, 422, 500),
)
def list_users_by_role(
    role: RoleName,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    users = user_service.list_users_by_role(db, role=role)
    roles = user_service.role_map(db, users)
    return envelope(
        [UserOut(**user_service.user_view(u, roles.get(u.id))) for u in users],
        message=API_MESSAGES["users.fetched"],
    )


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserOut],
    summary="Get user",
    responses=error_responses(401, 403, 404, 500),
)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    user = user_service.get_user(db, user_id=user_id)
    roles = user_service.role_map(db, [user])
    return envelope(
        UserOut(**user_service.user_view(user, roles.get(user.id))),
        message=API_MESSAGES["users.fetched_one"],
    )


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserOut],
    summary="Update user and role assignment",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    user, assignment = user_service.update_user(db, user_id=user_id, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(
        UserOut(**user_service.user_view(user, assignment)),
        message=API_MESSAGES["users.updated"],
    )


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[UserOut],
    summary="Soft-delete user",
    responses=error_responses(401, 403, 404, 500),
)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    user = user_service.soft_delete_user(db, user_id=user_id, actor_id=current.id)
    db.commit()
    return envelope(UserOut(**user_service.user_view(user, None)), message=API_MESSAGES["users.deleted"])
