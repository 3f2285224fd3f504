from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockdesk.core.api_docs import error_responses
from stockdesk.core.config import settings
from stockdesk.core.deps import get_db
from stockdesk.core.messages import API_MESSAGES
from stockdesk.core.permissions import include_deleted, require_admin, require_manager, require_staff
from stockdesk.core.responses import envelope, page_data
from stockdesk.core.security_current import CurrentUser
from stockdesk.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from stockdesk.schemas.common import ApiResponse, CountOut, PageOut, SortOrder
from stockdesk.services import category_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[CategoryOut],
    summary="Create category",
    responses=error_responses(401, 403, 409, 422, 500),
)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    category = category_service.create_category(db, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(
        CategoryOut.model_validate(category),
        message=API_MESSAGES["categories.created"],
        status_code=201,
    )


@router.get(
    "",
    response_model=ApiResponse[PageOut[CategoryOut]],
    summary="List categories",
    responses=error_responses(401, 403, 422, 500),
)
def list_categories(
    name: str | None = Query(default=None, description="Partial, case-insensitive name match"),
    is_active: bool | None = Query(default=None),
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: Literal["name", "created_at"] = Query(default="created_at", alias="sortBy"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    result = category_service.list_categories(
        db,
        name=name,
        is_active=is_active,
        with_deleted=include_deleted(with_deleted, current),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items = [CategoryOut.model_validate(c) for c in result.items]
    return envelope(page_data(result, items), message=API_MESSAGES["categories.fetched"])


@router.get(
    "/active",
    response_model=ApiResponse[list[CategoryOut]],
    summary="List active categories",
    responses=error_responses(401, 403, 500),
)
def list_active_categories(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    categories = category_service.list_active_categories(db)
    return envelope(
        [CategoryOut.model_validate(c) for c in categories],
        message=API_MESSAGES["categories.fetched"],
    )


@router.get(
    "/search",
    response_model=ApiResponse[list[CategoryOut]],
    summary="Search active categories by name",
    responses=error_responses(401, 403, 422, 500),
)
def search_categories(
    q: str = Query(..., min_length=1),
    limit: int = Query(default=settings.search_result_limit, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    categories = category_service.search_categories(db, q=q, limit=limit)
    return envelope(
        [CategoryOut.model_validate(c) for c in categories],
        message=API_MESSAGES["categories.fetched"],
    )


@router.get(
    "/stats/count",
    response_model=ApiResponse[CountOut],
    summary="Count categories",
    responses=error_responses(401, 403, 500),
)
def count_categories(
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    count = category_service.count_categories(db, with_deleted=include_deleted(with_deleted, current))
    return envelope(CountOut(count=count), message=API_MESSAGES["categories.counted"])


@router.get(
    "/{category_id}",
    response_model=ApiResponse[CategoryOut],
    summary="Get category",
    responses=error_responses(401, 403, 404, 500),
)
def get_category(
    category_id: str,
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    category = category_service.get_category(
        db, category_id=category_id, with_deleted=include_deleted(with_deleted, current)
    )
    return envelope(CategoryOut.model_validate(category), message=API_MESSAGES["categories.fetched_one"])


@router.patch(
    "/{category_id}",
    response_model=ApiResponse[CategoryOut],
    summary="Update category",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def update_category(
    category_id: str,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    category = category_service.update_category(
        db, category_id=category_id, payload=payload, actor_id=current.id
    )
    db.commit()
    return envelope(CategoryOut.model_validate(category), message=API_MESSAGES["categories.updated"])


@router.patch(
    "/{category_id}/restore",
    response_model=ApiResponse[CategoryOut],
    summary="Restore a soft-deleted category",
    responses=error_responses(401, 403, 404, 500),
)
def restore_category(
    category_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    category = category_service.restore_category(db, category_id=category_id, actor_id=current.id)
    db.commit()
    return envelope(CategoryOut.model_validate(category), message=API_MESSAGES["categories.restored"])


@router.delete(
    "/{category_id}",
    response_model=ApiResponse[CategoryOut],
    summary="Soft-delete category",
    responses=error_responses(400, 401, 403, 404, 500),
)
def delete_category(
    category_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    category = category_service.soft_delete_category(db, category_id=category_id, actor_id=current.id)
    db.commit()
    return envelope(CategoryOut.model_validate(category), message=API_MESSAGES["categories.deleted"])


@router.delete(
    "/{category_id}/purge",
    response_model=ApiResponse[None],
    summary="Permanently delete category",
    responses=error_responses(401, 403, 404, 500),
)
def purge_category(
    category_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    category_service.purge_category(db, category_id=category_id, actor_id=current.id)
    db.commit()
    return envelope(None, message=API_MESSAGES["categories.purged"])
