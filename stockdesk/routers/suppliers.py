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
from stockdesk.schemas.common import ApiResponse, PageOut, SortOrder
from stockdesk.schemas.supplier import SupplierCreate, SupplierOut, SupplierStatsOut, SupplierUpdate
from stockdesk.services import supplier_service

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[SupplierOut],
    summary="Create supplier",
    responses=error_responses(401, 403, 409, 422, 500),
)
def create_supplier(
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    supplier = supplier_service.create_supplier(db, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(
        SupplierOut.model_validate(supplier),
        message=API_MESSAGES["suppliers.created"],
        status_code=201,
    )


@router.get(
    "",
    response_model=ApiResponse[PageOut[SupplierOut]],
    summary="List suppliers",
    responses=error_responses(401, 403, 422, 500),
)
def list_suppliers(
    name: str | None = Query(default=None),
    email: str | None = Query(default=None),
    phone: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: Literal["name", "email", "created_at"] = Query(default="created_at", alias="sortBy"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    result = supplier_service.list_suppliers(
        db,
        name=name,
        email=email,
        phone=phone,
        is_active=is_active,
        with_deleted=include_deleted(with_deleted, current),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    items = [SupplierOut.model_validate(s) for s in result.items]
    return envelope(page_data(result, items), message=API_MESSAGES["suppliers.fetched"])


@router.get(
    "/active/list",
    response_model=ApiResponse[list[SupplierOut]],
    summary="List active suppliers",
    responses=error_responses(401, 403, 500),
)
def list_active_suppliers(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    suppliers = supplier_service.list_active_suppliers(db)
    return envelope(
        [SupplierOut.model_validate(s) for s in suppliers],
        message=API_MESSAGES["suppliers.fetched"],
    )


@router.get(
    "/search/query",
    response_model=ApiResponse[list[SupplierOut]],
    summary="Search suppliers by name, contact or email",
    responses=error_responses(401, 403, 422, 500),
)
def search_suppliers(
    q: str = Query(default=""),
    limit: int = Query(default=settings.search_result_limit, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    suppliers = supplier_service.search_suppliers(db, q=q, limit=limit)
    return envelope(
        [SupplierOut.model_validate(s) for s in suppliers],
        message=API_MESSAGES["suppliers.fetched"],
    )


@router.get(
    "/stats/overview",
    response_model=ApiResponse[SupplierStatsOut],
    summary="Supplier counts by state",
    responses=error_responses(401, 403, 500),
)
def supplier_stats(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    stats = supplier_service.supplier_stats(db)
    return envelope(SupplierStatsOut(**stats), message=API_MESSAGES["suppliers.stats"])


@router.get(
    "/{supplier_id}",
    response_model=ApiResponse[SupplierOut],
    summary="Get supplier",
    responses=error_responses(401, 403, 404, 500),
)
def get_supplier(
    supplier_id: str,
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    supplier = supplier_service.get_supplier(
        db, supplier_id=supplier_id, with_deleted=include_deleted(with_deleted, current)
    )
    return envelope(SupplierOut.model_validate(supplier), message=API_MESSAGES["suppliers.fetched_one"])


@router.patch(
    "/{supplier_id}",
    response_model=ApiResponse[SupplierOut],
    summary="Update supplier",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def update_supplier(
    supplier_id: str,
    payload: SupplierUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    supplier = supplier_service.update_supplier(
        db, supplier_id=supplier_id, payload=payload, actor_id=current.id
    )
    db.commit()
    return envelope(SupplierOut.model_validate(supplier), message=API_MESSAGES["suppliers.updated"])


@router.delete(
    "/{supplier_id}",
    response_model=ApiResponse[SupplierOut],
    summary="Soft-delete supplier",
    responses=error_responses(401, 403, 404, 500),
)
def delete_supplier(
    supplier_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    supplier = supplier_service.soft_delete_supplier(db, supplier_id=supplier_id, actor_id=current.id)
    db.commit()
    return envelope(SupplierOut.model_validate(supplier), message=API_MESSAGES["suppliers.deleted"])


@router.post(
    "/{supplier_id}/restore",
    response_model=ApiResponse[SupplierOut],
    summary="Restore a soft-deleted supplier",
    responses=error_responses(401, 403, 404, 500),
)
def restore_supplier(
    supplier_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    supplier = supplier_service.restore_supplier(db, supplier_id=supplier_id, actor_id=current.id)
    db.commit()
    return envelope(SupplierOut.model_validate(supplier), message=API_MESSAGES["suppliers.restored"])
