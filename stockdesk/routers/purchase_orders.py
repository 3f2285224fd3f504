from datetime import date
from typing import Literal

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from stockdesk.core.api_docs import error_responses
from stockdesk.core.config import settings
from stockdesk.core.deps import get_db
from stockdesk.core.messages import API_MESSAGES
from stockdesk.core.permissions import include_deleted, require_manager, require_staff
from stockdesk.core.responses import envelope, page_data
from stockdesk.core.security_current import CurrentUser
from stockdesk.models.purchase_order import PurchaseOrder
from stockdesk.schemas.common import ApiResponse, PageOut, SortOrder
from stockdesk.schemas.purchase_order import (
    PurchaseOrderCreate,
    PurchaseOrderItemIn,
    PurchaseOrderItemOut,
    PurchaseOrderItemUpdate,
    PurchaseOrderOut,
    PurchaseOrderReceiveIn,
    PurchaseOrderStatsOut,
    PurchaseOrderStatus,
    PurchaseOrderUpdate,
)
from stockdesk.schemas.supplier import SupplierSummaryOut
from stockdesk.services import purchase_order_service

router = APIRouter(prefix="/purchase-orders", tags=["purchase-orders"])


def _orders_out(db: Session, orders: list[PurchaseOrder]) -> list[PurchaseOrderOut]:
    results = []
    for view in purchase_order_service.order_views(db, orders):
        out = PurchaseOrderOut.model_validate(view["order"])
        if view["supplier"] is not None:
            out.supplier = SupplierSummaryOut.model_validate(view["supplier"])
        out.items = [PurchaseOrderItemOut.model_validate(i) for i in view["items"]]
        results.append(out)
    return results


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[PurchaseOrderOut],
    summary="Create purchase order",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def create_purchase_order(
    payload: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    order = purchase_order_service.create_purchase_order(db, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(
        _orders_out(db, [order])[0],
        message=API_MESSAGES["purchase_orders.created"],
        status_code=201,
    )


@router.get(
    "",
    response_model=ApiResponse[PageOut[PurchaseOrderOut]],
    summary="List purchase orders",
    responses=error_responses(401, 403, 422, 500),
)
def list_purchase_orders(
    supplier_id: str | None = Query(default=None),
    status: PurchaseOrderStatus | None = Query(default=None),
    order_number: str | None = Query(default=None),
    order_date_from: date | None = Query(default=None),
    order_date_to: date | None = Query(default=None),
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    page: int = Query(default=1, description="Clamped to at least 1"),
    limit: int = Query(default=settings.default_page_size, description="Clamped to 1..100"),
    sort_by: Literal["order_date", "order_number", "total_amount", "created_at"] = Query(
        default="created_at", alias="sortBy"
    ),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    result = purchase_order_service.list_purchase_orders(
        db,
        supplier_id=supplier_id,
        status=status,
        order_number=order_number,
        order_date_from=order_date_from,
        order_date_to=order_date_to,
        with_deleted=include_deleted(with_deleted, current),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return envelope(
        page_data(result, _orders_out(db, result.items)),
        message=API_MESSAGES["purchase_orders.fetched"],
    )


@router.get(
    "/stats/overview",
    response_model=ApiResponse[PurchaseOrderStatsOut],
    summary="Purchase order counts by status",
    responses=error_responses(401, 403, 500),
)
def purchase_order_stats(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    stats = purchase_order_service.purchase_order_stats(db)
    return envelope(PurchaseOrderStatsOut(**stats), message=API_MESSAGES["purchase_orders.stats"])


@router.get(
    "/supplier/{supplier_id}",
    response_model=ApiResponse[list[PurchaseOrderOut]],
    summary="Recent purchase orders for a supplier",
    responses=error_responses(401, 403, 404, 422, 500),
)
def list_supplier_orders(
    supplier_id: str,
    limit: int = Query(default=10, description="Clamped to 1..50"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    orders = purchase_order_service.list_supplier_orders(db, supplier_id=supplier_id, limit=limit)
    return envelope(_orders_out(db, orders), message=API_MESSAGES["purchase_orders.fetched"])


@router.patch(
    "/items/{item_id}",
    response_model=ApiResponse[PurchaseOrderItemOut],
    summary="Update purchase order item",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def update_purchase_order_item(
    item_id: str,
    payload: PurchaseOrderItemUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    item = purchase_order_service.update_purchase_order_item(
        db, item_id=item_id, payload=payload, actor_id=current.id
    )
    db.commit()
    return envelope(
        PurchaseOrderItemOut.model_validate(item),
        message=API_MESSAGES["purchase_orders.item_updated"],
    )


@router.delete(
    "/items/{item_id}",
    response_model=ApiResponse[PurchaseOrderItemOut],
    summary="Remove purchase order item",
    responses=error_responses(400, 401, 403, 404, 500),
)
def remove_purchase_order_item(
    item_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    item = purchase_order_service.remove_purchase_order_item(db, item_id=item_id, actor_id=current.id)
    db.commit()
    return envelope(
        PurchaseOrderItemOut.model_validate(item),
        message=API_MESSAGES["purchase_orders.item_removed"],
    )


@router.get(
    "/{order_id}",
    response_model=ApiResponse[PurchaseOrderOut],
    summary="Get purchase order with supplier and items",
    responses=error_responses(401, 403, 404, 500),
)
def get_purchase_order(
    order_id: str,
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    order = purchase_order_service.get_purchase_order(
        db, order_id=order_id, with_deleted=include_deleted(with_deleted, current)
    )
    return envelope(_orders_out(db, [order])[0], message=API_MESSAGES["purchase_orders.fetched_one"])


@router.patch(
    "/{order_id}",
    response_model=ApiResponse[PurchaseOrderOut],
    summary="Update purchase order",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def update_purchase_order(
    order_id: str,
    payload: PurchaseOrderUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    order = purchase_order_service.update_purchase_order(
        db, order_id=order_id, payload=payload, actor_id=current.id
    )
    db.commit()
    return envelope(_orders_out(db, [order])[0], message=API_MESSAGES["purchase_orders.updated"])


@router.post(
    "/{order_id}/receive",
    response_model=ApiResponse[PurchaseOrderOut],
    summary="Receive a confirmed purchase order into stock",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def receive_purchase_order(
    order_id: str,
    payload: PurchaseOrderReceiveIn | None = Body(default=None),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    order = purchase_order_service.receive_purchase_order(
        db, order_id=order_id, payload=payload, actor_id=current.id
    )
    db.commit()
    return envelope(_orders_out(db, [order])[0], message=API_MESSAGES["purchase_orders.received"])


@router.delete(
    "/{order_id}",
    response_model=ApiResponse[PurchaseOrderOut],
    summary="Soft-delete purchase order",
    responses=error_responses(401, 403, 404, 500),
)
def delete_purchase_order(
    order_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    order = purchase_order_service.soft_delete_purchase_order(db, order_id=order_id, actor_id=current.id)
    db.commit()
    return envelope(_orders_out(db, [order])[0], message=API_MESSAGES["purchase_orders.deleted"])


@router.post(
    "/{order_id}/items",
    status_code=201,
    response_model=ApiResponse[PurchaseOrderItemOut],
    summary="Add item to purchase order",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def add_purchase_order_item(
    order_id: str,
    payload: PurchaseOrderItemIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    item = purchase_order_service.add_purchase_order_item(
        db, order_id=order_id, payload=payload, actor_id=current.id
    )
    db.commit()
    return envelope(
        PurchaseOrderItemOut.model_validate(item),
        message=API_MESSAGES["purchase_orders.item_added"],
        status_code=201,
    )
