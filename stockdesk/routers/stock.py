from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockdesk.core.api_docs import error_responses
from stockdesk.core.config import settings
from stockdesk.core.deps import get_db
from stockdesk.core.messages import API_MESSAGES
from stockdesk.core.permissions import require_manager, require_staff
from stockdesk.core.responses import envelope, page_data
from stockdesk.core.security_current import CurrentUser
from stockdesk.schemas.common import ApiResponse, PageOut, SortOrder
from stockdesk.schemas.stock import (
    ReferenceType,
    StockAdjustIn,
    StockCreate,
    StockMovementOut,
    StockOut,
    StockQuantityIn,
    StockSummaryOut,
    StockTransactionCreate,
    StockTransactionOut,
    StockUpdate,
    TransactionType,
)
from stockdesk.services import stock_service

router = APIRouter(prefix="/stock", tags=["stock"])


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[StockOut],
    summary="Create the stock record for a product",
    responses=error_responses(401, 403, 404, 409, 422, 500),
)
def create_stock(
    payload: StockCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    stock = stock_service.create_stock(db, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(StockOut.model_validate(stock), message=API_MESSAGES["stock.created"], status_code=201)


@router.get(
    "",
    response_model=ApiResponse[PageOut[StockSummaryOut]],
    summary="List stock levels",
    responses=error_responses(401, 403, 422, 500),
)
def list_stock(
    product_id: str | None = Query(default=None),
    low_stock: bool | None = Query(default=None, description="true: at or below reorder level"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=settings.max_page_size),
    sort_by: Literal["updated_at", "created_at", "quantity_available", "quantity_total"] = Query(
        default="updated_at", alias="sortBy"
    ),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    result = stock_service.list_stock(
        db,
        product_id=product_id,
        low_stock=low_stock,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    products = stock_service.product_map(db, result.items)
    items = [stock_service.summarize(s, products[s.product_id]) for s in result.items]
    return envelope(page_data(result, items), message=API_MESSAGES["stock.fetched"])


@router.get(
    "/low-stock",
    response_model=ApiResponse[list[StockSummaryOut]],
    summary="Items at or below their reorder level",
    responses=error_responses(401, 403, 422, 500),
)
def low_stock(
    threshold: int | None = Query(default=None, ge=0, description="Overrides per-item reorder levels"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    effective = threshold if threshold is not None else settings.low_stock_default_threshold
    rows = stock_service.low_stock_items(db, threshold=effective)
    return envelope(
        [stock_service.summarize(stock, product, effective) for stock, product in rows],
        message=API_MESSAGES["stock.low"],
    )


@router.post(
    "/transactions",
    status_code=201,
    response_model=ApiResponse[StockMovementOut],
    summary="Record a stock movement",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def create_transaction(
    payload: StockTransactionCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    stock, transaction = stock_service.record_transaction(db, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(
        StockMovementOut(
            stock=StockOut.model_validate(stock),
            transaction=StockTransactionOut.model_validate(transaction),
        ),
        message=API_MESSAGES["stock.transaction_created"],
        status_code=201,
    )


@router.get(
    "/transactions",
    response_model=ApiResponse[PageOut[StockTransactionOut]],
    summary="List stock transactions",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_transactions(
    product_id: str | None = Query(default=None),
    transaction_type: TransactionType | None = Query(default=None),
    reference_type: ReferenceType | None = Query(default=None),
    reference_id: str | None = Query(default=None),
    created_by: str | None = Query(default=None),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=settings.max_page_size),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    result = stock_service.list_transactions(
        db,
        product_id=product_id,
        transaction_type=transaction_type,
        reference_type=reference_type,
        reference_id=reference_id,
        created_by=created_by,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
        sort_order=sort_order,
    )
    items = [StockTransactionOut.model_validate(t) for t in result.items]
    return envelope(page_data(result, items), message=API_MESSAGES["stock.transactions"])


@router.get(
    "/transactions/product/{product_id}",
    response_model=ApiResponse[PageOut[StockTransactionOut]],
    summary="Ledger for one product",
    responses=error_responses(401, 403, 404, 422, 500),
)
def list_product_transactions(
    product_id: str,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    result = stock_service.list_product_transactions(db, product_id=product_id, page=page, limit=limit)
    items = [StockTransactionOut.model_validate(t) for t in result.items]
    return envelope(page_data(result, items), message=API_MESSAGES["stock.transactions"])


@router.get(
    "/product/{product_id}",
    response_model=ApiResponse[StockOut],
    summary="Get stock for a product",
    responses=error_responses(401, 403, 404, 500),
)
def get_product_stock(
    product_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    stock = stock_service.get_stock_for_product(db, product_id=product_id)
    return envelope(StockOut.model_validate(stock), message=API_MESSAGES["stock.fetched"])


@router.put(
    "/product/{product_id}",
    response_model=ApiResponse[StockOut],
    summary="Set absolute stock levels",
    responses=error_responses(401, 403, 404, 422, 500),
)
def update_product_stock(
    product_id: str,
    payload: StockUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    stock = stock_service.set_stock_levels(db, product_id=product_id, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(StockOut.model_validate(stock), message=API_MESSAGES["stock.updated"])


@router.patch(
    "/product/{product_id}/adjust",
    response_model=ApiResponse[StockOut],
    summary="Adjust available stock by a signed quantity",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def adjust_product_stock(
    product_id: str,
    payload: StockAdjustIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    stock = stock_service.adjust_stock(db, product_id=product_id, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(StockOut.model_validate(stock), message=API_MESSAGES["stock.adjusted"])


@router.patch(
    "/product/{product_id}/reserve",
    response_model=ApiResponse[StockOut],
    summary="Reserve available stock",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def reserve_product_stock(
    product_id: str,
    payload: StockQuantityIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    stock = stock_service.reserve_stock(db, product_id=product_id, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(StockOut.model_validate(stock), message=API_MESSAGES["stock.reserved"])


@router.patch(
    "/product/{product_id}/release",
    response_model=ApiResponse[StockOut],
    summary="Release reserved stock",
    responses=error_responses(400, 401, 403, 404, 422, 500),
)
def release_product_stock(
    product_id: str,
    payload: StockQuantityIn,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    stock = stock_service.release_stock(db, product_id=product_id, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(StockOut.model_validate(stock), message=API_MESSAGES["stock.released"])
