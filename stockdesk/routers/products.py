from decimal import Decimal
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
from stockdesk.models.category import Category
from stockdesk.models.product import Product
from stockdesk.schemas.category import CategorySummaryOut
from stockdesk.schemas.common import ApiResponse, CountOut, PageOut, SortOrder
from stockdesk.schemas.product import ProductCreate, ProductOut, ProductUpdate
from stockdesk.services import product_service

router = APIRouter(prefix="/products", tags=["products"])


def _product_out(product: Product, categories: dict[str, Category]) -> ProductOut:
    out = ProductOut.model_validate(product)
    category = categories.get(product.category_id) if product.category_id else None
    if category is not None:
        out.category = CategorySummaryOut.model_validate(category)
    return out


def _products_out(db: Session, products: list[Product]) -> list[ProductOut]:
    categories = product_service.category_map(db, products)
    return [_product_out(p, categories) for p in products]


@router.post(
    "",
    status_code=201,
    response_model=ApiResponse[ProductOut],
    summary="Create product",
    responses=error_responses(400, 401, 403, 409, 422, 500),
)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    product = product_service.create_product(db, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(
        _products_out(db, [product])[0],
        message=API_MESSAGES["products.created"],
        status_code=201,
    )


@router.get(
    "",
    response_model=ApiResponse[PageOut[ProductOut]],
    summary="List products",
    responses=error_responses(400, 401, 403, 422, 500),
)
def list_products(
    name: str | None = Query(default=None, description="Partial, case-insensitive name match"),
    sku: str | None = Query(default=None, description="Partial, case-insensitive SKU match"),
    barcode: str | None = Query(default=None, description="Exact barcode"),
    category_id: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    min_price: Decimal | None = Query(default=None, ge=0),
    max_price: Decimal | None = Query(default=None, ge=0),
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    sort_by: Literal["name", "sku", "unit_price", "created_at"] = Query(default="created_at", alias="sortBy"),
    sort_order: SortOrder = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    result = product_service.list_products(
        db,
        name=name,
        sku=sku,
        barcode=barcode,
        category_id=category_id,
        is_active=is_active,
        min_price=min_price,
        max_price=max_price,
        with_deleted=include_deleted(with_deleted, current),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return envelope(
        page_data(result, _products_out(db, result.items)),
        message=API_MESSAGES["products.fetched"],
    )


@router.get(
    "/active",
    response_model=ApiResponse[list[ProductOut]],
    summary="List active products",
    responses=error_responses(401, 403, 500),
)
def list_active_products(
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    products = product_service.list_active_products(db)
    return envelope(_products_out(db, products), message=API_MESSAGES["products.fetched"])


@router.get(
    "/search",
    response_model=ApiResponse[list[ProductOut]],
    summary="Search active products by name, SKU or barcode",
    responses=error_responses(401, 403, 422, 500),
)
def search_products(
    q: str = Query(..., min_length=1),
    limit: int = Query(default=settings.search_result_limit, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    products = product_service.search_products(db, q=q, limit=limit)
    return envelope(_products_out(db, products), message=API_MESSAGES["products.fetched"])


@router.get(
    "/stats/count",
    response_model=ApiResponse[CountOut],
    summary="Count products",
    responses=error_responses(401, 403, 500),
)
def count_products(
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    count = product_service.count_products(db, with_deleted=include_deleted(with_deleted, current))
    return envelope(CountOut(count=count), message=API_MESSAGES["products.counted"])


@router.get(
    "/category/{category_id}",
    response_model=ApiResponse[list[ProductOut]],
    summary="List products in a category",
    responses=error_responses(401, 403, 404, 500),
)
def list_products_by_category(
    category_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    products = product_service.list_products_by_category(db, category_id=category_id)
    return envelope(_products_out(db, products), message=API_MESSAGES["products.fetched"])


@router.get(
    "/sku/{sku}",
    response_model=ApiResponse[ProductOut],
    summary="Get product by SKU",
    responses=error_responses(401, 403, 404, 500),
)
def get_product_by_sku(
    sku: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    product = product_service.get_product_by_sku(db, sku=sku)
    return envelope(_products_out(db, [product])[0], message=API_MESSAGES["products.fetched_one"])


@router.get(
    "/barcode/{barcode}",
    response_model=ApiResponse[ProductOut],
    summary="Get product by barcode",
    responses=error_responses(401, 403, 404, 500),
)
def get_product_by_barcode(
    barcode: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    product = product_service.get_product_by_barcode(db, barcode=barcode)
    return envelope(_products_out(db, [product])[0], message=API_MESSAGES["products.fetched_one"])


@router.get(
    "/{product_id}",
    response_model=ApiResponse[ProductOut],
    summary="Get product",
    responses=error_responses(401, 403, 404, 500),
)
def get_product(
    product_id: str,
    with_deleted: bool = Query(default=False, alias="withDeleted"),
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_staff),
):
    product = product_service.get_product(
        db, product_id=product_id, with_deleted=include_deleted(with_deleted, current)
    )
    return envelope(_products_out(db, [product])[0], message=API_MESSAGES["products.fetched_one"])


@router.patch(
    "/{product_id}",
    response_model=ApiResponse[ProductOut],
    summary="Update product",
    responses=error_responses(400, 401, 403, 404, 409, 422, 500),
)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    product = product_service.update_product(db, product_id=product_id, payload=payload, actor_id=current.id)
    db.commit()
    return envelope(_products_out(db, [product])[0], message=API_MESSAGES["products.updated"])


@router.patch(
    "/{product_id}/restore",
    response_model=ApiResponse[ProductOut],
    summary="Restore a soft-deleted product",
    responses=error_responses(401, 403, 404, 500),
)
def restore_product(
    product_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    product = product_service.restore_product(db, product_id=product_id, actor_id=current.id)
    db.commit()
    return envelope(_products_out(db, [product])[0], message=API_MESSAGES["products.restored"])


@router.delete(
    "/{product_id}",
    response_model=ApiResponse[ProductOut],
    summary="Soft-delete product",
    responses=error_responses(401, 403, 404, 500),
)
def delete_product(
    product_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_manager),
):
    product = product_service.soft_delete_product(db, product_id=product_id, actor_id=current.id)
    db.commit()
    return envelope(_products_out(db, [product])[0], message=API_MESSAGES["products.deleted"])


@router.delete(
    "/{product_id}/purge",
    response_model=ApiResponse[None],
    summary="Permanently delete product",
    responses=error_responses(401, 403, 404, 409, 500),
)
def purge_product(
    product_id: str,
    db: Session = Depends(get_db),
    current: CurrentUser = Depends(require_admin),
):
    product_service.purge_product(db, product_id=product_id)
    db.commit()
    return envelope(None, message=API_MESSAGES["products.purged"])
