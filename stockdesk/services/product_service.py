from decimal import Decimal

from sqlalchemy import delete, or_
from sqlalchemy.orm import Session

from stockdesk.core import messages
from stockdesk.core.errors import BusinessRuleError, ConflictError, NotFoundError
from stockdesk.core.money import to_money
from stockdesk.models.category import Category
from stockdesk.models.product import Product
from stockdesk.models.purchase_order import PurchaseOrderItem
from stockdesk.models.stock import Stock, StockTransaction
from stockdesk.repositories.base import Page, contains_pattern
from stockdesk.repositories.categories import CategoryRepository
from stockdesk.repositories.products import ProductRepository
from stockdesk.repositories.purchase_orders import PurchaseOrderItemRepository
from stockdesk.schemas.product import ProductCreate, ProductUpdate


def _ensure_usable_category(db: Session, category_id: str) -> Category:
    category = CategoryRepository(db).get(category_id)
    if category is None:
        raise BusinessRuleError(messages.CATEGORY_NOT_FOUND)
    if not category.is_active:
        raise BusinessRuleError(messages.CATEGORY_INACTIVE)
    return category


def _money_fields(values: dict) -> dict:
    for field in ("unit_price", "cost_price"):
        if values.get(field) is not None:
            values[field] = to_money(values[field])
    return values


def create_product(db: Session, *, payload: ProductCreate, actor_id: str) -> Product:
    repo = ProductRepository(db)
    if repo.sku_taken(payload.sku):
        raise ConflictError(messages.PRODUCT_SKU_EXISTS)
    if payload.barcode and repo.barcode_taken(payload.barcode):
        raise ConflictError(messages.PRODUCT_BARCODE_EXISTS)
    if payload.category_id:
        _ensure_usable_category(db, payload.category_id)
    return repo.create(actor_id=actor_id, **_money_fields(payload.model_dump()))


def list_products(
    db: Session,
    *,
    name: str | None = None,
    sku: str | None = None,
    barcode: str | None = None,
    category_id: str | None = None,
    is_active: bool | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    with_deleted: bool = False,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str = "desc",
) -> Page[Product]:
    if min_price is not None and max_price is not None and min_price > max_price:
        raise BusinessRuleError("min_price cannot be greater than max_price")

    criteria = []
    if name:
        criteria.append(Product.name.ilike(contains_pattern(name), escape="\\"))
    if sku:
        criteria.append(Product.sku.ilike(contains_pattern(sku), escape="\\"))
    if barcode:
        criteria.append(Product.barcode == barcode.strip())
    if category_id:
        criteria.append(Product.category_id == category_id)
    if is_active is not None:
        criteria.append(Product.is_active.is_(is_active))
    if min_price is not None:
        criteria.append(Product.unit_price >= min_price)
    if max_price is not None:
        criteria.append(Product.unit_price <= max_price)

    repo = ProductRepository(db)
    return repo.paginate(
        repo.query(*criteria, with_deleted=with_deleted),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def list_active_products(db: Session) -> list[Product]:
    return ProductRepository(db).find_all(Product.is_active.is_(True), order_by=[Product.name.asc()])


def search_products(db: Session, *, q: str, limit: int) -> list[Product]:
    term = q.strip()
    if not term:
        return []
    pattern = contains_pattern(term)
    return ProductRepository(db).find_all(
        Product.is_active.is_(True),
        or_(
            Product.name.ilike(pattern, escape="\\"),
            Product.sku.ilike(pattern, escape="\\"),
            Product.barcode == term,
        ),
        order_by=[Product.name.asc()],
        limit=limit,
    )


def list_products_by_category(db: Session, *, category_id: str) -> list[Product]:
    CategoryRepository(db).get_or_404(category_id)
    return ProductRepository(db).find_all(Product.category_id == category_id, order_by=[Product.name.asc()])


def get_product(db: Session, *, product_id: str, with_deleted: bool = False) -> Product:
    return ProductRepository(db).get_or_404(product_id, with_deleted=with_deleted)


def get_product_by_sku(db: Session, *, sku: str) -> Product:
    product = ProductRepository(db).get_by_sku(sku)
    if product is None:
        raise NotFoundError(messages.PRODUCT_NOT_FOUND)
    return product


def get_product_by_barcode(db: Session, *, barcode: str) -> Product:
    product = ProductRepository(db).get_by_barcode(barcode)
    if product is None:
        raise NotFoundError(messages.PRODUCT_NOT_FOUND)
    return product


def update_product(db: Session, *, product_id: str, payload: ProductUpdate, actor_id: str) -> Product:
    repo = ProductRepository(db)
    product = repo.get_or_404(product_id)
    changes = payload.model_dump(exclude_unset=True)

    if "sku" in changes and repo.sku_taken(changes["sku"], exclude_id=product.id):
        raise ConflictError(messages.PRODUCT_SKU_EXISTS)
    if changes.get("barcode") and repo.barcode_taken(changes["barcode"], exclude_id=product.id):
        raise ConflictError(messages.PRODUCT_BARCODE_EXISTS)
    if changes.get("category_id") and changes["category_id"] != product.category_id:
        _ensure_usable_category(db, changes["category_id"])

    return repo.update(product, _money_fields(changes), actor_id=actor_id)


def soft_delete_product(db: Session, *, product_id: str, actor_id: str) -> Product:
    repo = ProductRepository(db)
    return repo.soft_delete(repo.get_or_404(product_id), actor_id=actor_id)


def restore_product(db: Session, *, product_id: str, actor_id: str) -> Product:
    repo = ProductRepository(db)
    return repo.restore(repo.get_or_404(product_id, with_deleted=True), actor_id=actor_id)


def purge_product(db: Session, *, product_id: str) -> None:
    repo = ProductRepository(db)
    product = repo.get_or_404(product_id, with_deleted=True)
    if PurchaseOrderItemRepository(db).exists(PurchaseOrderItem.product_id == product.id):
        raise ConflictError(messages.PRODUCT_IN_PURCHASE_ORDERS)
    # Stock rows and their ledger go with the product.
    db.execute(delete(StockTransaction).where(StockTransaction.product_id == product.id))
    db.execute(delete(Stock).where(Stock.product_id == product.id))
    repo.hard_delete(product)


def count_products(db: Session, *, with_deleted: bool = False) -> int:
    return ProductRepository(db).count(with_deleted=with_deleted)


def category_map(db: Session, products: list[Product]) -> dict[str, Category]:
    category_ids = {p.category_id for p in products if p.category_id}
    if not category_ids:
        return {}
    categories = CategoryRepository(db).find_all(Category.id.in_(category_ids), with_deleted=True)
    return {c.id: c for c in categories}
