"""
Stock levels and the movement ledger.

Every quantity change is a single conditional UPDATE that applies deltas in the
database and refuses to run when a quantity would go negative, so concurrent
movements on the same product cannot interleave a read and a write. A zero row
count is then resolved into "no stock row" or "not enough stock".
"""
import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from stockdesk.core import messages
from stockdesk.core.errors import BusinessRuleError, ConflictError, NotFoundError
from stockdesk.core.observability import log_event
from stockdesk.models.product import Product
from stockdesk.models.stock import (
    REF_ADJUSTMENT,
    TX_ADJUSTMENT,
    TX_IN,
    TX_OUT,
    TX_RELEASED,
    TX_RESERVED,
    Stock,
    StockTransaction,
)
from stockdesk.repositories.base import Page, utcnow
from stockdesk.repositories.products import ProductRepository
from stockdesk.repositories.stock import StockRepository, StockTransactionRepository
from stockdesk.schemas.stock import (
    StockAdjustIn,
    StockCreate,
    StockQuantityIn,
    StockTransactionCreate,
    StockUpdate,
)

logger = logging.getLogger("stockdesk.inventory")


def movement_deltas(transaction_type: str, quantity: int) -> tuple[int, int]:
    """(available delta, reserved delta) for one ledger movement."""
    if transaction_type == TX_IN:
        return quantity, 0
    if transaction_type == TX_OUT:
        return -quantity, 0
    if transaction_type == TX_ADJUSTMENT:
        return quantity, 0
    if transaction_type == TX_RESERVED:
        return -quantity, quantity
    if transaction_type == TX_RELEASED:
        return quantity, -quantity
    raise ValueError(f"Unsupported transaction type '{transaction_type}'")


def apply_stock_delta(
    db: Session,
    *,
    product_id: str,
    available_delta: int,
    reserved_delta: int,
    actor_id: str,
) -> Stock:
    result = db.execute(
        update(Stock)
        .where(
            Stock.product_id == product_id,
            Stock.deleted_at.is_(None),
            Stock.quantity_available + available_delta >= 0,
            Stock.quantity_reserved + reserved_delta >= 0,
        )
        .values(
            quantity_available=Stock.quantity_available + available_delta,
            quantity_reserved=Stock.quantity_reserved + reserved_delta,
            quantity_total=Stock.quantity_total + available_delta + reserved_delta,
            updated_by=actor_id,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    repo = StockRepository(db)
    stock = repo.reload(product_id)
    if result.rowcount == 0:
        if stock is None:
            raise NotFoundError(messages.stock_not_found(product_id))
        if reserved_delta < 0:
            raise BusinessRuleError(messages.INSUFFICIENT_RESERVED_STOCK)
        raise BusinessRuleError(messages.INSUFFICIENT_STOCK)
    return stock


def add_transaction(
    db: Session,
    *,
    product_id: str,
    transaction_type: str,
    quantity: int,
    actor_id: str,
    reference_type: str | None = None,
    reference_id: str | None = None,
    notes: str | None = None,
) -> StockTransaction:
    return StockTransactionRepository(db).create(
        actor_id=actor_id,
        product_id=product_id,
        transaction_type=transaction_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )


def ensure_stock_row(db: Session, *, product_id: str, actor_id: str) -> Stock:
    repo = StockRepository(db)
    stock = repo.get_for_product(product_id)
    if stock is None:
        stock = repo.create(actor_id=actor_id, product_id=product_id)
    return stock


def move_stock(
    db: Session,
    *,
    product_id: str,
    transaction_type: str,
    quantity: int,
    actor_id: str,
    reference_type: str | None = None,
    reference_id: str | None = None,
    notes: str | None = None,
    create_missing: bool = False,
) -> tuple[Stock, StockTransaction]:
    if create_missing:
        ensure_stock_row(db, product_id=product_id, actor_id=actor_id)

    available_delta, reserved_delta = movement_deltas(transaction_type, quantity)
    stock = apply_stock_delta(
        db,
        product_id=product_id,
        available_delta=available_delta,
        reserved_delta=reserved_delta,
        actor_id=actor_id,
    )
    transaction = add_transaction(
        db,
        product_id=product_id,
        transaction_type=transaction_type,
        quantity=quantity,
        actor_id=actor_id,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
    )
    log_event(
        logger,
        "stock.movement",
        product_id=product_id,
        transaction_type=transaction_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        quantity_available=stock.quantity_available,
        quantity_reserved=stock.quantity_reserved,
        quantity_total=stock.quantity_total,
    )
    return stock, transaction


def _low_stock_threshold():
    return func.coalesce(Stock.reorder_point, Product.minimum_stock_level)


def is_low_stock(stock: Stock, product: Product, threshold: int | None = None) -> bool:
    if threshold is None:
        threshold = stock.reorder_point if stock.reorder_point is not None else product.minimum_stock_level
    return stock.quantity_total <= threshold


def summarize(stock: Stock, product: Product, threshold: int | None = None) -> dict:
    return {
        "id": stock.id,
        "product_id": stock.product_id,
        "product_name": product.name,
        "sku": product.sku,
        "quantity_available": stock.quantity_available,
        "quantity_reserved": stock.quantity_reserved,
        "quantity_total": stock.quantity_total,
        "reorder_point": stock.reorder_point,
        "minimum_stock_level": product.minimum_stock_level,
        "is_low_stock": is_low_stock(stock, product, threshold),
    }


def product_map(db: Session, stocks: list[Stock]) -> dict[str, Product]:
    product_ids = {s.product_id for s in stocks}
    if not product_ids:
        return {}
    products = ProductRepository(db).find_all(Product.id.in_(product_ids), with_deleted=True)
    return {p.id: p for p in products}


# Operations


def create_stock(db: Session, *, payload: StockCreate, actor_id: str) -> Stock:
    ProductRepository(db).get_or_404(payload.product_id)
    repo = StockRepository(db)
    if repo.exists(Stock.product_id == payload.product_id):
        raise ConflictError(messages.STOCK_EXISTS)

    opening = payload.quantity_available + payload.quantity_reserved
    stock = repo.create(
        actor_id=actor_id,
        product_id=payload.product_id,
        quantity_available=payload.quantity_available,
        quantity_reserved=payload.quantity_reserved,
        quantity_total=opening,
        reorder_point=payload.reorder_point,
    )
    if opening > 0:
        add_transaction(
            db,
            product_id=payload.product_id,
            transaction_type=TX_IN,
            quantity=opening,
            actor_id=actor_id,
            reference_type=REF_ADJUSTMENT,
            notes=payload.notes or "Initial stock creation",
        )
    if payload.quantity_reserved > 0:
        # Replaying IN then RESERVED rebuilds both opening quantities.
        add_transaction(
            db,
            product_id=payload.product_id,
            transaction_type=TX_RESERVED,
            quantity=payload.quantity_reserved,
            actor_id=actor_id,
            reference_type=REF_ADJUSTMENT,
            notes=payload.notes or "Initial reservation",
        )
    log_event(logger, "stock.created", product_id=payload.product_id, quantity_total=opening)
    return stock


def list_stock(
    db: Session,
    *,
    product_id: str | None = None,
    low_stock: bool | None = None,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str = "desc",
) -> Page[Stock]:
    repo = StockRepository(db)
    stmt = repo.query().join(Product, Product.id == Stock.product_id).where(Product.deleted_at.is_(None))
    if product_id:
        stmt = stmt.where(Stock.product_id == product_id)
    if low_stock is True:
        stmt = stmt.where(Stock.quantity_total <= _low_stock_threshold())
    elif low_stock is False:
        stmt = stmt.where(Stock.quantity_total > _low_stock_threshold())
    return repo.paginate(stmt, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def low_stock_items(db: Session, *, threshold: int | None = None) -> list[tuple[Stock, Product]]:
    limit_expr = threshold if threshold is not None else _low_stock_threshold()
    rows = db.execute(
        select(Stock, Product)
        .join(Product, Product.id == Stock.product_id)
        .where(
            Stock.deleted_at.is_(None),
            Product.deleted_at.is_(None),
            Product.is_active.is_(True),
            Stock.quantity_total <= limit_expr,
        )
        .order_by(Stock.quantity_total.asc(), Product.name.asc())
    ).all()
    return [(stock, product) for stock, product in rows]


def get_stock_for_product(db: Session, *, product_id: str) -> Stock:
    return StockRepository(db).get_for_product_or_404(product_id)


def set_stock_levels(db: Session, *, product_id: str, payload: StockUpdate, actor_id: str) -> Stock:
    changes = payload.model_dump(exclude_unset=True)
    available = changes["quantity_available"] if changes.get("quantity_available") is not None else Stock.quantity_available
    reserved = changes["quantity_reserved"] if changes.get("quantity_reserved") is not None else Stock.quantity_reserved
    values = {
        "quantity_available": available,
        "quantity_reserved": reserved,
        "quantity_total": available + reserved,
        "updated_by": actor_id,
        "updated_at": utcnow(),
    }
    if "reorder_point" in changes:
        values["reorder_point"] = changes["reorder_point"]

    result = db.execute(
        update(Stock)
        .where(Stock.product_id == product_id, Stock.deleted_at.is_(None))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError(messages.stock_not_found(product_id))
    stock = StockRepository(db).reload(product_id)
    log_event(
        logger,
        "stock.levels_set",
        product_id=product_id,
        quantity_available=stock.quantity_available,
        quantity_reserved=stock.quantity_reserved,
    )
    return stock


def adjust_stock(db: Session, *, product_id: str, payload: StockAdjustIn, actor_id: str) -> Stock:
    stock, _ = move_stock(
        db,
        product_id=product_id,
        transaction_type=TX_ADJUSTMENT,
        quantity=payload.quantity_change,
        actor_id=actor_id,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
    )
    return stock


def reserve_stock(db: Session, *, product_id: str, payload: StockQuantityIn, actor_id: str) -> Stock:
    stock, _ = move_stock(
        db,
        product_id=product_id,
        transaction_type=TX_RESERVED,
        quantity=payload.quantity,
        actor_id=actor_id,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
    )
    return stock


def release_stock(db: Session, *, product_id: str, payload: StockQuantityIn, actor_id: str) -> Stock:
    stock, _ = move_stock(
        db,
        product_id=product_id,
        transaction_type=TX_RELEASED,
        quantity=payload.quantity,
        actor_id=actor_id,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
    )
    return stock


def record_transaction(
    db: Session, *, payload: StockTransactionCreate, actor_id: str
) -> tuple[Stock, StockTransaction]:
    ProductRepository(db).get_or_404(payload.product_id)
    return move_stock(
        db,
        product_id=payload.product_id,
        transaction_type=payload.transaction_type,
        quantity=payload.quantity,
        actor_id=actor_id,
        reference_type=payload.reference_type,
        reference_id=payload.reference_id,
        notes=payload.notes,
        create_missing=True,
    )


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def list_transactions(
    db: Session,
    *,
    product_id: str | None = None,
    transaction_type: str | None = None,
    reference_type: str | None = None,
    reference_id: str | None = None,
    created_by: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int | None = None,
    limit: int | None = None,
    sort_order: str = "desc",
) -> Page[StockTransaction]:
    if start_date and end_date and start_date > end_date:
        raise BusinessRuleError("start_date cannot be after end_date")

    criteria = []
    if product_id:
        criteria.append(StockTransaction.product_id == product_id)
    if transaction_type:
        criteria.append(StockTransaction.transaction_type == transaction_type)
    if reference_type:
        criteria.append(StockTransaction.reference_type == reference_type)
    if reference_id:
        criteria.append(StockTransaction.reference_id == reference_id)
    if created_by:
        criteria.append(StockTransaction.created_by == created_by)
    if start_date:
        criteria.append(StockTransaction.created_at >= _day_start(start_date))
    if end_date:
        # end_date is inclusive of the whole day.
        criteria.append(StockTransaction.created_at < _day_start(end_date + timedelta(days=1)))

    repo = StockTransactionRepository(db)
    return repo.paginate(repo.query(*criteria), page=page, limit=limit, sort_order=sort_order)


def list_product_transactions(
    db: Session, *, product_id: str, page: int | None = None, limit: int | None = None
) -> Page[StockTransaction]:
    ProductRepository(db).get_or_404(product_id, with_deleted=True)
    return list_transactions(db, product_id=product_id, page=page, limit=limit)
