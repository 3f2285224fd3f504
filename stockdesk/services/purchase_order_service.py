import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from stockdesk.core import messages
from stockdesk.core.errors import BusinessRuleError, ConflictError, NotFoundError
from stockdesk.core.id_utils import generate_order_number
from stockdesk.core.money import line_total, sum_money, to_money
from stockdesk.core.observability import log_event
from stockdesk.models.purchase_order import (
    PO_CANCELLED,
    PO_CONFIRMED,
    PO_PENDING,
    PO_RECEIVED,
    PO_TERMINAL_STATUSES,
    PurchaseOrder,
    PurchaseOrderItem,
)
from stockdesk.models.stock import REF_PURCHASE, TX_IN
from stockdesk.models.supplier import Supplier
from stockdesk.repositories.base import Page, contains_pattern, utcnow
from stockdesk.repositories.products import ProductRepository
from stockdesk.repositories.purchase_orders import PurchaseOrderItemRepository, PurchaseOrderRepository
from stockdesk.repositories.suppliers import SupplierRepository
from stockdesk.schemas.purchase_order import (
    PurchaseOrderCreate,
    PurchaseOrderItemIn,
    PurchaseOrderItemUpdate,
    PurchaseOrderReceiveIn,
    PurchaseOrderUpdate,
)
from stockdesk.services.stock_service import move_stock

logger = logging.getLogger("stockdesk.inventory")

MAX_ORDER_PAGE_SIZE = 100
MAX_SUPPLIER_ORDERS = 50


def _active_supplier(db: Session, supplier_id: str) -> Supplier:
    supplier = SupplierRepository(db).get_or_404(supplier_id)
    if not supplier.is_active:
        raise ConflictError(messages.SUPPLIER_INACTIVE)
    return supplier


def _ensure_editable(order: PurchaseOrder) -> None:
    if order.status in PO_TERMINAL_STATUSES:
        raise BusinessRuleError(messages.PURCHASE_ORDER_LOCKED)


def _item_total(quantity: int, unit_cost: Decimal, total_cost: Decimal | None) -> Decimal:
    if total_cost is not None:
        return to_money(total_cost)
    return line_total(quantity, unit_cost)


def _add_item(db: Session, *, order: PurchaseOrder, item: PurchaseOrderItemIn, actor_id: str) -> PurchaseOrderItem:
    ProductRepository(db).get_or_404(item.product_id)
    return PurchaseOrderItemRepository(db).create(
        actor_id=actor_id,
        purchase_order_id=order.id,
        product_id=item.product_id,
        quantity_ordered=item.quantity_ordered,
        unit_cost=to_money(item.unit_cost),
        total_cost=_item_total(item.quantity_ordered, item.unit_cost, item.total_cost),
    )


def recalculate_total(db: Session, *, order: PurchaseOrder, actor_id: str) -> PurchaseOrder:
    items = PurchaseOrderItemRepository(db).for_order(order.id)
    total = sum_money(i.total_cost for i in items)
    return PurchaseOrderRepository(db).update(order, {"total_amount": total}, actor_id=actor_id)


def _live_items_fresh(db: Session, order_id: str) -> list[PurchaseOrderItem]:
    return list(
        db.execute(
            select(PurchaseOrderItem)
            .where(PurchaseOrderItem.purchase_order_id == order_id, PurchaseOrderItem.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        ).scalars()
    )


def _is_fully_received(items: list[PurchaseOrderItem]) -> bool:
    return (
        bool(items)
        and any(i.quantity_received > 0 for i in items)
        and all(i.quantity_received >= i.quantity_ordered for i in items)
    )


def settle_if_received(db: Session, *, order: PurchaseOrder, actor_id: str) -> PurchaseOrder:
    """Close a confirmed order once every live line has been received in full."""
    if order.status != PO_CONFIRMED or not _is_fully_received(_live_items_fresh(db, order.id)):
        return order
    order = PurchaseOrderRepository(db).update(order, {"status": PO_RECEIVED}, actor_id=actor_id)
    log_event(logger, "purchase_order.settled", order_id=order.id, actor_id=actor_id)
    return order


def create_purchase_order(db: Session, *, payload: PurchaseOrderCreate, actor_id: str) -> PurchaseOrder:
    _active_supplier(db, payload.supplier_id)
    repo = PurchaseOrderRepository(db)
    order_number = payload.order_number or generate_order_number()
    if repo.order_number_taken(order_number):
        raise ConflictError(messages.PURCHASE_ORDER_NUMBER_EXISTS)

    order = repo.create(
        actor_id=actor_id,
        supplier_id=payload.supplier_id,
        order_number=order_number,
        status=payload.status,
        order_date=payload.order_date or date.today(),
        expected_delivery_date=payload.expected_delivery_date,
        total_amount=to_money(payload.total_amount or 0),
        notes=payload.notes,
    )
    for item in payload.items:
        _add_item(db, order=order, item=item, actor_id=actor_id)
    if payload.items:
        recalculate_total(db, order=order, actor_id=actor_id)
    return order


def list_purchase_orders(
    db: Session,
    *,
    supplier_id: str | None = None,
    status: str | None = None,
    order_number: str | None = None,
    order_date_from: date | None = None,
    order_date_to: date | None = None,
    with_deleted: bool = False,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str | None = None,
    sort_order: str = "desc",
) -> Page[PurchaseOrder]:
    criteria = []
    if supplier_id:
        criteria.append(PurchaseOrder.supplier_id == supplier_id)
    if status:
        criteria.append(PurchaseOrder.status == status)
    if order_number:
        criteria.append(PurchaseOrder.order_number.ilike(contains_pattern(order_number), escape="\\"))
    if order_date_from:
        criteria.append(PurchaseOrder.order_date >= order_date_from)
    if order_date_to:
        criteria.append(PurchaseOrder.order_date <= order_date_to)

    repo = PurchaseOrderRepository(db)
    return repo.paginate(
        repo.query(*criteria, with_deleted=with_deleted),
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        max_limit=MAX_ORDER_PAGE_SIZE,
    )


def get_purchase_order(db: Session, *, order_id: str, with_deleted: bool = False) -> PurchaseOrder:
    return PurchaseOrderRepository(db).get_or_404(order_id, with_deleted=with_deleted)


def list_supplier_orders(db: Session, *, supplier_id: str, limit: int) -> list[PurchaseOrder]:
    SupplierRepository(db).get_or_404(supplier_id, with_deleted=True)
    return PurchaseOrderRepository(db).find_all(
        PurchaseOrder.supplier_id == supplier_id,
        order_by=[PurchaseOrder.order_date.desc(), PurchaseOrder.created_at.desc()],
        limit=max(1, min(limit, MAX_SUPPLIER_ORDERS)),
    )


def update_purchase_order(
    db: Session, *, order_id: str, payload: PurchaseOrderUpdate, actor_id: str
) -> PurchaseOrder:
    repo = PurchaseOrderRepository(db)
    order = repo.get_or_404(order_id)
    _ensure_editable(order)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("status") == PO_RECEIVED:
        raise BusinessRuleError(messages.PURCHASE_ORDER_RECEIVE_VIA_ENDPOINT)
    if "supplier_id" in changes and changes["supplier_id"] != order.supplier_id:
        _active_supplier(db, changes["supplier_id"])
    if "order_number" in changes and repo.order_number_taken(changes["order_number"], exclude_id=order.id):
        raise ConflictError(messages.PURCHASE_ORDER_NUMBER_EXISTS)

    order = repo.update(order, changes, actor_id=actor_id)
    if order.status == PO_CANCELLED:
        log_event(logger, "purchase_order.cancelled", order_id=order.id, actor_id=actor_id)
    return order


def _requested_receipts(
    items: list[PurchaseOrderItem], payload: PurchaseOrderReceiveIn | None
) -> dict[str, int]:
    if payload is None or payload.items is None:
        return {i.id: i.quantity_ordered - i.quantity_received for i in items}

    known = {i.id for i in items}
    requested: dict[str, int] = defaultdict(int)
    for line in payload.items:
        if line.item_id not in known:
            raise NotFoundError(messages.PURCHASE_ORDER_ITEM_NOT_FOUND)
        requested[line.item_id] += line.quantity
    return dict(requested)


def receive_purchase_order(
    db: Session,
    *,
    order_id: str,
    payload: PurchaseOrderReceiveIn | None,
    actor_id: str,
) -> PurchaseOrder:
    """
    Receive a confirmed order, fully or in part.

    Item received quantities, stock levels and ledger rows are written through
    the same session; the caller commits once, so a failure on any line leaves
    nothing behind.
    """
    repo = PurchaseOrderRepository(db)
    order = repo.get_or_404(order_id)
    if order.status != PO_CONFIRMED:
        raise BusinessRuleError(messages.PURCHASE_ORDER_NOT_CONFIRMED)

    item_repo = PurchaseOrderItemRepository(db)
    items = item_repo.for_order(order.id)
    receipts = {item_id: qty for item_id, qty in _requested_receipts(items, payload).items() if qty > 0}
    if not receipts:
        # Lines shortened to what already arrived leave nothing outstanding.
        if _is_fully_received(items):
            return settle_if_received(db, order=order, actor_id=actor_id)
        raise BusinessRuleError(messages.PURCHASE_ORDER_NOTHING_TO_RECEIVE)

    notes = payload.notes if payload is not None and payload.notes else f"Received against {order.order_number}"
    by_id = {i.id: i for i in items}
    for item_id, quantity in receipts.items():
        item = by_id[item_id]
        result = db.execute(
            update(PurchaseOrderItem)
            .where(
                PurchaseOrderItem.id == item_id,
                PurchaseOrderItem.quantity_received + quantity <= PurchaseOrderItem.quantity_ordered,
            )
            .values(
                quantity_received=PurchaseOrderItem.quantity_received + quantity,
                updated_by=actor_id,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise BusinessRuleError(messages.PURCHASE_ORDER_OVER_RECEIPT)
        move_stock(
            db,
            product_id=item.product_id,
            transaction_type=TX_IN,
            quantity=quantity,
            actor_id=actor_id,
            reference_type=REF_PURCHASE,
            reference_id=order.id,
            notes=notes,
            create_missing=True,
        )

    fully_received = all(i.quantity_received >= i.quantity_ordered for i in _live_items_fresh(db, order.id))
    changes = {"status": PO_RECEIVED} if fully_received else {}
    order = repo.update(order, changes, actor_id=actor_id)

    log_event(
        logger,
        "purchase_order.received",
        order_id=order.id,
        order_number=order.order_number,
        lines=len(receipts),
        units=sum(receipts.values()),
        status=order.status,
        actor_id=actor_id,
    )
    return order


def soft_delete_purchase_order(db: Session, *, order_id: str, actor_id: str) -> PurchaseOrder:
    repo = PurchaseOrderRepository(db)
    return repo.soft_delete(repo.get_or_404(order_id), actor_id=actor_id)


def add_purchase_order_item(
    db: Session, *, order_id: str, payload: PurchaseOrderItemIn, actor_id: str
) -> PurchaseOrderItem:
    order = PurchaseOrderRepository(db).get_or_404(order_id)
    _ensure_editable(order)
    item = _add_item(db, order=order, item=payload, actor_id=actor_id)
    recalculate_total(db, order=order, actor_id=actor_id)
    return item


def update_purchase_order_item(
    db: Session, *, item_id: str, payload: PurchaseOrderItemUpdate, actor_id: str
) -> PurchaseOrderItem:
    item_repo = PurchaseOrderItemRepository(db)
    item = item_repo.get_or_404(item_id)
    order = PurchaseOrderRepository(db).get_or_404(item.purchase_order_id)
    _ensure_editable(order)

    changes = payload.model_dump(exclude_unset=True)
    quantity = changes.get("quantity_ordered", item.quantity_ordered)
    if quantity < item.quantity_received:
        raise BusinessRuleError("Ordered quantity cannot be below the quantity already received")
    if "unit_cost" in changes:
        changes["unit_cost"] = to_money(changes["unit_cost"])
    if changes.get("total_cost") is not None:
        changes["total_cost"] = to_money(changes["total_cost"])
    else:
        changes.pop("total_cost", None)
        if "quantity_ordered" in changes or "unit_cost" in changes:
            changes["total_cost"] = line_total(quantity, changes.get("unit_cost", item.unit_cost))

    item = item_repo.update(item, changes, actor_id=actor_id)
    recalculate_total(db, order=order, actor_id=actor_id)
    settle_if_received(db, order=order, actor_id=actor_id)
    return item


def remove_purchase_order_item(db: Session, *, item_id: str, actor_id: str) -> PurchaseOrderItem:
    item_repo = PurchaseOrderItemRepository(db)
    item = item_repo.get_or_404(item_id)
    order = PurchaseOrderRepository(db).get_or_404(item.purchase_order_id)
    _ensure_editable(order)
    if item.quantity_received > 0:
        raise BusinessRuleError("Items with received stock cannot be removed")
    item = item_repo.soft_delete(item, actor_id=actor_id)
    recalculate_total(db, order=order, actor_id=actor_id)
    settle_if_received(db, order=order, actor_id=actor_id)
    return item


def purchase_order_stats(db: Session) -> dict[str, int]:
    counts = PurchaseOrderRepository(db).count_by_status()
    return {
        "total": sum(counts.values()),
        "pending": counts.get(PO_PENDING, 0),
        "confirmed": counts.get(PO_CONFIRMED, 0),
        "received": counts.get(PO_RECEIVED, 0),
        "cancelled": counts.get(PO_CANCELLED, 0),
    }


def order_views(db: Session, orders: list[PurchaseOrder]) -> list[dict]:
    """Orders with their supplier summary and live items, loaded in two queries."""
    if not orders:
        return []
    order_ids = [o.id for o in orders]
    supplier_ids = {o.supplier_id for o in orders}
    suppliers = {
        s.id: s
        for s in SupplierRepository(db).find_all(Supplier.id.in_(supplier_ids), with_deleted=True)
    }
    items_by_order: dict[str, list[PurchaseOrderItem]] = defaultdict(list)
    for item in PurchaseOrderItemRepository(db).find_all(
        PurchaseOrderItem.purchase_order_id.in_(order_ids),
        order_by=[PurchaseOrderItem.created_at.asc(), PurchaseOrderItem.id],
    ):
        items_by_order[item.purchase_order_id].append(item)

    return [
        {
            "order": order,
            "supplier": suppliers.get(order.supplier_id),
            "items": items_by_order.get(order.id, []),
        }
        for order in orders
    ]
