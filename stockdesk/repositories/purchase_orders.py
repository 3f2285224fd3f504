from sqlalchemy import func, select

from stockdesk.core import messages
from stockdesk.models.purchase_order import PurchaseOrder, PurchaseOrderItem
from stockdesk.repositories.base import BaseRepository


class PurchaseOrderRepository(BaseRepository[PurchaseOrder]):
    model = PurchaseOrder
    not_found_message = messages.PURCHASE_ORDER_NOT_FOUND
    sortable_fields = {
        "order_date": "order_date",
        "order_number": "order_number",
        "total_amount": "total_amount",
        "created_at": "created_at",
    }

    def order_number_taken(self, order_number: str, *, exclude_id: str | None = None) -> bool:
        return self.exists(PurchaseOrder.order_number == order_number.strip(), exclude_id=exclude_id)

    def count_by_status(self) -> dict[str, int]:
        rows = self.db.execute(
            select(PurchaseOrder.status, func.count(PurchaseOrder.id))
            .where(PurchaseOrder.deleted_at.is_(None))
            .group_by(PurchaseOrder.status)
        ).all()
        return {status: int(total) for status, total in rows}


class PurchaseOrderItemRepository(BaseRepository[PurchaseOrderItem]):
    model = PurchaseOrderItem
    not_found_message = messages.PURCHASE_ORDER_ITEM_NOT_FOUND

    def for_order(self, purchase_order_id: str) -> list[PurchaseOrderItem]:
        return self.find_all(
            PurchaseOrderItem.purchase_order_id == purchase_order_id,
            order_by=[PurchaseOrderItem.created_at.asc(), PurchaseOrderItem.id],
        )
