from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select

from stockdesk.core import messages
from stockdesk.core.errors import NotFoundError
from stockdesk.models.stock import Stock, StockTransaction
from stockdesk.repositories.base import BaseRepository, utcnow

LEDGER_CLOCK_KEY = "stockdesk.ledger_clock"


class StockRepository(BaseRepository[Stock]):
    model = Stock
    sortable_fields = {
        "created_at": "created_at",
        "updated_at": "updated_at",
        "quantity_available": "quantity_available",
        "quantity_total": "quantity_total",
    }
    default_sort = "updated_at"

    def get_for_product(self, product_id: str) -> Stock | None:
        return self.find_one(Stock.product_id == product_id)

    def get_for_product_or_404(self, product_id: str) -> Stock:
        stock = self.get_for_product(product_id)
        if stock is None:
            raise NotFoundError(messages.stock_not_found(product_id))
        return stock

    def reload(self, product_id: str) -> Stock | None:
        """Re-read a stock row, overwriting whatever the identity map holds."""
        return self.db.execute(
            select(Stock)
            .where(Stock.product_id == product_id, Stock.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()


class StockTransactionRepository(BaseRepository[StockTransaction]):
    model = StockTransaction
    sortable_fields = {"created_at": "created_at", "quantity": "quantity"}

    def next_timestamp(self) -> datetime:
        """
        Strictly increasing per session.

        The database clock is frozen for a whole transaction on Postgres, so
        rows written by one receipt would otherwise share ``created_at`` and
        come back in arbitrary order.
        """
        stamp = utcnow()
        previous = self.db.info.get(LEDGER_CLOCK_KEY)
        if previous is not None and stamp <= previous:
            stamp = previous + timedelta(microseconds=1)
        self.db.info[LEDGER_CLOCK_KEY] = stamp
        return stamp

    def create(self, *, actor_id: str, **values: Any) -> StockTransaction:
        stamp = self.next_timestamp()
        values.setdefault("created_at", stamp)
        values.setdefault("updated_at", stamp)
        return super().create(actor_id=actor_id, **values)
