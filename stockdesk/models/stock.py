from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stockdesk.db.base import AuditMixin, Base

TX_IN = "IN"
TX_OUT = "OUT"
TX_ADJUSTMENT = "ADJUSTMENT"
TX_RESERVED = "RESERVED"
TX_RELEASED = "RELEASED"
TRANSACTION_TYPES = (TX_IN, TX_OUT, TX_ADJUSTMENT, TX_RESERVED, TX_RELEASED)

REF_PURCHASE = "PURCHASE"
REF_SALE = "SALE"
REF_ADJUSTMENT = "ADJUSTMENT"
REF_RETURN = "RETURN"
REFERENCE_TYPES = (REF_PURCHASE, REF_SALE, REF_ADJUSTMENT, REF_RETURN)


class Stock(AuditMixin, Base):
    """
    Current quantities for one product. quantity_total is stored so the database
    can hold total = available + reserved as a constraint.
    """
    __tablename__ = "stock"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    quantity_available: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    quantity_reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    quantity_total: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    reorder_point: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("quantity_available >= 0", name="ck_stock_available_non_negative"),
        CheckConstraint("quantity_reserved >= 0", name="ck_stock_reserved_non_negative"),
        CheckConstraint(
            "quantity_total = quantity_available + quantity_reserved",
            name="ck_stock_total_matches_parts",
        ),
        CheckConstraint(
            "reorder_point IS NULL OR reorder_point >= 0",
            name="ck_stock_reorder_point_non_negative",
        ),
    )


class StockTransaction(AuditMixin, Base):
    """
    Ledger row per stock movement. quantity is positive except for ADJUSTMENT,
    where the sign carries the direction.
    """
    __tablename__ = "stock_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reference_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    reference_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_stock_transactions_product_created_at", "product_id", "created_at"),
        Index("ix_stock_transactions_reference", "reference_type", "reference_id"),
        Index("ix_stock_transactions_type_created_at", "transaction_type", "created_at"),
    )
