from datetime import date
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stockdesk.schemas.common import AuditOut, clean_optional_text, reject_explicit_nulls
from stockdesk.schemas.supplier import SupplierSummaryOut

PurchaseOrderStatus = Literal["PENDING", "CONFIRMED", "RECEIVED", "CANCELLED"]


class PurchaseOrderItemIn(BaseModel):
    product_id: str
    quantity_ordered: int = Field(ge=1)
    unit_cost: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    total_cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class PurchaseOrderItemUpdate(BaseModel):
    quantity_ordered: int | None = Field(default=None, ge=1)
    unit_cost: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    total_cost: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "PurchaseOrderItemUpdate":
        reject_explicit_nulls(self, ("quantity_ordered", "unit_cost"))
        return self


class PurchaseOrderCreate(BaseModel):
    supplier_id: str
    order_number: str | None = Field(default=None, max_length=50)
    status: Literal["PENDING", "CONFIRMED"] = "PENDING"
    order_date: date | None = None
    expected_delivery_date: date | None = None
    total_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    notes: str | None = None
    items: list[PurchaseOrderItemIn] = Field(default_factory=list)

    @field_validator("order_number", "notes")
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        return clean_optional_text(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "supplier_id": "supplier-id",
                "order_number": "PO-2026-0001",
                "expected_delivery_date": "2026-03-01",
                "items": [
                    {"product_id": "product-id", "quantity_ordered": 48, "unit_cost": 0.9},
                ],
            }
        }
    )


class PurchaseOrderUpdate(BaseModel):
    supplier_id: str | None = None
    order_number: str | None = Field(default=None, max_length=50)
    status: PurchaseOrderStatus | None = None
    order_date: date | None = None
    expected_delivery_date: date | None = None
    notes: str | None = None

    @field_validator("order_number", "notes")
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        return clean_optional_text(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "PurchaseOrderUpdate":
        reject_explicit_nulls(self, ("supplier_id", "order_number", "status", "order_date"))
        return self


class ReceiveItemIn(BaseModel):
    item_id: str
    quantity: int = Field(gt=0)


class PurchaseOrderReceiveIn(BaseModel):
    """Leave ``items`` out to receive everything still outstanding."""

    items: list[ReceiveItemIn] | None = None
    notes: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": [{"item_id": "item-id", "quantity": 24}],
                "notes": "First delivery",
            }
        }
    )


class PurchaseOrderItemOut(AuditOut):
    id: str
    purchase_order_id: str
    product_id: str
    quantity_ordered: int
    quantity_received: int
    unit_cost: float
    total_cost: float


class PurchaseOrderOut(AuditOut):
    id: str
    supplier_id: str
    supplier: SupplierSummaryOut | None = None
    order_number: str
    status: str
    order_date: date
    expected_delivery_date: date | None = None
    total_amount: float
    notes: str | None = None
    items: list[PurchaseOrderItemOut] = Field(default_factory=list)


class PurchaseOrderStatsOut(BaseModel):
    total: int
    pending: int
    confirmed: int
    received: int
    cancelled: int
