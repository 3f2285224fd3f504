from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stockdesk.schemas.common import AuditOut, clean_optional_text

TransactionType = Literal["IN", "OUT", "ADJUSTMENT", "RESERVED", "RELEASED"]
ReferenceType = Literal["PURCHASE", "SALE", "ADJUSTMENT", "RETURN"]


class StockCreate(BaseModel):
    product_id: str
    quantity_available: int = Field(default=0, ge=0)
    quantity_reserved: int = Field(default=0, ge=0)
    reorder_point: int | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "product-id",
                "quantity_available": 120,
                "reorder_point": 24,
            }
        }
    )


class StockUpdate(BaseModel):
    """Absolute quantities. Omitted fields keep their current value."""

    quantity_available: int | None = Field(default=None, ge=0)
    quantity_reserved: int | None = Field(default=None, ge=0)
    reorder_point: int | None = Field(default=None, ge=0)


class StockAdjustIn(BaseModel):
    quantity_change: int = Field(
        ..., description="Positive adds stock, negative removes stock. Cannot be zero."
    )
    reference_type: ReferenceType = "ADJUSTMENT"
    reference_id: str | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("quantity_change")
    @classmethod
    def validate_non_zero_quantity_change(cls, value: int) -> int:
        if value == 0:
            raise ValueError("quantity_change cannot be zero")
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "quantity_change": -2,
                "notes": "2 bottles broken during unpacking",
            }
        }
    )


class StockQuantityIn(BaseModel):
    quantity: int = Field(gt=0)
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    notes: str | None = Field(default=None, max_length=500)


class StockOut(AuditOut):
    id: str
    product_id: str
    quantity_available: int
    quantity_reserved: int
    quantity_total: int
    reorder_point: int | None = None


class StockSummaryOut(BaseModel):
    id: str
    product_id: str
    product_name: str
    sku: str
    quantity_available: int
    quantity_reserved: int
    quantity_total: int
    reorder_point: int | None = None
    minimum_stock_level: int
    is_low_stock: bool


class StockTransactionCreate(BaseModel):
    product_id: str
    transaction_type: TransactionType
    quantity: int
    reference_type: ReferenceType | None = None
    reference_id: str | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("notes", "reference_id")
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        return clean_optional_text(value)

    @model_validator(mode="after")
    def validate_quantity_sign(self) -> "StockTransactionCreate":
        if self.quantity == 0:
            raise ValueError("quantity cannot be zero")
        if self.transaction_type != "ADJUSTMENT" and self.quantity < 0:
            raise ValueError("quantity must be positive; only ADJUSTMENT accepts a signed quantity")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "product_id": "product-id",
                "transaction_type": "OUT",
                "quantity": 3,
                "reference_type": "SALE",
                "reference_id": "sale-id",
            }
        }
    )


class StockTransactionOut(AuditOut):
    id: str
    product_id: str
    transaction_type: str
    quantity: int
    reference_type: str | None = None
    reference_id: str | None = None
    notes: str | None = None


class StockMovementOut(BaseModel):
    stock: StockOut
    transaction: StockTransactionOut
