from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stockdesk.schemas.category import CategorySummaryOut
from stockdesk.schemas.common import AuditOut, clean_optional_text, clean_required_text, reject_explicit_nulls


class ProductCreate(BaseModel):
    name: str = Field(max_length=255)
    sku: str = Field(max_length=100)
    barcode: Optional[str] = Field(default=None, max_length=100)
    category_id: Optional[str] = None
    description: Optional[str] = None
    unit_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    cost_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    minimum_stock_level: int = Field(default=0, ge=0)
    is_active: bool = True

    @field_validator("name", "sku")
    @classmethod
    def validate_required_text(cls, value: str, info) -> str:
        return clean_required_text(value, info.field_name)

    @field_validator("barcode", "category_id", "description")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional_text(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Sparkling Water 500ml",
                "sku": "BEV-SPW-500",
                "barcode": "6001234567890",
                "category_id": "category-id",
                "unit_price": 1.5,
                "cost_price": 0.9,
                "minimum_stock_level": 24,
            }
        }
    )


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    sku: Optional[str] = Field(default=None, max_length=100)
    barcode: Optional[str] = Field(default=None, max_length=100)
    category_id: Optional[str] = None
    description: Optional[str] = None
    unit_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    cost_price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    minimum_stock_level: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("name", "sku")
    @classmethod
    def validate_required_text(cls, value: Optional[str], info) -> Optional[str]:
        if value is None:
            return None
        return clean_required_text(value, info.field_name)

    @field_validator("barcode", "category_id", "description")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        return clean_optional_text(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "ProductUpdate":
        reject_explicit_nulls(self, ("name", "sku", "unit_price", "minimum_stock_level", "is_active"))
        return self


class ProductOut(AuditOut):
    id: str
    name: str
    sku: str
    barcode: Optional[str] = None
    category_id: Optional[str] = None
    category: Optional[CategorySummaryOut] = None
    description: Optional[str] = None
    unit_price: float
    cost_price: Optional[float] = None
    minimum_stock_level: int
    is_active: bool
