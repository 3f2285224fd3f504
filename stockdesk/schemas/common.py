from datetime import datetime
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")

SortOrder = Literal["asc", "desc"]


class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    count: int
    has_next: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total": 42,
                "page": 1,
                "limit": 10,
                "total_pages": 5,
                "count": 10,
                "has_next": True,
            }
        }
    )


class PageOut(BaseModel, Generic[T]):
    items: list[T]
    pagination: PaginationMeta


class ApiResponse(BaseModel, Generic[T]):
    statusCode: int
    success: bool = True
    message: str
    data: T | None = None


class CountOut(BaseModel):
    count: int


class ValidationIssueOut(BaseModel):
    field: str
    message: str
    type: str | None = None


class ErrorDetailOut(BaseModel):
    code: str
    request_id: str
    path: str
    details: list[ValidationIssueOut] | None = None


class ErrorOut(BaseModel):
    statusCode: int
    success: bool = False
    message: str
    data: None = None
    error: ErrorDetailOut

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "statusCode": 409,
                "success": False,
                "message": "Product SKU already exists",
                "data": None,
                "error": {
                    "code": "conflict",
                    "request_id": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
                    "path": "/api/products",
                    "details": None,
                },
            }
        }
    )


class AuditOut(BaseModel):
    created_by: str
    created_at: datetime
    updated_by: str | None = None
    updated_at: datetime | None = None
    deleted_by: str | None = None
    deleted_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


def clean_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def clean_required_text(value: str, field_name: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{field_name} is required")
    return cleaned


def reject_explicit_nulls(model: BaseModel, field_names: tuple[str, ...]) -> None:
    # Omitted fields are left alone on update; an explicit null would break NOT NULL columns.
    for field_name in field_names:
        if field_name in model.model_fields_set and getattr(model, field_name) is None:
            raise ValueError(f"{field_name} cannot be null")
