from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from stockdesk.schemas.common import AuditOut, clean_optional_text, clean_required_text, reject_explicit_nulls


class SupplierCreate(BaseModel):
    name: str = Field(max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return clean_required_text(value, "name")

    @field_validator("contact_person", "phone", "address")
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        return clean_optional_text(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Acme Wholesale",
                "contact_person": "Ada Obi",
                "email": "orders@acme.example",
                "phone": "+2348000000000",
                "address": "12 Market Road, Lagos",
            }
        }
    )


class SupplierUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    contact_person: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return clean_required_text(value, "name")

    @field_validator("contact_person", "phone", "address")
    @classmethod
    def normalize_optional_text(cls, value: str | None) -> str | None:
        return clean_optional_text(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "SupplierUpdate":
        reject_explicit_nulls(self, ("name", "is_active"))
        return self


class SupplierOut(AuditOut):
    id: str
    name: str
    contact_person: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    is_active: bool


class SupplierSummaryOut(BaseModel):
    id: str
    name: str
    email: str | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class SupplierStatsOut(BaseModel):
    total: int
    active: int
    inactive: int
    deleted: int
