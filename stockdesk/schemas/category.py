from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stockdesk.schemas.common import AuditOut, clean_optional_text, clean_required_text, reject_explicit_nulls


class CategoryCreate(BaseModel):
    name: str = Field(max_length=100)
    description: str | None = None
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return clean_required_text(value, "name")

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_optional_text(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Beverages",
                "description": "Soft drinks, juices and water",
                "is_active": True,
            }
        }
    )


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return clean_required_text(value, "name")

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_optional_text(value)

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "CategoryUpdate":
        reject_explicit_nulls(self, ("name", "is_active"))
        return self


class CategoryOut(AuditOut):
    id: str
    name: str
    description: str | None = None
    is_active: bool


class CategorySummaryOut(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)
