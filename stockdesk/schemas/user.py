from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from stockdesk.schemas.common import reject_explicit_nulls

RoleName = Literal["ADMIN", "MANAGER", "STAFF"]


class UserCreate(BaseModel):
    id: str | None = Field(default=None, max_length=36, description="Identity provider subject id")
    email: EmailStr
    isEmailVerified: bool = False
    role: RoleName = "STAFF"
    permissions: list[str] = Field(default_factory=list)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "manager@stockdesk.example",
                "isEmailVerified": True,
                "role": "MANAGER",
                "permissions": ["purchase_orders.receive"],
            }
        }
    )


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    isEmailVerified: bool | None = None
    role: RoleName | None = None
    permissions: list[str] | None = None
    isRoleActive: bool | None = None

    @model_validator(mode="after")
    def reject_null_required_fields(self) -> "UserUpdate":
        reject_explicit_nulls(self, ("email", "isEmailVerified", "role", "isRoleActive"))
        return self


class UserOut(BaseModel):
    id: str
    email: str
    isEmailVerified: bool
    role: str | None = None
    permissions: list[str] = Field(default_factory=list)
    isRoleActive: bool = False
    createdAt: datetime
    updatedAt: datetime | None = None
    deletedAt: datetime | None = None
