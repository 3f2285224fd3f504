from typing import Optional

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from stockdesk.core.id_utils import generate_shortuuid
from stockdesk.db.base import AuditMixin, Base

ROLE_ADMIN = "ADMIN"
ROLE_MANAGER = "MANAGER"
ROLE_STAFF = "STAFF"
USER_ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF)


class User(AuditMixin, Base):
    __tablename__ = "users"

    # Subject id issued by the identity provider.
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    __table_args__ = (
        Index("ux_users_email_lower", func.lower(email), unique=True),
    )


class UserRole(AuditMixin, Base):
    __tablename__ = "user_roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=ROLE_STAFF)
    permissions: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")
    assigned_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_user_roles_role", "role"),
    )
