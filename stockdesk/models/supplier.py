from typing import Optional

from sqlalchemy import Boolean, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from stockdesk.db.base import AuditMixin, Base


class Supplier(AuditMixin, Base):
    __tablename__ = "suppliers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="1")

    __table_args__ = (
        Index("ux_suppliers_name_lower", func.lower(name), unique=True),
        Index(
            "ux_suppliers_email_lower",
            func.lower(email),
            unique=True,
            postgresql_where=email.isnot(None),
            sqlite_where=email.isnot(None),
        ),
    )
