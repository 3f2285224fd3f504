from sqlalchemy import func

from stockdesk.core import messages
from stockdesk.models.supplier import Supplier
from stockdesk.repositories.base import BaseRepository


class SupplierRepository(BaseRepository[Supplier]):
    model = Supplier
    not_found_message = messages.SUPPLIER_NOT_FOUND
    sortable_fields = {"name": "name", "email": "email", "created_at": "created_at"}

    def name_taken(self, name: str, *, exclude_id: str | None = None) -> bool:
        return self.exists(func.lower(Supplier.name) == name.strip().lower(), exclude_id=exclude_id)

    def email_taken(self, email: str, *, exclude_id: str | None = None) -> bool:
        return self.exists(func.lower(Supplier.email) == email.strip().lower(), exclude_id=exclude_id)
