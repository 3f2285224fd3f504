from sqlalchemy import func

from stockdesk.core import messages
from stockdesk.models.category import Category
from stockdesk.repositories.base import BaseRepository


class CategoryRepository(BaseRepository[Category]):
    model = Category
    not_found_message = messages.CATEGORY_NOT_FOUND
    sortable_fields = {"name": "name", "created_at": "created_at"}

    def name_taken(self, name: str, *, exclude_id: str | None = None) -> bool:
        return self.exists(func.lower(Category.name) == name.strip().lower(), exclude_id=exclude_id)
