from sqlalchemy import func

from stockdesk.core import messages
from stockdesk.models.product import Product
from stockdesk.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    model = Product
    not_found_message = messages.PRODUCT_NOT_FOUND
    sortable_fields = {
        "name": "name",
        "sku": "sku",
        "unit_price": "unit_price",
        "created_at": "created_at",
    }

    def sku_taken(self, sku: str, *, exclude_id: str | None = None) -> bool:
        return self.exists(func.lower(Product.sku) == sku.strip().lower(), exclude_id=exclude_id)

    def barcode_taken(self, barcode: str, *, exclude_id: str | None = None) -> bool:
        return self.exists(Product.barcode == barcode.strip(), exclude_id=exclude_id)

    def get_by_sku(self, sku: str) -> Product | None:
        return self.find_one(func.lower(Product.sku) == sku.strip().lower())

    def get_by_barcode(self, barcode: str) -> Product | None:
        return self.find_one(Product.barcode == barcode.strip())
