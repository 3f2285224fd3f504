# Error messages raised by services.
PRODUCT_NOT_FOUND = "Product not found"
PRODUCT_SKU_EXISTS = "Product SKU already exists"
PRODUCT_BARCODE_EXISTS = "Product barcode already exists"
PRODUCT_IN_PURCHASE_ORDERS = "Product is referenced by purchase orders"
CATEGORY_NOT_FOUND = "Category not found"
CATEGORY_INACTIVE = "Category is not active"
CATEGORY_NAME_EXISTS = "Category name already exists"
CATEGORY_IN_USE = "Category has products assigned"
SUPPLIER_NOT_FOUND = "Supplier not found"
SUPPLIER_NAME_EXISTS = "Supplier name already exists"
SUPPLIER_EMAIL_EXISTS = "Supplier email already exists"
SUPPLIER_INACTIVE = "Supplier is not active"
STOCK_EXISTS = "Stock already exists for this product"
INSUFFICIENT_STOCK = "Insufficient stock"
INSUFFICIENT_RESERVED_STOCK = "Insufficient reserved stock"
PURCHASE_ORDER_NOT_FOUND = "Purchase order not found"
PURCHASE_ORDER_NUMBER_EXISTS = "Purchase order number already exists"
PURCHASE_ORDER_ITEM_NOT_FOUND = "Purchase order item not found"
PURCHASE_ORDER_NOT_CONFIRMED = "Only confirmed purchase orders can be received"
PURCHASE_ORDER_LOCKED = "Received or cancelled purchase orders cannot be modified"
PURCHASE_ORDER_RECEIVE_VIA_ENDPOINT = "Use the receive endpoint to mark an order as received"
PURCHASE_ORDER_OVER_RECEIPT = "Received quantity exceeds ordered quantity"
PURCHASE_ORDER_NOTHING_TO_RECEIVE = "Nothing left to receive on this purchase order"
USER_NOT_FOUND = "User not found"
USER_EMAIL_EXISTS = "User email already exists"


def stock_not_found(product_id: str) -> str:
    return f"Stock not found for product {product_id}"


# Success messages returned in the response envelope.
API_MESSAGES = {
    "categories.created": "Category created successfully",
    "categories.fetched": "Categories fetched successfully",
    "categories.fetched_one": "Category fetched successfully",
    "categories.updated": "Category updated successfully",
    "categories.deleted": "Category deleted successfully",
    "categories.purged": "Category permanently deleted",
    "categories.restored": "Category restored successfully",
    "categories.counted": "Category count fetched successfully",
    "products.created": "Product created successfully",
    "products.fetched": "Products fetched successfully",
    "products.fetched_one": "Product fetched successfully",
    "products.updated": "Product updated successfully",
    "products.deleted": "Product deleted successfully",
    "products.purged": "Product permanently deleted",
    "products.restored": "Product restored successfully",
    "products.counted": "Product count fetched successfully",
    "suppliers.created": "Supplier created successfully",
    "suppliers.fetched": "Suppliers fetched successfully",
    "suppliers.fetched_one": "Supplier fetched successfully",
    "suppliers.updated": "Supplier updated successfully",
    "suppliers.deleted": "Supplier deleted successfully",
    "suppliers.restored": "Supplier restored successfully",
    "suppliers.stats": "Supplier statistics fetched successfully",
    "stock.created": "Stock created successfully",
    "stock.fetched": "Stock fetched successfully",
    "stock.updated": "Stock updated successfully",
    "stock.adjusted": "Stock adjusted successfully",
    "stock.reserved": "Stock reserved successfully",
    "stock.released": "Stock released successfully",
    "stock.low": "Low stock items fetched successfully",
    "stock.transaction_created": "Stock transaction recorded successfully",
    "stock.transactions": "Stock transactions fetched successfully",
    "purchase_orders.created": "Purchase order created successfully",
    "purchase_orders.fetched": "Purchase orders fetched successfully",
    "purchase_orders.fetched_one": "Purchase order fetched successfully",
    "purchase_orders.updated": "Purchase order updated successfully",
    "purchase_orders.received": "Purchase order received successfully",
    "purchase_orders.deleted": "Purchase order deleted successfully",
    "purchase_orders.stats": "Purchase order statistics fetched successfully",
    "purchase_orders.item_added": "Purchase order item added successfully",
    "purchase_orders.item_updated": "Purchase order item updated successfully",
    "purchase_orders.item_removed": "Purchase order item removed successfully",
    "users.created": "User created successfully",
    "users.fetched": "Users fetched successfully",
    "users.fetched_one": "User fetched successfully",
    "users.updated": "User updated successfully",
    "users.deleted": "User deleted successfully",
}
