from stockdesk.models.user import User, UserRole
from stockdesk.models.category import Category
from stockdesk.models.supplier import Supplier
from stockdesk.models.product import Product
from stockdesk.models.stock import Stock, StockTransaction
from stockdesk.models.purchase_order import PurchaseOrder, PurchaseOrderItem
