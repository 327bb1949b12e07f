"""Import every mapped class so relationship strings resolve and
``Base.metadata`` knows all tables."""

from catalog_api.core.database import Base
from catalog_api.models.category import Category
from catalog_api.models.order import Order, OrderItem, OrderStatus
from catalog_api.models.product import Product
from catalog_api.models.supplier import Supplier
from catalog_api.models.user import User

__all__ = [
    "Base",
    "Category",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Product",
    "Supplier",
    "User",
]
