from backoffice.core.database import Base
from backoffice.models.product import Product, ProductCategory
from backoffice.models.order import Order, OrderStatus, LastOrderNumber
from backoffice.models.outbox import OutboxMessage

__all__ = [
    "Base",
    "Product",
    "ProductCategory",
    "Order",
    "OrderStatus",
    "LastOrderNumber",
    "OutboxMessage",
]
