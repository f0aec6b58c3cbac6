"""
SQLAlchemy ORM models for the order-entry database tables.

Each model is the database side of one temp-table; business entities bind
them to temp-tables through entities.binding.DataSource.

Models:
    base: Base declarative class and shared enums (OrderStatus, LineStatus)
    item: Catalog items (ttItem)
    customer: Customers (ttCustomer)
    order: Order headers and order lines (ttOrder, ttOrderLine)

Relationships:
    - Customer → Order (one-to-many)
    - Order → OrderLine (one-to-many)
    - Item → OrderLine (one-to-many)
"""

from models.base import Base, OrderStatus, LineStatus
from models.item import Item
from models.customer import Customer
from models.order import Order, OrderLine

__all__ = [
    "Base",
    "OrderStatus",
    "LineStatus",
    "Item",
    "Customer",
    "Order",
    "OrderLine",
]
