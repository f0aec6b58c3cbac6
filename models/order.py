from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime, date
from models.base import Base, OrderStatus, LineStatus


class Order(Base):
    """
    Order header. Lines live in order_line and are written in the same
    transaction as their header.
    """
    __tablename__ = "orders"

    order_num = Column(Integer, primary_key=True, autoincrement=True)
    cust_num = Column(Integer, ForeignKey("customer.cust_num"), nullable=False, index=True)

    # Dates
    order_date = Column(Date, nullable=False, default=date.today)
    promise_date = Column(Date, nullable=True)
    ship_date = Column(Date, nullable=True)

    # Shipping and terms
    carrier = Column(String(30), nullable=True)
    instructions = Column(String(200), nullable=True)
    po = Column(String(30), nullable=True)
    terms = Column(String(30), nullable=False, default="Net30")
    sales_rep = Column(String(10), nullable=True)

    order_status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.ORDERED)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = relationship("Customer", back_populates="orders")
    lines = relationship("OrderLine", back_populates="order", passive_deletes=True)

    __table_args__ = (
        Index("idx_order_cust_date", "cust_num", "order_date"),
    )


class OrderLine(Base):
    """
    One item on an order. Primary key is (order_num, line_num).
    """
    __tablename__ = "order_line"

    order_num = Column(Integer, ForeignKey("orders.order_num"), primary_key=True)
    line_num = Column(Integer, primary_key=True, autoincrement=False)
    item_num = Column(Integer, ForeignKey("item.item_num"), nullable=False, index=True)

    price = Column(Float, nullable=False, default=0.0)
    qty = Column(Integer, nullable=False, default=0)
    discount = Column(Integer, nullable=False, default=0)
    extended_price = Column(Float, nullable=False, default=0.0)

    line_status = Column(Enum(LineStatus), nullable=False, default=LineStatus.ORDERED)

    # Relationships
    order = relationship("Order", back_populates="lines")
    item = relationship("Item")
