from sqlalchemy import Column, Integer, String, Float, Text, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime
from models.base import Base


class Customer(Base):
    """
    Customer master record.

    Design:
    - cust_num is generated by the database when not supplied
    - balance is maintained by invoicing, never written through ttCustomer
    """
    __tablename__ = "customer"

    cust_num = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, index=True)

    # Address
    address = Column(String(200), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(50), nullable=False, default="USA")

    # Contact
    contact = Column(String(100), nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(200), nullable=True)
    sales_rep = Column(String(10), nullable=True)

    # Credit
    credit_limit = Column(Float, nullable=False, default=1500.0)
    balance = Column(Float, nullable=False, default=0.0)
    terms = Column(String(30), nullable=False, default="Net30")
    discount = Column(Integer, nullable=False, default=0)
    comments = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    orders = relationship("Order", back_populates="customer", passive_deletes=True)
