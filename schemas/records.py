"""
Pydantic record models for the temp-tables.

Field order is the temp-table field order; defaults are the temp-table
initial values. Assignment is validated so records can be edited in place
while change tracking is on.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import date
from models.base import OrderStatus, LineStatus


class ItemRow(BaseModel):
    """ttItem"""
    item_num: int
    item_name: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    price: float = 0.0
    on_hand: int = 0
    allocated: int = 0
    re_order: int = 0
    on_order: int = 0

    class Config:
        validate_assignment = True


class CustomerRow(BaseModel):
    """ttCustomer. cust_num stays None until the database assigns it."""
    cust_num: Optional[int] = None
    name: str = ""
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str = "USA"
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    sales_rep: Optional[str] = None
    credit_limit: float = 1500.0
    balance: float = 0.0
    terms: str = "Net30"
    discount: int = 0
    comments: Optional[str] = None

    @validator("name", "terms", "country", pre=True)
    def strip_text(cls, v):
        """Trim surrounding whitespace so blank names read as empty"""
        if isinstance(v, str):
            return v.strip()
        return v

    class Config:
        validate_assignment = True


class OrderRow(BaseModel):
    """ttOrder. customer_name is display-only and never written."""
    order_num: Optional[int] = None
    cust_num: Optional[int] = None
    order_date: date = Field(default_factory=date.today)
    promise_date: Optional[date] = None
    ship_date: Optional[date] = None
    carrier: Optional[str] = None
    instructions: Optional[str] = None
    po: Optional[str] = None
    terms: str = "Net30"
    sales_rep: Optional[str] = None
    order_status: OrderStatus = OrderStatus.ORDERED
    customer_name: Optional[str] = None

    class Config:
        validate_assignment = True


class OrderLineRow(BaseModel):
    """ttOrderLine"""
    order_num: Optional[int] = None
    line_num: int
    item_num: Optional[int] = None
    price: float = 0.0
    qty: int = 0
    discount: int = 0
    extended_price: float = 0.0
    line_status: LineStatus = LineStatus.ORDERED

    class Config:
        validate_assignment = True
