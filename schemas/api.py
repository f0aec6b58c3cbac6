"""
Pydantic schemas for API request/response models.

Response models are the "screen fields" of the UI boundary: handlers copy
temp-table records into them.
"""

from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any, Generic, TypeVar
from datetime import date, datetime
from models.base import OrderStatus, LineStatus
from entities.validation import FieldError

T = TypeVar("T")


# ============================================================================
# Item Schemas
# ============================================================================

class ItemScreen(BaseModel):
    """Item fields shown to the user"""
    item_num: int
    item_name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    on_hand: int
    allocated: int
    re_order: int
    on_order: int

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "item_num": 1,
                "item_name": "Fins",
                "category": "Diving",
                "price": 47.00,
                "on_hand": 3500,
                "allocated": 150,
                "re_order": 500,
                "on_order": 0
            }
        }


class ItemCreate(BaseModel):
    """Fields accepted when adding an item"""
    item_num: int = Field(..., ge=1)
    item_name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float = 0.0
    on_hand: int = 0
    allocated: int = 0
    re_order: int = 0
    on_order: int = 0


class ItemUpdate(BaseModel):
    """Fields accepted when changing an item; omitted fields keep their value"""
    item_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = None
    on_hand: Optional[int] = None
    allocated: Optional[int] = None
    re_order: Optional[int] = None
    on_order: Optional[int] = None


# ============================================================================
# Customer Schemas
# ============================================================================

class CustomerScreen(BaseModel):
    """Customer fields shown to the user"""
    cust_num: int
    name: str
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    sales_rep: Optional[str] = None
    credit_limit: float
    balance: float
    terms: str
    discount: int
    comments: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerCreate(BaseModel):
    """Fields accepted when adding a customer; cust_num is assigned"""
    name: str
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
    terms: str = "Net30"
    discount: int = 0
    comments: Optional[str] = None


class CustomerUpdate(BaseModel):
    """Fields accepted when changing a customer; omitted fields keep their value"""
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    contact: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    sales_rep: Optional[str] = None
    credit_limit: Optional[float] = None
    terms: Optional[str] = None
    discount: Optional[int] = None
    comments: Optional[str] = None


# ============================================================================
# Order Schemas
# ============================================================================

class OrderLineScreen(BaseModel):
    line_num: int
    item_num: int
    price: float
    qty: int
    discount: int
    extended_price: float
    line_status: LineStatus

    class Config:
        from_attributes = True
        use_enum_values = True


class OrderScreen(BaseModel):
    """An order header with its lines"""
    order_num: int
    cust_num: int
    customer_name: Optional[str] = None
    order_date: date
    promise_date: Optional[date] = None
    ship_date: Optional[date] = None
    carrier: Optional[str] = None
    instructions: Optional[str] = None
    po: Optional[str] = None
    terms: str
    sales_rep: Optional[str] = None
    order_status: OrderStatus
    lines: List[OrderLineScreen] = Field(default_factory=list)
    order_total: float = 0.0

    class Config:
        from_attributes = True
        use_enum_values = True


class OrderLineInput(BaseModel):
    line_num: int = Field(..., ge=1)
    item_num: int
    qty: int
    price: Optional[float] = None
    discount: int = 0


class OrderCreate(BaseModel):
    cust_num: int
    order_date: Optional[date] = None
    promise_date: Optional[date] = None
    carrier: Optional[str] = None
    instructions: Optional[str] = None
    po: Optional[str] = None
    terms: str = "Net30"
    sales_rep: Optional[str] = None
    lines: List[OrderLineInput] = Field(default_factory=list)

    @validator("lines")
    def unique_line_numbers(cls, v):
        numbers = [line.line_num for line in v]
        if len(numbers) != len(set(numbers)):
            raise ValueError("line_num values must be unique")
        return v


class OrderUpdate(BaseModel):
    """
    Header fields to change plus line edits: ``lines`` are upserted by
    line_num, ``remove_lines`` are deleted.
    """
    promise_date: Optional[date] = None
    ship_date: Optional[date] = None
    carrier: Optional[str] = None
    instructions: Optional[str] = None
    po: Optional[str] = None
    terms: Optional[str] = None
    sales_rep: Optional[str] = None
    order_status: Optional[OrderStatus] = None
    lines: List[OrderLineInput] = Field(default_factory=list)
    remove_lines: List[int] = Field(default_factory=list)


# ============================================================================
# Result Schemas
# ============================================================================

class ListResponse(BaseModel, Generic[T]):
    """A list of screens plus how many were found"""
    found: bool
    count: int
    items: List[T]


class ValidationResponse(BaseModel):
    """Outcome of a validate call"""
    valid: bool
    message: str = ""
    errors: List[FieldError] = Field(default_factory=list)


class SaveResponse(BaseModel):
    created: int = 0
    updated: int = 0
    deleted: int = 0


class HealthCheckResponse(BaseModel):
    """Health check response model"""
    database_connected: bool
    table_counts: Dict[str, int] = Field(default_factory=dict)
    cached_entities: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    status: str = Field("unhealthy", description="Overall status: healthy or unhealthy")

    @validator("status", pre=True, always=True)
    def determine_status(cls, v, values):
        """Healthy only when the database answers"""
        return "healthy" if values.get("database_connected", False) else "unhealthy"


class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    errors: List[FieldError] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
