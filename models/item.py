from sqlalchemy import Column, Integer, String, Float, Text, DateTime, Index
from datetime import datetime
from models.base import Base


class Item(Base):
    """
    Catalog item available for ordering.

    Purpose:
    - Source of ttItem rows
    - Price and stock figures referenced by order lines

    Design:
    - item_num is assigned by the caller (catalog numbering), not generated
    - Stock figures are plain integers; business rules forbid negatives
    """
    __tablename__ = "item"

    item_num = Column(Integer, primary_key=True, autoincrement=False)
    item_name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)

    # Pricing and stock
    price = Column(Float, nullable=False, default=0.0)
    on_hand = Column(Integer, nullable=False, default=0)
    allocated = Column(Integer, nullable=False, default=0)
    re_order = Column(Integer, nullable=False, default=0)
    on_order = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_item_category", "category"),
    )
