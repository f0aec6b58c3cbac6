from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class OrderStatus(str, enum.Enum):
    """Order header status"""
    ORDERED = "ordered"
    BACK_ORDERED = "back_ordered"
    PARTIALLY_SHIPPED = "partially_shipped"
    SHIPPED = "shipped"


class LineStatus(str, enum.Enum):
    """Order line status"""
    ORDERED = "ordered"
    BACK_ORDERED = "back_ordered"
    SHIPPED = "shipped"
