"""
Temp-table and dataset definitions.

One schema per temp-table and one builder per dataset. Builders return a
fresh, empty dataset each call; datasets are never shared between calls.
"""

from temptables import DataRelation, Dataset, TempTableSchema
from schemas.records import ItemRow, CustomerRow, OrderRow, OrderLineRow


TT_ITEM = TempTableSchema("ttItem", ItemRow, primary_index=("item_num",))

TT_CUSTOMER = TempTableSchema("ttCustomer", CustomerRow, primary_index=("cust_num",))

TT_ORDER = TempTableSchema("ttOrder", OrderRow, primary_index=("order_num",))

TT_ORDER_LINE = TempTableSchema(
    "ttOrderLine", OrderLineRow, primary_index=("order_num", "line_num")
)

ORDER_LINES = DataRelation(
    name="OrderLines",
    parent="ttOrder",
    child="ttOrderLine",
    pairs=(("order_num", "order_num"),)
)


def build_item_dataset() -> Dataset:
    return Dataset("dsItem", [TT_ITEM])


def build_customer_dataset() -> Dataset:
    return Dataset("dsCustomer", [TT_CUSTOMER])


def build_order_dataset() -> Dataset:
    """dsOrder: ttOrder → ttOrderLine on order_num"""
    return Dataset("dsOrder", [TT_ORDER, TT_ORDER_LINE], relations=[ORDER_LINES])
