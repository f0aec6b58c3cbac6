"""
Pydantic schemas for temp-table records and API payloads.

Schemas:
    records: Record models of the temp-tables (ttItem, ttCustomer, ttOrder, ttOrderLine)
    datasets: Temp-table schemas and dataset builders (dsItem, dsCustomer, dsOrder)
    api: Request/response models of the HTTP boundary ("screens")

Usage:
    from schemas.datasets import build_order_dataset, TT_ITEM
    from schemas.records import ItemRow
    from schemas.api import ItemScreen, CustomerCreate

Example:
    dataset = build_order_dataset()
    dataset["ttOrder"].add({"cust_num": 1})
    dataset["ttOrderLine"].add({"line_num": 1, "item_num": 3, "qty": 2})

Validation:
    Record models validate assignments, so a record edited in place keeps
    its declared field types. Business rules (required fields, negative
    amounts) are checked by the entities, not by the records.
"""

__all__ = [
    "ItemRow",
    "CustomerRow",
    "OrderRow",
    "OrderLineRow",
    "TT_ITEM",
    "TT_CUSTOMER",
    "TT_ORDER",
    "TT_ORDER_LINE",
    "build_item_dataset",
    "build_customer_dataset",
    "build_order_dataset",
]
