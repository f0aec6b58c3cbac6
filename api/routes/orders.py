"""
Order endpoints: the order entry window (header plus lines)
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Dict, List
import logging

from api.dependencies import get_factory
from entities.factory import EntityFactory
from models import Item
from schemas.api import (
    ListResponse, OrderCreate, OrderLineInput, OrderLineScreen, OrderScreen, OrderUpdate,
    SaveResponse, ValidationResponse
)
from schemas.datasets import ORDER_LINES
from temptables import Dataset

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Orders"])


def to_screen(dataset: Dataset, order) -> OrderScreen:
    """Copy ttOrder and its ttOrderLine rows into the order screen"""
    lines = [
        OrderLineScreen(**line.model_dump())
        for line in sorted(dataset.children_of(ORDER_LINES, order), key=lambda l: l.line_num)
    ]
    return OrderScreen(
        **order.model_dump(),
        lines=lines,
        order_total=round(sum(line.extended_price for line in lines), 2)
    )


async def catalog_prices(factory: EntityFactory, lines: List[OrderLineInput]) -> Dict[int, float]:
    """Current prices of the items of lines submitted without a price"""
    item_nums = sorted({line.item_num for line in lines if line.price is None})
    if not item_nums:
        return {}
    _, dataset = await factory.get_item_entity().get_items(Item.item_num.in_(item_nums))
    return {record.item_num: record.price for record in dataset["ttItem"]}


def line_values(line: OrderLineInput, prices: Dict[int, float]) -> dict:
    values = line.model_dump(exclude={"price"})
    # Unknown items keep price 0; the entity rejects the reference
    values["price"] = line.price if line.price is not None else prices.get(line.item_num, 0.0)
    return values


async def load_order(factory: EntityFactory, order_num: int) -> Dataset:
    found, dataset = await factory.get_order_entity().get_order_by_number(order_num)
    if not found:
        raise HTTPException(status_code=404, detail=f"Order {order_num} not found")
    return dataset


@router.get("/orders/{order_num}", response_model=OrderScreen)
async def get_order(order_num: int, factory: EntityFactory = Depends(get_factory)):
    dataset = await load_order(factory, order_num)
    return to_screen(dataset, dataset["ttOrder"].find(order_num))


@router.get("/customers/{cust_num}/orders", response_model=ListResponse[OrderScreen])
async def list_customer_orders(
    cust_num: int,
    max_rows: int = Query(50, ge=1, le=500, description="Maximum number of orders"),
    factory: EntityFactory = Depends(get_factory)
):
    found, dataset = await factory.get_order_entity().get_orders_for_customer(cust_num, max_rows=max_rows)
    orders = [to_screen(dataset, order) for order in dataset["ttOrder"]]
    return ListResponse[OrderScreen](found=found, count=len(orders), items=orders)


def build_new_order(dataset: Dataset, payload: OrderCreate, prices: Dict[int, float]) -> None:
    header = payload.model_dump(exclude={"lines"}, exclude_none=True)
    dataset["ttOrder"].add(header)
    for line in payload.lines:
        dataset["ttOrderLine"].add(line_values(line, prices))


@router.post("/orders", response_model=OrderScreen, status_code=201)
async def create_order(payload: OrderCreate, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_order_entity()
    dataset = entity.new_dataset()
    build_new_order(dataset, payload, await catalog_prices(factory, payload.lines))

    await entity.create_order(dataset)
    order = dataset["ttOrder"].records()[0]
    logger.info(f"Created order {order.order_num} with {len(payload.lines)} line(s)")

    # Re-read so display-only fields (customer name) are filled
    dataset = await load_order(factory, order.order_num)
    return to_screen(dataset, dataset["ttOrder"].find(order.order_num))


@router.post("/orders/validate", response_model=ValidationResponse)
async def validate_order(payload: OrderCreate, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_order_entity()
    dataset = entity.new_dataset()
    build_new_order(dataset, payload, await catalog_prices(factory, payload.lines))
    result = entity.validate_order(dataset)
    return ValidationResponse(valid=result.valid, message=result.message, errors=result.errors)


@router.put("/orders/{order_num}", response_model=OrderScreen)
async def update_order(
    order_num: int,
    payload: OrderUpdate,
    factory: EntityFactory = Depends(get_factory)
):
    entity = factory.get_order_entity()
    dataset = await load_order(factory, order_num)
    dataset.track_changes()

    header = payload.model_dump(exclude={"lines", "remove_lines"}, exclude_unset=True)
    dataset["ttOrder"].modify(order_num, **header)

    lines = dataset["ttOrderLine"]
    prices = await catalog_prices(factory, payload.lines)
    for line in payload.lines:
        existing = lines.find(order_num, line.line_num)
        if existing is None:
            lines.add({**line_values(line, prices), "order_num": order_num})
            continue
        # Omitted fields keep their stored value
        values = line.model_dump(exclude_unset=True, exclude={"line_num"})
        if values.get("price") is None:
            values.pop("price", None)
            if line.item_num != existing.item_num:
                values["price"] = prices.get(line.item_num, 0.0)
        lines.modify(order_num, line.line_num, **values)
    for line_num in payload.remove_lines:
        if lines.find(order_num, line_num) is None:
            raise HTTPException(status_code=404, detail=f"Order {order_num} has no line {line_num}")
        lines.remove(order_num, line_num)

    await entity.update_order(dataset)
    dataset = await load_order(factory, order_num)
    return to_screen(dataset, dataset["ttOrder"].find(order_num))


@router.delete("/orders/{order_num}", response_model=SaveResponse)
async def delete_order(order_num: int, factory: EntityFactory = Depends(get_factory)):
    entity = factory.get_order_entity()
    dataset = await load_order(factory, order_num)
    entity.remove_order(dataset, order_num)
    result = await entity.delete_order(dataset)
    return SaveResponse(**result._asdict())
