"""
Integration tests for the order entity (header plus lines)
"""

import pytest
from datetime import date
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import FlushError

from core.exceptions import RelationIntegrityError, ValidationFailedError
from entities.validation import ValidationReason
from models import Order, OrderLine
from models.base import OrderStatus
from temptables import RowState


async def create_sample_order(orders, cust_num):
    dataset = orders.new_dataset()
    order = dataset["ttOrder"].add({"cust_num": cust_num, "order_date": date(2024, 5, 1), "carrier": "UPS"})
    dataset["ttOrderLine"].add({"line_num": 1, "item_num": 1, "qty": 2, "price": 47.0})
    dataset["ttOrderLine"].add({"line_num": 2, "item_num": 2, "qty": 1, "price": 89.5, "discount": 10})
    await orders.create_order(dataset)
    return dataset, order


async def count_rows(session_factory, model) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


@pytest.mark.asyncio
async def test_create_order_cascades_generated_key(factory, seeded):
    orders = factory.get_order_entity()

    dataset, order = await create_sample_order(orders, seeded["cust_num"])

    assert order.order_num is not None
    lines = dataset["ttOrderLine"].records()
    assert [line.order_num for line in lines] == [order.order_num, order.order_num]
    assert [line.extended_price for line in lines] == [94.0, 80.55]
    assert not dataset.has_changes()


@pytest.mark.asyncio
async def test_read_order_fills_lines_and_customer_name(factory, seeded):
    orders = factory.get_order_entity()
    _, order = await create_sample_order(orders, seeded["cust_num"])

    found, dataset = await orders.get_order_by_number(order.order_num)

    assert found
    header = dataset["ttOrder"].find(order.order_num)
    assert header.customer_name == "Lift Tours"
    assert header.order_status == OrderStatus.ORDERED
    assert [line.line_num for line in dataset["ttOrderLine"]] == [1, 2]


@pytest.mark.asyncio
async def test_orders_for_customer_newest_first(factory, seeded):
    orders = factory.get_order_entity()
    await create_sample_order(orders, seeded["cust_num"])
    dataset = orders.new_dataset()
    dataset["ttOrder"].add({"cust_num": seeded["cust_num"], "order_date": date(2024, 6, 1)})
    await orders.create_order(dataset)

    found, dataset = await orders.get_orders_for_customer(seeded["cust_num"])

    assert found
    assert [o.order_date for o in dataset["ttOrder"]] == [date(2024, 6, 1), date(2024, 5, 1)]
    assert len(dataset["ttOrderLine"]) == 2


@pytest.mark.asyncio
async def test_unknown_item_is_rejected(factory, seeded, session_factory):
    orders = factory.get_order_entity()
    dataset = orders.new_dataset()
    dataset["ttOrder"].add({"cust_num": seeded["cust_num"]})
    dataset["ttOrderLine"].add({"line_num": 1, "item_num": 99, "qty": 1, "price": 5.0})

    with pytest.raises(ValidationFailedError) as exc_info:
        await orders.create_order(dataset)

    error = exc_info.value.result.errors[0]
    assert error.field == "item_num"
    assert error.reason == ValidationReason.UNKNOWN_REFERENCE
    assert await count_rows(session_factory, Order) == 0


@pytest.mark.asyncio
async def test_unknown_customer_is_rejected(factory, seeded):
    orders = factory.get_order_entity()
    dataset = orders.new_dataset()
    dataset["ttOrder"].add({"cust_num": 12345})

    with pytest.raises(ValidationFailedError) as exc_info:
        await orders.create_order(dataset)

    assert exc_info.value.result.fields() == ["cust_num"]


@pytest.mark.asyncio
async def test_mixed_update_in_one_save(factory, seeded, session_factory):
    orders = factory.get_order_entity()
    _, order = await create_sample_order(orders, seeded["cust_num"])
    order_num = order.order_num

    _, dataset = await orders.get_order_by_number(order_num)
    dataset.track_changes()
    dataset["ttOrder"].modify(order_num, carrier="FedEx")
    lines = dataset["ttOrderLine"]
    lines.modify(order_num, 1, qty=4)
    lines.remove(order_num, 2)
    lines.add({"order_num": order_num, "line_num": 3, "item_num": 3, "qty": 5, "price": 20.0})

    result = await orders.update_order(dataset)

    assert result == (1, 2, 1)
    _, reread = await orders.get_order_by_number(order_num)
    assert reread["ttOrder"].find(order_num).carrier == "FedEx"
    stored = {line.line_num: line for line in reread["ttOrderLine"]}
    assert sorted(stored) == [1, 3]
    assert stored[1].qty == 4
    assert stored[1].extended_price == 188.0
    assert stored[3].extended_price == 100.0


@pytest.mark.asyncio
async def test_delete_order_removes_lines_first(factory, seeded, session_factory):
    orders = factory.get_order_entity()
    _, order = await create_sample_order(orders, seeded["cust_num"])
    _, dataset = await orders.get_order_by_number(order.order_num)

    orders.remove_order(dataset, order.order_num)
    assert len(dataset["ttOrderLine"].rows(RowState.DELETED)) == 2

    result = await orders.delete_order(dataset)

    assert result.deleted == 3
    assert await count_rows(session_factory, Order) == 0
    assert await count_rows(session_factory, OrderLine) == 0


@pytest.mark.asyncio
async def test_deleting_header_alone_is_rejected(factory, seeded, session_factory):
    orders = factory.get_order_entity()
    _, order = await create_sample_order(orders, seeded["cust_num"])
    _, dataset = await orders.get_order_by_number(order.order_num)
    dataset.track_changes()
    dataset["ttOrder"].remove(order.order_num)

    with pytest.raises(RelationIntegrityError):
        await orders.delete_order(dataset)

    assert await count_rows(session_factory, Order) == 1


@pytest.mark.asyncio
async def test_orphan_line_is_rejected(factory, seeded, session_factory):
    orders = factory.get_order_entity()
    dataset = orders.new_dataset()
    dataset["ttOrderLine"].add({"order_num": 77, "line_num": 1, "item_num": 1, "qty": 1, "price": 47.0})

    with pytest.raises(RelationIntegrityError):
        await orders.create_order(dataset)

    assert await count_rows(session_factory, OrderLine) == 0


@pytest.mark.asyncio
async def test_failed_save_rolls_back_and_restores_keys(factory, seeded, session_factory):
    orders = factory.get_order_entity()
    dataset = orders.new_dataset()
    order = dataset["ttOrder"].add({"cust_num": seeded["cust_num"]})
    # Both lines receive the same (order_num, line_num) once the order is written
    dataset["ttOrderLine"].add({"line_num": 1, "item_num": 1, "qty": 1, "price": 47.0})
    dataset["ttOrderLine"].add({"line_num": 1, "item_num": 2, "qty": 1, "price": 89.5})

    with pytest.raises((IntegrityError, FlushError)):
        await orders.create_order(dataset)

    assert order.order_num is None
    assert [line.order_num for line in dataset["ttOrderLine"]] == [None, None]
    assert len(dataset["ttOrderLine"].rows(RowState.CREATED)) == 2
    assert await count_rows(session_factory, Order) == 0
    assert await count_rows(session_factory, OrderLine) == 0
