"""
Integration tests for the item entity against a SQLite database
"""

import pytest
from sqlalchemy import select

from core.exceptions import ChangeConflictError, RecordNotFoundError, ValidationFailedError
from entities.validation import ValidationReason
from models import Item
from temptables import RowState


@pytest.mark.asyncio
async def test_get_item_by_number(factory, seeded):
    items = factory.get_item_entity()

    found, dataset = await items.get_item_by_number(2)

    assert found is True
    record = dataset["ttItem"].find(2)
    assert record.item_name == "Tennis Racquet"
    assert record.price == 89.5
    assert not dataset.has_changes()


@pytest.mark.asyncio
async def test_missing_item_returns_empty_dataset(factory, seeded):
    found, dataset = await factory.get_item_entity().get_item_by_number(404)

    assert found is False
    assert dataset.is_empty()


@pytest.mark.asyncio
async def test_get_items_with_filter_and_limit(factory, seeded):
    items = factory.get_item_entity()

    found, dataset = await items.get_items("price < :limit", {"limit": 50})
    assert found
    assert [r.item_num for r in dataset["ttItem"]] == [1, 3]

    _, dataset = await items.get_items(Item.category == "Tennis")
    assert [r.item_name for r in dataset["ttItem"]] == ["Tennis Racquet"]

    _, dataset = await items.get_items(max_rows=2)
    assert len(dataset["ttItem"]) == 2


@pytest.mark.asyncio
async def test_invalid_item_is_not_created(factory, session_factory):
    items = factory.get_item_entity()
    dataset = items.new_dataset()
    dataset["ttItem"].add({"item_num": 10, "item_name": "Skis", "price": -5.0})

    with pytest.raises(ValidationFailedError) as exc_info:
        await items.create_item(dataset)

    assert exc_info.value.result.fields() == ["price"]
    async with session_factory() as session:
        assert await session.get(Item, 10) is None


@pytest.mark.asyncio
async def test_update_writes_only_changed_fields(factory, seeded, session_factory):
    items = factory.get_item_entity()
    _, dataset = await items.get_item_by_number(1)
    dataset.track_changes()

    dataset["ttItem"].modify(1, price=52.0)
    result = await items.update_item(dataset)

    assert result.updated == 1
    assert not dataset.has_changes()
    async with session_factory() as session:
        stored = await session.get(Item, 1)
        assert stored.price == 52.0
        assert stored.item_name == "Fins"
        assert stored.on_hand == 3500


@pytest.mark.asyncio
async def test_concurrent_change_is_detected(factory, seeded):
    items = factory.get_item_entity()
    _, first = await items.get_item_by_number(1)
    _, second = await items.get_item_by_number(1)
    first.track_changes()
    second.track_changes()

    first["ttItem"].find(1).price = 50.0
    await items.update_item(first)

    second["ttItem"].find(1).on_hand = 10
    with pytest.raises(ChangeConflictError) as exc_info:
        await items.update_item(second)

    assert exc_info.value.context["fields"] == ["price"]
    # The rejected dataset keeps its pending change
    assert second["ttItem"].rows(RowState.MODIFIED)


@pytest.mark.asyncio
async def test_update_of_deleted_row_raises_not_found(factory, seeded):
    items = factory.get_item_entity()
    _, stale = await items.get_item_by_number(3)
    stale.track_changes()

    _, dataset = await items.get_item_by_number(3)
    dataset.track_changes()
    dataset["ttItem"].remove(3)
    assert (await items.delete_item(dataset)).deleted == 1

    stale["ttItem"].modify(3, price=25.0)
    with pytest.raises(RecordNotFoundError):
        await items.update_item(stale)


@pytest.mark.asyncio
async def test_delete_removes_row(factory, seeded):
    items = factory.get_item_entity()
    _, dataset = await items.get_item_by_number(2)
    dataset.track_changes()
    dataset["ttItem"].remove(2)

    result = await items.delete_item(dataset)

    assert result == (0, 0, 1)
    assert dataset["ttItem"].rows() == []
    found, _ = await items.get_item_by_number(2)
    assert found is False


@pytest.mark.asyncio
async def test_item_on_an_order_cannot_be_deleted(factory, seeded):
    orders = factory.get_order_entity()
    dataset = orders.new_dataset()
    dataset["ttOrder"].add({"cust_num": seeded["cust_num"]})
    dataset["ttOrderLine"].add({"line_num": 1, "item_num": 1, "qty": 2, "price": 47.0})
    await orders.create_order(dataset)

    items = factory.get_item_entity()
    _, dataset = await items.get_item_by_number(1)
    dataset.track_changes()
    dataset["ttItem"].remove(1)

    with pytest.raises(ValidationFailedError) as exc_info:
        await items.delete_item(dataset)

    error = exc_info.value.result.errors[0]
    assert error.reason == ValidationReason.HAS_DEPENDENTS
    assert error.key == (1,)


@pytest.mark.asyncio
async def test_create_only_writes_created_rows(factory, seeded, session_factory):
    items = factory.get_item_entity()
    _, dataset = await items.get_items()
    dataset.track_changes()
    dataset["ttItem"].modify(1, price=1.0)
    dataset["ttItem"].add({"item_num": 4, "item_name": "Hiking Boots", "price": 112.0})

    result = await items.create_item(dataset)

    assert result.created == 1
    assert [row.state for row in dataset["ttItem"].rows(RowState.MODIFIED)] == [RowState.MODIFIED]
    async with session_factory() as session:
        prices = dict((await session.execute(select(Item.item_num, Item.price))).all())
    assert prices[1] == 47.0
    assert prices[4] == 112.0
