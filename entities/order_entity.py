"""
Order business entity (dsOrder: ttOrder → ttOrderLine)

The only entity spanning two tables. Header and lines are read together
and written in one transaction; lines are deleted before their header.
"""

from typing import Optional, Sequence
import logging

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from entities.base import BusinessEntity, ReadResult, pending
from entities.binding import DataSource
from entities.executor import SaveResult
from entities.validation import ValidationReason, ValidationResult
from models import Customer, Item, Order, OrderLine
from schemas.datasets import ORDER_LINES, build_order_dataset
from temptables import Dataset, RowState

logger = logging.getLogger(__name__)


def extended_price(line: BaseModel) -> float:
    """qty * price less the line discount percentage"""
    return round(line.qty * line.price * (1 - line.discount / 100), 2)


class OrderEntity(BusinessEntity):
    """Orders with their lines"""

    entity_name = "order"

    def build_dataset(self) -> Dataset:
        return build_order_dataset()

    def data_sources(self) -> Sequence[DataSource]:
        return [
            DataSource(Order, skip_fields=("customer_name",)),
            DataSource(OrderLine),
        ]

    def validate_record(self, table: str, record: BaseModel, result: ValidationResult) -> None:
        if table == "ttOrder":
            key = (record.order_num,)
            result.require(table, record, "cust_num", key)
            if record.promise_date and record.promise_date < record.order_date:
                result.add(
                    table, "promise_date", ValidationReason.OUT_OF_RANGE, key,
                    detail="before order date"
                )
        else:
            key = (record.order_num, record.line_num)
            result.require(table, record, "item_num", key)
            result.positive(table, record, "qty", key)
            result.non_negative(table, record, "price", key)
            result.in_range(table, record, "discount", 0, 100, key)

    async def after_fill(self, session: AsyncSession, dataset: Dataset) -> None:
        orders = dataset.table("ttOrder").records()
        cust_nums = {order.cust_num for order in orders if order.cust_num is not None}
        if not cust_nums:
            return
        rows = await session.execute(
            select(Customer.cust_num, Customer.name).where(Customer.cust_num.in_(sorted(cust_nums)))
        )
        names = dict(rows.all())
        for order in orders:
            order.customer_name = names.get(order.cust_num)

    async def prepare_write(self, dataset: Dataset) -> None:
        for line in dataset.table("ttOrderLine"):
            value = extended_price(line)
            if line.extended_price != value:
                line.extended_price = value

    async def check_references(
        self,
        session: AsyncSession,
        dataset: Dataset,
        states: Sequence[RowState],
        result: ValidationResult
    ) -> None:
        written = [s for s in states if s in (RowState.CREATED, RowState.MODIFIED)]
        if not written:
            return

        orders = pending(dataset, "ttOrder", *written)
        cust_nums = {order.cust_num for order in orders}
        if cust_nums:
            rows = await session.execute(
                select(Customer.cust_num).where(Customer.cust_num.in_(sorted(cust_nums)))
            )
            known = set(rows.scalars().all())
            for order in orders:
                if order.cust_num not in known:
                    result.add(
                        "ttOrder", "cust_num", ValidationReason.UNKNOWN_REFERENCE,
                        (order.order_num,), detail=f"customer {order.cust_num}"
                    )

        lines = pending(dataset, "ttOrderLine", *written)
        item_nums = {line.item_num for line in lines}
        if item_nums:
            rows = await session.execute(
                select(Item.item_num).where(Item.item_num.in_(sorted(item_nums)))
            )
            known = set(rows.scalars().all())
            for line in lines:
                if line.item_num not in known:
                    result.add(
                        "ttOrderLine", "item_num", ValidationReason.UNKNOWN_REFERENCE,
                        (line.order_num, line.line_num), detail=f"item {line.item_num}"
                    )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_order_by_number(self, order_num: int) -> ReadResult:
        """Read an order with its lines and the customer name"""
        return await self.read_data("order_num = :order_num", {"order_num": order_num})

    async def get_orders_for_customer(self, cust_num: int, max_rows: Optional[int] = None) -> ReadResult:
        return await self.read_data(
            Order.cust_num == cust_num,
            order_by=[Order.order_date.desc(), Order.order_num.desc()],
            max_rows=max_rows
        )

    def remove_order(self, dataset: Dataset, order_num: int) -> None:
        """Mark an order and all of its lines for deletion"""
        dataset.track_changes()
        orders = dataset.table("ttOrder")
        order = orders.find(order_num)
        if order is None:
            raise KeyError(f"ttOrder has no row with key ({order_num},)")
        lines = dataset.table("ttOrderLine")
        for line in dataset.children_of(ORDER_LINES, order):
            lines.remove_row(lines.row_for(line))
        orders.remove(order_num)

    async def create_order(self, dataset: Dataset) -> SaveResult:
        return await self.create_data(dataset)

    async def update_order(self, dataset: Dataset) -> SaveResult:
        """Write changed headers and lines, including lines added or removed"""
        return await self.save_data(dataset)

    async def delete_order(self, dataset: Dataset) -> SaveResult:
        return await self.delete_data(dataset)

    def validate_order(self, dataset: Dataset) -> ValidationResult:
        return self.validate(dataset)
