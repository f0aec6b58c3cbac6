"""
Customer business entity (dsCustomer / ttCustomer)
"""

from typing import Optional, Sequence
import logging

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from entities.base import BusinessEntity, ReadResult, pending
from entities.binding import DataSource
from entities.executor import SaveResult
from entities.validation import ValidationReason, ValidationResult
from models import Customer, Order
from schemas.datasets import build_customer_dataset
from temptables import Dataset, RowState

logger = logging.getLogger(__name__)


class CustomerEntity(BusinessEntity):
    """
    Customers.

    balance is on the skip-list: it is read with the customer but only
    invoicing changes it.
    """

    entity_name = "customer"

    def build_dataset(self) -> Dataset:
        return build_customer_dataset()

    def data_sources(self) -> Sequence[DataSource]:
        return [DataSource(Customer, skip_fields=("balance",))]

    def validate_record(self, table: str, record: BaseModel, result: ValidationResult) -> None:
        key = (record.cust_num,)
        result.require(table, record, "name", key)
        result.non_negative(table, record, "credit_limit", key)
        result.in_range(table, record, "discount", 0, 100, key)

    async def check_references(
        self,
        session: AsyncSession,
        dataset: Dataset,
        states: Sequence[RowState],
        result: ValidationResult
    ) -> None:
        if RowState.DELETED not in states:
            return
        for record in pending(dataset, "ttCustomer", RowState.DELETED):
            count = await session.scalar(
                select(func.count()).select_from(Order).where(Order.cust_num == record.cust_num)
            )
            if count:
                result.add(
                    "ttCustomer", "cust_num", ValidationReason.HAS_DEPENDENTS, (record.cust_num,),
                    detail=f"{count} order(s)"
                )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_customer_by_number(self, cust_num: int) -> ReadResult:
        return await self.read_data("cust_num = :cust_num", {"cust_num": cust_num})

    async def get_customers_by_name(self, prefix: str, max_rows: Optional[int] = None) -> ReadResult:
        """Customers whose name starts with ``prefix`` (case-insensitive), by name"""
        return await self.read_data(
            Customer.name.istartswith(prefix, autoescape=True),
            order_by=[Customer.name, Customer.cust_num],
            max_rows=max_rows
        )

    async def create_customer(self, dataset: Dataset) -> SaveResult:
        return await self.create_data(dataset)

    async def update_customer(self, dataset: Dataset) -> SaveResult:
        return await self.update_data(dataset)

    async def delete_customer(self, dataset: Dataset) -> SaveResult:
        return await self.delete_data(dataset)

    def validate_customer(self, dataset: Dataset) -> ValidationResult:
        return self.validate(dataset)
