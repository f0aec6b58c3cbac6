"""
Item business entity (dsItem / ttItem)
"""

from typing import Any, Dict, Optional, Sequence
import logging

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from entities.base import BusinessEntity, ReadResult, pending
from entities.binding import DataSource
from entities.executor import Filter, SaveResult
from entities.validation import ValidationReason, ValidationResult
from models import Item, OrderLine
from schemas.datasets import build_item_dataset
from temptables import Dataset, RowState

logger = logging.getLogger(__name__)

NON_NEGATIVE_FIELDS = ("price", "on_hand", "allocated", "re_order", "on_order")


class ItemEntity(BusinessEntity):
    """Catalog items"""

    entity_name = "item"

    def build_dataset(self) -> Dataset:
        return build_item_dataset()

    def data_sources(self) -> Sequence[DataSource]:
        return [DataSource(Item)]

    def validate_record(self, table: str, record: BaseModel, result: ValidationResult) -> None:
        key = (record.item_num,)
        result.require(table, record, "item_name", key)
        for field in NON_NEGATIVE_FIELDS:
            result.non_negative(table, record, field, key)

    async def check_references(
        self,
        session: AsyncSession,
        dataset: Dataset,
        states: Sequence[RowState],
        result: ValidationResult
    ) -> None:
        if RowState.DELETED not in states:
            return
        for record in pending(dataset, "ttItem", RowState.DELETED):
            count = await session.scalar(
                select(func.count()).select_from(OrderLine).where(OrderLine.item_num == record.item_num)
            )
            if count:
                result.add(
                    "ttItem", "item_num", ValidationReason.HAS_DEPENDENTS, (record.item_num,),
                    detail=f"{count} order line(s)"
                )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_item_by_number(self, item_num: int) -> ReadResult:
        """Read one item; found is False and the dataset empty when missing"""
        return await self.read_data("item_num = :item_num", {"item_num": item_num})

    async def get_items(
        self,
        where: Filter = None,
        params: Optional[Dict[str, Any]] = None,
        max_rows: Optional[int] = None
    ) -> ReadResult:
        return await self.read_data(where, params, max_rows=max_rows)

    async def create_item(self, dataset: Dataset) -> SaveResult:
        return await self.create_data(dataset)

    async def update_item(self, dataset: Dataset) -> SaveResult:
        return await self.update_data(dataset)

    async def delete_item(self, dataset: Dataset) -> SaveResult:
        return await self.delete_data(dataset)

    def validate_item(self, dataset: Dataset) -> ValidationResult:
        return self.validate(dataset)
