"""
Business entity base class.

An entity owns one dataset definition and the data sources behind it, and
delegates reading and writing to a CrudExecutor. Subclasses provide the
schema side (dataset builder, data sources) and their business rules.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional, Sequence
import logging

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.exceptions import ValidationFailedError
from entities.binding import DataSource
from entities.executor import ALL_STATES, CrudExecutor, Filter, FillHook, SaveResult
from entities.validation import ValidationResult
from temptables import Dataset, RowState

logger = logging.getLogger(__name__)


class ReadResult(NamedTuple):
    """A filled dataset and whether its top table has at least one row"""
    found: bool
    dataset: Dataset


class BusinessEntity(ABC):
    """
    Abstract base class for all business entities.

    Responsibilities:
    - Bind the dataset's temp-tables to database tables
    - Read into fresh datasets (by value)
    - Validate, then write pending changes back (by reference)
    """

    entity_name: str = "entity"

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self.executor = CrudExecutor(session_factory, self.build_dataset, self.data_sources())
        logger.info(f"{type(self).__name__} created for dataset {self.executor.dataset_name}")

    @abstractmethod
    def build_dataset(self) -> Dataset:
        """Return a new, empty dataset"""
        pass

    @abstractmethod
    def data_sources(self) -> Sequence[DataSource]:
        """One data source per dataset table, in table order"""
        pass

    @abstractmethod
    def validate_record(self, table: str, record: BaseModel, result: ValidationResult) -> None:
        """Apply the business rules of one row, adding errors to ``result``"""
        pass

    def new_dataset(self) -> Dataset:
        return self.executor.new_dataset()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def read_data(
        self,
        where: Filter = None,
        params: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[Any]] = None,
        max_rows: Optional[int] = None
    ) -> ReadResult:
        dataset = await self.executor.fill(
            where=where,
            params=params,
            order_by=order_by,
            max_rows=max_rows or settings.DEFAULT_MAX_ROWS,
            on_fill=self.after_fill
        )
        return ReadResult(found=len(dataset.top_table) > 0, dataset=dataset)

    async def after_fill(self, session: AsyncSession, dataset: Dataset) -> None:
        """Hook for entities that compute display-only fields after a read"""
        return None

    # ------------------------------------------------------------------
    # Validate
    # ------------------------------------------------------------------

    def validate(self, dataset: Dataset) -> ValidationResult:
        """Validate every live row of the dataset"""
        result = ValidationResult()
        for table in dataset.tables:
            for record in table:
                self.validate_record(table.name, record, result)
        if not result.valid:
            logger.info(f"{self.entity_name} validation failed: {result.fields()}")
        return result

    async def check_references(
        self,
        session: AsyncSession,
        dataset: Dataset,
        states: Sequence[RowState],
        result: ValidationResult
    ) -> None:
        """Hook for rules that need the database (references, dependents)"""
        return None

    async def _ensure_valid(self, dataset: Dataset, states: Sequence[RowState]) -> None:
        result = ValidationResult()
        if RowState.CREATED in states or RowState.MODIFIED in states:
            result.extend(self.validate(dataset))
        if result.valid:
            async with self.session_factory() as session:
                await self.check_references(session, dataset, states, result)
        if not result.valid:
            raise ValidationFailedError(result, context={"entity": self.entity_name})

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def prepare_write(self, dataset: Dataset) -> None:
        """Hook for derived fields computed before writing"""
        return None

    async def save_data(
        self,
        dataset: Dataset,
        states: Sequence[RowState] = ALL_STATES
    ) -> SaveResult:
        await self.prepare_write(dataset)
        await self._ensure_valid(dataset, states)
        return await self.executor.save(dataset, states=states)

    async def create_data(self, dataset: Dataset) -> SaveResult:
        return await self.save_data(dataset, states=(RowState.CREATED,))

    async def update_data(self, dataset: Dataset) -> SaveResult:
        return await self.save_data(dataset, states=(RowState.MODIFIED,))

    async def delete_data(self, dataset: Dataset) -> SaveResult:
        return await self.save_data(dataset, states=(RowState.DELETED,))


def pending(dataset: Dataset, table: str, *states: RowState) -> List[BaseModel]:
    """Records of ``table`` in the given states (before-image for deletes)"""
    records = []
    for row in dataset.table(table).rows(*states):
        records.append(row.before if row.state == RowState.DELETED else row.record)
    return records
