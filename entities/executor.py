"""
Generic CRUD executor shared by every business entity.

Reads fill a fresh dataset from the bound tables. Writes apply the pending
row changes of a dataset inside one transaction and, on success, accept
them in place so the caller's dataset reflects what was stored.
"""

from typing import Any, Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union
import logging
import time

from pydantic import BaseModel
from sqlalchemy import and_, or_, select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from core.exceptions import ChangeConflictError, RecordNotFoundError, SchemaError
from entities.binding import DataSource
from temptables import DataRelation, Dataset, RowState, TempTable, TrackedRow, diff_records

logger = logging.getLogger(__name__)

Filter = Union[str, ColumnElement, None]
FillHook = Callable[[AsyncSession, Dataset], Awaitable[None]]

ALL_STATES = (RowState.CREATED, RowState.MODIFIED, RowState.DELETED)


class SaveResult(NamedTuple):
    """Number of rows written per kind of change"""
    created: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.deleted


class CrudExecutor:
    """
    Read and write the tables behind one dataset.

    Args:
        session_factory: async_sessionmaker producing database sessions
        dataset_builder: Returns a new empty dataset
        sources: One data source per temp-table, in dataset table order
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        dataset_builder: Callable[[], Dataset],
        sources: Sequence[DataSource]
    ):
        self.session_factory = session_factory
        self.dataset_builder = dataset_builder

        prototype = dataset_builder()
        if len(sources) != len(prototype.tables):
            raise SchemaError(
                f"Dataset {prototype.name} has {len(prototype.tables)} tables "
                f"but {len(sources)} data sources were given",
                context={"dataset": prototype.name}
            )
        for source, table in zip(sources, prototype.tables):
            source.attach(table.schema)
        self.sources: List[DataSource] = list(sources)
        self.dataset_name = prototype.name

    def new_dataset(self) -> Dataset:
        return self.dataset_builder()

    def _pairs(self, dataset: Dataset) -> List[Tuple[TempTable, DataSource]]:
        if dataset.name != self.dataset_name:
            raise SchemaError(
                f"Executor for {self.dataset_name} cannot handle dataset {dataset.name}",
                context={"dataset": dataset.name}
            )
        return list(zip(dataset.tables, self.sources))

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def fill(
        self,
        where: Filter = None,
        params: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[Any]] = None,
        max_rows: Optional[int] = None,
        on_fill: Optional[FillHook] = None
    ) -> Dataset:
        """
        Fill a new dataset.

        Args:
            where: Filter on the top table, either a SQL fragment with
                ``:name`` bind parameters or a SQLAlchemy expression
            params: Values for the bind parameters of ``where``
            order_by: Ordering of the top table (defaults to its primary index)
            max_rows: Maximum number of top-table rows
            on_fill: Coroutine run with the session once all tables are filled

        Returns:
            The filled dataset; child tables hold only rows related to the
            top-table rows that were read
        """
        start_time = time.time()
        dataset = self.new_dataset()
        pairs = self._pairs(dataset)
        top, top_source = pairs[0]

        stmt = select(top_source.model)
        if where is not None:
            stmt = stmt.where(text(where) if isinstance(where, str) else where)
        stmt = stmt.order_by(*(order_by or top_source.key_columns()))
        if max_rows:
            stmt = stmt.limit(max_rows)

        async with self.session_factory() as session:
            result = await session.execute(stmt, params or {})
            for obj in result.scalars().all():
                top.load(top_source.record_values(obj))

            for table, source in pairs[1:]:
                await self._fill_child(session, dataset, table, source)

            if on_fill is not None:
                await on_fill(session, dataset)

        logger.info(
            f"Filled {dataset.name}: "
            + ", ".join(f"{t.name}={len(t)}" for t in dataset.tables)
            + f" ({(time.time() - start_time) * 1000:.2f}ms)"
        )
        return dataset

    async def _fill_child(
        self,
        session: AsyncSession,
        dataset: Dataset,
        table: TempTable,
        source: DataSource
    ) -> None:
        clauses = []
        for relation in dataset.relations_to(table.name):
            keys = {
                relation.parent_key(record)
                for record in dataset.table(relation.parent)
            }
            keys = {key for key in keys if None not in key}
            if keys:
                clauses.append(self._relation_clause(relation, source, keys))

        if not clauses:
            return

        stmt = select(source.model).where(or_(*clauses)).order_by(*source.key_columns())
        result = await session.execute(stmt)
        for obj in result.scalars().all():
            table.load(source.record_values(obj))

    @staticmethod
    def _relation_clause(relation: DataRelation, source: DataSource, keys) -> ColumnElement:
        columns = [source.column(name) for name in relation.child_fields]
        if len(columns) == 1:
            return columns[0].in_(sorted(key[0] for key in keys))
        return or_(*(
            and_(*(column == value for column, value in zip(columns, key)))
            for key in keys
        ))

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create(self, dataset: Dataset) -> SaveResult:
        return await self.save(dataset, states=(RowState.CREATED,))

    async def update(self, dataset: Dataset) -> SaveResult:
        return await self.save(dataset, states=(RowState.MODIFIED,))

    async def delete(self, dataset: Dataset) -> SaveResult:
        return await self.save(dataset, states=(RowState.DELETED,))

    async def save(
        self,
        dataset: Dataset,
        states: Sequence[RowState] = ALL_STATES
    ) -> SaveResult:
        """
        Write pending changes of the given states in one transaction.

        Deletes run children-first, creates and updates parents-first.
        Database-assigned values are filled back into created records and
        new parent keys are copied to their child rows.

        Raises:
            RelationIntegrityError: dataset relations are inconsistent
            RecordNotFoundError: a row to update or delete is gone
            ChangeConflictError: a stored row no longer matches its before-image
        """
        dataset.check_relations()
        pairs = self._pairs(dataset)

        written: List[Tuple[TempTable, TrackedRow]] = []
        originals: Dict[int, Tuple[BaseModel, Dict[str, Any]]] = {}
        created = updated = deleted = 0

        def remember(record: BaseModel) -> None:
            originals.setdefault(id(record), (record, record.model_dump()))

        async with self.session_factory() as session:
            try:
                async with session.begin():
                    if RowState.DELETED in states:
                        for table, source in reversed(pairs):
                            for row in table.rows(RowState.DELETED):
                                await self._delete_row(session, source, row)
                                written.append((table, row))
                                deleted += 1

                    for table, source in pairs:
                        if RowState.CREATED in states:
                            for row in table.rows(RowState.CREATED):
                                await self._insert_row(session, dataset, table, source, row, remember)
                                written.append((table, row))
                                created += 1
                        if RowState.MODIFIED in states:
                            for row in table.rows(RowState.MODIFIED):
                                if not self._delta(source, row):
                                    continue
                                await self._update_row(session, source, row)
                                written.append((table, row))
                                updated += 1
            except Exception as e:
                for record, values in originals.values():
                    for name, value in values.items():
                        setattr(record, name, value)
                logger.error(f"Saving {dataset.name} failed, transaction rolled back: {e}")
                raise

        for table, row in written:
            table.accept_row(row)

        result = SaveResult(created=created, updated=updated, deleted=deleted)
        logger.info(
            f"Saved {dataset.name}: created={created}, updated={updated}, deleted={deleted}"
        )
        return result

    async def _locate(self, session: AsyncSession, source: DataSource, before: BaseModel) -> Any:
        key = source.key_of(before)
        result = await session.execute(
            select(source.model).where(source.key_clause(key))
        )
        obj = result.scalar_one_or_none()
        if obj is None:
            raise RecordNotFoundError(
                f"{source.table_name} row {key} no longer exists",
                context={"table_name": source.table_name, "key": key}
            )
        return obj

    def _check_conflict(self, source: DataSource, obj: Any, before: BaseModel) -> None:
        fields = source.conflicting_fields(obj, before)
        if fields:
            key = source.key_of(before)
            raise ChangeConflictError(
                f"{source.table_name} row {key} was changed by another user",
                context={"table_name": source.table_name, "key": key, "fields": fields}
            )

    async def _insert_row(
        self,
        session: AsyncSession,
        dataset: Dataset,
        table: TempTable,
        source: DataSource,
        row: TrackedRow,
        remember: Callable[[BaseModel], None]
    ) -> None:
        record = row.record
        old_keys = {
            relation: relation.parent_key(record)
            for relation in dataset.relations_from(table.name)
        }

        obj = source.model(**source.write_values(record))
        session.add(obj)
        await session.flush()
        await session.refresh(obj)

        # Fill back database-assigned values (generated keys, skipped columns)
        remember(record)
        for name, value in source.record_values(obj).items():
            if getattr(record, name) != value:
                setattr(record, name, value)

        for relation, old_key in old_keys.items():
            new_key = relation.parent_key(record)
            if new_key == old_key:
                continue
            for child in dataset.table(relation.child):
                if relation.child_key(child) == old_key:
                    remember(child)
                    for child_field, value in zip(relation.child_fields, new_key):
                        setattr(child, child_field, value)

    @staticmethod
    def _delta(source: DataSource, row: TrackedRow) -> Dict[str, Any]:
        """Changed fields that are written (skip-list fields excluded)"""
        return diff_records(row.before, row.record, skip=source.skip_fields)

    async def _update_row(self, session: AsyncSession, source: DataSource, row: TrackedRow) -> None:
        obj = await self._locate(session, source, row.before)
        self._check_conflict(source, obj, row.before)

        values = source.write_values(row.record, self._delta(source, row))
        for column, value in values.items():
            setattr(obj, column, value)
        await session.flush()
        logger.debug(f"Updated {source.table_name} {source.key_of(row.before)}: {sorted(values)}")

    async def _delete_row(self, session: AsyncSession, source: DataSource, row: TrackedRow) -> None:
        obj = await self._locate(session, source, row.before)
        self._check_conflict(source, obj, row.before)
        await session.delete(obj)
        await session.flush()
