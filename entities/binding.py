"""
Data sources: the binding between one temp-table and one database table.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

from pydantic import BaseModel
from sqlalchemy import and_, inspect
from sqlalchemy.sql.elements import ColumnElement

from core.exceptions import SchemaError
from temptables import TempTableSchema

logger = logging.getLogger(__name__)


class DataSource:
    """
    Binds a temp-table to an ORM model.

    Args:
        model: SQLAlchemy mapped class
        skip_fields: Temp-table fields never written to the database and
            never compared when checking for conflicting changes. Skipped
            fields that map to a column are still read.
        field_map: temp-table field → model attribute, for fields whose
            names differ
    """

    def __init__(
        self,
        model: type,
        skip_fields: Iterable[str] = (),
        field_map: Optional[Mapping[str, str]] = None
    ):
        self.model = model
        self.skip_fields = frozenset(skip_fields)
        self.field_map = dict(field_map or {})
        self.schema: Optional[TempTableSchema] = None
        self._columns: Dict[str, str] = {}

    def __repr__(self) -> str:
        table = self.schema.name if self.schema else "<unattached>"
        return f"DataSource({self.model.__name__} -> {table})"

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    def attach(self, schema: TempTableSchema) -> "DataSource":
        """
        Validate the binding against a temp-table schema.

        Raises:
            SchemaError: a non-skipped field or a primary-index field has no
                column, or the skip-list names an unknown field
        """
        attributes = {attr.key for attr in inspect(self.model).column_attrs}
        context = {"table_name": schema.name, "model": self.model.__name__}

        for name in self.skip_fields:
            if not schema.has_field(name):
                raise SchemaError(
                    f"Skip-list names unknown field '{name}'",
                    context={**context, "field_name": name}
                )

        columns = {}
        for name in schema.field_names:
            attribute = self.field_map.get(name, name)
            if attribute in attributes:
                columns[name] = attribute
            elif name not in self.skip_fields:
                raise SchemaError(
                    f"Field '{name}' has no column on {self.model.__name__}",
                    context={**context, "field_name": name}
                )

        for name in schema.primary_index:
            if name not in columns or name in self.skip_fields:
                raise SchemaError(
                    f"Primary index field '{name}' must map to a written column",
                    context={**context, "field_name": name}
                )

        self.schema = schema
        self._columns = columns
        logger.debug(f"Attached {self!r} ({len(columns)} mapped fields)")
        return self

    def _require_schema(self) -> TempTableSchema:
        if self.schema is None:
            raise SchemaError(
                f"Data source for {self.model.__name__} is not attached",
                context={"model": self.model.__name__}
            )
        return self.schema

    # ------------------------------------------------------------------
    # Field mapping
    # ------------------------------------------------------------------

    @property
    def mapped_fields(self) -> List[str]:
        """Fields backed by a column, in temp-table order"""
        return list(self._columns)

    @property
    def writable_fields(self) -> List[str]:
        return [name for name in self._columns if name not in self.skip_fields]

    def column_name(self, field_name: str) -> str:
        return self._columns[field_name]

    def column(self, field_name: str):
        return getattr(self.model, self.column_name(field_name))

    def key_columns(self) -> List[Any]:
        return [self.column(name) for name in self._require_schema().primary_index]

    def key_clause(self, key: Sequence[Any]) -> ColumnElement:
        columns = self.key_columns()
        return and_(*(column == value for column, value in zip(columns, key)))

    def key_of(self, record: BaseModel) -> Tuple[Any, ...]:
        return self._require_schema().key_of(record)

    # ------------------------------------------------------------------
    # Value transfer
    # ------------------------------------------------------------------

    def record_values(self, obj: Any) -> Dict[str, Any]:
        """Read every mapped field from an ORM object"""
        return {name: getattr(obj, attribute) for name, attribute in self._columns.items()}

    def write_values(self, record: BaseModel, fields: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """Column values for the writable fields (or the given subset)"""
        names = self.writable_fields if fields is None else [
            name for name in fields if name in self._columns and name not in self.skip_fields
        ]
        return {self._columns[name]: getattr(record, name) for name in names}

    def conflicting_fields(self, obj: Any, before: BaseModel) -> List[str]:
        """Writable fields whose stored value differs from the before-image"""
        return [
            name for name in self.writable_fields
            if getattr(obj, self._columns[name]) != getattr(before, name)
        ]
