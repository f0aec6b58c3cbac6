"""
Temp-tables: typed in-memory record sets with change tracking.

A temp-table schema is an ordered set of typed fields with default values
and a primary index, taken from a pydantic record model. Rows hold a live
record and, while change tracking is on, a before-image: a deep copy of
the record taken when tracking started. Row state is derived by diffing
the two, so callers may change records by plain attribute assignment.
"""

from dataclasses import dataclass
from typing import (
    Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Type, Union,
    get_args, get_origin
)
import enum
import logging
import types

from pydantic import BaseModel

from core.exceptions import DuplicateKeyError, SchemaError

logger = logging.getLogger(__name__)


class RowState(str, enum.Enum):
    """Change state of a temp-table row"""
    UNCHANGED = "unchanged"
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class FieldDef:
    """One typed temp-table field"""
    name: str
    python_type: Any
    default: Any
    required: bool


def unwrap_optional(annotation: Any) -> Any:
    """Return X for Optional[X] / X | None, otherwise the annotation itself"""
    origin = get_origin(annotation)
    if origin is Union or origin is getattr(types, "UnionType", None):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


class TempTableSchema:
    """
    Shape of a temp-table.

    Args:
        name: Temp-table name (e.g. "ttItem")
        record_type: pydantic model describing the fields, in order
        primary_index: Field names of the primary index
        unique: Whether the primary index is unique
    """

    def __init__(
        self,
        name: str,
        record_type: Type[BaseModel],
        primary_index: Sequence[str],
        unique: bool = True
    ):
        self.name = name
        self.record_type = record_type
        self.primary_index = tuple(primary_index)
        self.unique = unique

        self._fields: Dict[str, FieldDef] = {}
        for field_name, info in record_type.model_fields.items():
            default = None if info.is_required() else info.get_default(call_default_factory=True)
            self._fields[field_name] = FieldDef(
                name=field_name,
                python_type=unwrap_optional(info.annotation),
                default=default,
                required=info.is_required()
            )

        if not self.primary_index:
            raise SchemaError(
                "Primary index must name at least one field",
                context={"table_name": name}
            )
        for field_name in self.primary_index:
            if field_name not in self._fields:
                raise SchemaError(
                    f"Primary index field '{field_name}' is not a field of {name}",
                    context={"table_name": name, "field_name": field_name}
                )

    def __repr__(self) -> str:
        return f"TempTableSchema({self.name!r}, fields={self.field_names})"

    @property
    def fields(self) -> List[FieldDef]:
        return list(self._fields.values())

    @property
    def field_names(self) -> List[str]:
        return list(self._fields)

    def has_field(self, name: str) -> bool:
        return name in self._fields

    def field(self, name: str) -> FieldDef:
        try:
            return self._fields[name]
        except KeyError:
            raise SchemaError(
                f"{self.name} has no field '{name}'",
                context={"table_name": self.name, "field_name": name}
            ) from None

    def field_type(self, name: str) -> Any:
        return self.field(name).python_type

    def key_of(self, record: BaseModel) -> Tuple[Any, ...]:
        return tuple(getattr(record, f) for f in self.primary_index)

    def new_record(self, **values: Any) -> BaseModel:
        return self.record_type(**values)

    def coerce(self, record: Union[BaseModel, Mapping[str, Any]]) -> BaseModel:
        """Turn a mapping (or a record of this type) into a validated record"""
        if isinstance(record, self.record_type):
            return record
        if isinstance(record, BaseModel):
            record = record.model_dump()
        return self.record_type.model_validate(record)


class TrackedRow:
    """A live record plus its before-image"""

    __slots__ = ("record", "before", "created", "deleted")

    def __init__(self, record: BaseModel, created: bool = False):
        self.record = record
        self.before: Optional[BaseModel] = None
        self.created = created
        self.deleted = False

    @property
    def state(self) -> RowState:
        if self.deleted:
            return RowState.DELETED
        if self.created:
            return RowState.CREATED
        if self.before is not None and diff_records(self.before, self.record):
            return RowState.MODIFIED
        return RowState.UNCHANGED

    def snapshot(self) -> None:
        self.before = self.record.model_copy(deep=True)

    def __repr__(self) -> str:
        return f"TrackedRow({self.state.value}, {self.record!r})"


def diff_records(
    before: BaseModel,
    after: BaseModel,
    skip: Iterable[str] = ()
) -> Dict[str, Any]:
    """
    Field-level delta between two records of the same type.

    Returns:
        {field_name: new_value} for every changed field not in ``skip``
    """
    skipped = set(skip)
    delta = {}
    for name in type(after).model_fields:
        if name in skipped:
            continue
        new_value = getattr(after, name)
        if getattr(before, name) != new_value:
            delta[name] = new_value
    return delta


@dataclass
class RowChange:
    """A pending change of one row, as seen at diff time"""
    table: str
    state: RowState
    before: Optional[BaseModel]
    after: Optional[BaseModel]

    def delta(self, skip: Iterable[str] = ()) -> Dict[str, Any]:
        if self.state == RowState.MODIFIED:
            return diff_records(self.before, self.after, skip)
        if self.state == RowState.CREATED:
            skipped = set(skip)
            return {k: v for k, v in self.after.model_dump().items() if k not in skipped}
        return {}

    def changed_fields(self) -> List[str]:
        return list(self.delta())


class TempTable:
    """
    Rows of one temp-table.

    Rows added by the caller are CREATED. Rows loaded from the database are
    UNCHANGED until tracking is on and their record diverges from the
    before-image.
    """

    def __init__(self, schema: TempTableSchema):
        self.schema = schema
        self._rows: List[TrackedRow] = []
        self.tracking_changes = False

    @property
    def name(self) -> str:
        return self.schema.name

    def __repr__(self) -> str:
        return f"TempTable({self.name!r}, rows={len(self)})"

    def __len__(self) -> int:
        return sum(1 for row in self._rows if not row.deleted)

    def __iter__(self) -> Iterator[BaseModel]:
        return iter(self.records())

    def records(self) -> List[BaseModel]:
        """Live (not deleted) records in row order"""
        return [row.record for row in self._rows if not row.deleted]

    def rows(self, *states: RowState) -> List[TrackedRow]:
        """Rows, optionally restricted to the given states"""
        if not states:
            return list(self._rows)
        return [row for row in self._rows if row.state in states]

    # ------------------------------------------------------------------
    # Row creation
    # ------------------------------------------------------------------

    def add(self, record: Union[BaseModel, Mapping[str, Any]]) -> BaseModel:
        """Add a caller-created row (state CREATED)"""
        return self._append(self.schema.coerce(record), created=True).record

    def load(self, record: Union[BaseModel, Mapping[str, Any]]) -> BaseModel:
        """Add a row read from the database (state UNCHANGED)"""
        row = self._append(self.schema.coerce(record), created=False)
        if self.tracking_changes:
            row.snapshot()
        return row.record

    def _append(self, record: BaseModel, created: bool) -> TrackedRow:
        key = self.schema.key_of(record)
        if self.schema.unique and None not in key and self._find_row(key) is not None:
            raise DuplicateKeyError(
                f"{self.name} already contains a row with key {key}",
                context={"table_name": self.name, "key": key}
            )
        row = TrackedRow(record, created=created)
        self._rows.append(row)
        return row

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find(self, *key: Any) -> Optional[BaseModel]:
        row = self._find_row(tuple(key))
        return row.record if row else None

    def find_row(self, *key: Any) -> Optional[TrackedRow]:
        return self._find_row(tuple(key))

    def _find_row(self, key: Tuple[Any, ...]) -> Optional[TrackedRow]:
        if len(key) != len(self.schema.primary_index):
            raise SchemaError(
                f"{self.name} key has {len(self.schema.primary_index)} fields, got {len(key)}",
                context={"table_name": self.name, "key": key}
            )
        for row in self._rows:
            if not row.deleted and self.schema.key_of(row.record) == key:
                return row
        return None

    def row_for(self, record: BaseModel) -> Optional[TrackedRow]:
        for row in self._rows:
            if row.record is record:
                return row
        return None

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    def track_changes(self, enabled: bool = True) -> None:
        """
        Turn change tracking on or off.

        Turning it on snapshots a before-image of every row that does not
        have one yet. Turning it off keeps pending changes; they can still be
        saved, accepted or rejected.
        """
        if enabled and not self.tracking_changes:
            for row in self._rows:
                if not row.created and row.before is None:
                    row.snapshot()
        self.tracking_changes = enabled

    def modify(self, *key: Any, **values: Any) -> BaseModel:
        """Assign fields of the row with the given key"""
        row = self._find_row(tuple(key))
        if row is None:
            raise KeyError(f"{self.name} has no row with key {key}")
        for name in values:
            self.schema.field(name)

        primary_index = self.schema.primary_index
        if self.schema.unique and any(name in values for name in primary_index):
            current = self.schema.key_of(row.record)
            new_key = tuple(values.get(f, v) for f, v in zip(primary_index, current))
            if None not in new_key and new_key != current:
                other = self._find_row(new_key)
                if other is not None and other is not row:
                    raise DuplicateKeyError(
                        f"{self.name} already contains a row with key {new_key}",
                        context={"table_name": self.name, "key": new_key}
                    )

        for name, value in values.items():
            setattr(row.record, name, value)
        return row.record

    def remove(self, *key: Any) -> None:
        """Delete the row with the given key"""
        row = self._find_row(tuple(key))
        if row is None:
            raise KeyError(f"{self.name} has no row with key {key}")
        self.remove_row(row)

    def remove_row(self, row: TrackedRow) -> None:
        if row.created or not self.tracking_changes:
            self._rows.remove(row)
            return
        if row.before is None:
            row.snapshot()
        row.deleted = True

    def has_changes(self) -> bool:
        return any(row.state != RowState.UNCHANGED for row in self._rows)

    def changes(self) -> List[RowChange]:
        result = []
        for row in self._rows:
            state = row.state
            if state == RowState.UNCHANGED:
                continue
            result.append(RowChange(
                table=self.name,
                state=state,
                before=row.before,
                after=None if state == RowState.DELETED else row.record
            ))
        return result

    def accept_row(self, row: TrackedRow) -> None:
        """Make a written row the new baseline"""
        if row.deleted:
            if row in self._rows:
                self._rows.remove(row)
            return
        row.created = False
        row.before = None
        if self.tracking_changes:
            row.snapshot()

    def accept_changes(self) -> None:
        for row in list(self._rows):
            self.accept_row(row)

    def reject_changes(self) -> None:
        """Restore before-images and drop created rows"""
        kept = []
        for row in self._rows:
            if row.created:
                continue
            if row.before is not None:
                for name, value in diff_records(row.record, row.before).items():
                    setattr(row.record, name, value)
            row.deleted = False
            kept.append(row)
        self._rows = kept

    def empty(self) -> None:
        self._rows = []

    def to_list(self) -> List[Dict[str, Any]]:
        return [record.model_dump(mode="json") for record in self.records()]
