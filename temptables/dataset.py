"""
Datasets: named groups of temp-tables with parent-child relations.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from pydantic import BaseModel

from core.exceptions import RelationIntegrityError, SchemaError
from temptables.temp_table import RowChange, RowState, TempTable, TempTableSchema

logger = logging.getLogger(__name__)

_NUMERIC_TYPES = (int, float)


@dataclass(frozen=True)
class DataRelation:
    """
    Foreign-key-style link between two temp-tables.

    Args:
        name: Relation name
        parent: Parent temp-table name
        child: Child temp-table name
        pairs: (parent_field, child_field) pairs
    """
    name: str
    parent: str
    child: str
    pairs: Tuple[Tuple[str, str], ...]

    @property
    def parent_fields(self) -> Tuple[str, ...]:
        return tuple(p for p, _ in self.pairs)

    @property
    def child_fields(self) -> Tuple[str, ...]:
        return tuple(c for _, c in self.pairs)

    def parent_key(self, record: BaseModel) -> Tuple[Any, ...]:
        return tuple(getattr(record, f) for f in self.parent_fields)

    def child_key(self, record: BaseModel) -> Tuple[Any, ...]:
        return tuple(getattr(record, f) for f in self.child_fields)


def types_compatible(left: Any, right: Any) -> bool:
    """Identical types, or both numeric"""
    if left == right:
        return True
    return left in _NUMERIC_TYPES and right in _NUMERIC_TYPES


class Dataset:
    """
    An ordered group of temp-tables.

    Table order matters: data sources bind to tables positionally, parents
    are written before children and children are deleted before parents.
    """

    def __init__(
        self,
        name: str,
        schemas: Sequence[TempTableSchema],
        relations: Sequence[DataRelation] = ()
    ):
        self.name = name
        self._tables: Dict[str, TempTable] = {}
        for schema in schemas:
            if schema.name in self._tables:
                raise SchemaError(
                    f"Dataset {name} declares {schema.name} twice",
                    context={"dataset": name, "table_name": schema.name}
                )
            self._tables[schema.name] = TempTable(schema)

        self.relations: List[DataRelation] = list(relations)
        for relation in self.relations:
            self._check_relation(relation)

    def __repr__(self) -> str:
        return f"Dataset({self.name!r}, tables={self.table_names})"

    def _check_relation(self, relation: DataRelation) -> None:
        context = {"dataset": self.name, "relation": relation.name}
        for table_name in (relation.parent, relation.child):
            if table_name not in self._tables:
                raise SchemaError(
                    f"Relation {relation.name} refers to unknown table {table_name}",
                    context={**context, "table_name": table_name}
                )
        if not relation.pairs:
            raise SchemaError(f"Relation {relation.name} has no field pairs", context=context)

        parent = self._tables[relation.parent].schema
        child = self._tables[relation.child].schema
        for parent_field, child_field in relation.pairs:
            for schema, field_name in ((parent, parent_field), (child, child_field)):
                if not schema.has_field(field_name):
                    raise SchemaError(
                        f"Relation {relation.name}: {schema.name} has no field '{field_name}'",
                        context={**context, "table_name": schema.name, "field_name": field_name}
                    )
            parent_type = parent.field_type(parent_field)
            child_type = child.field_type(child_field)
            if not types_compatible(parent_type, child_type):
                raise SchemaError(
                    f"Relation {relation.name}: {parent.name}.{parent_field} ({parent_type}) "
                    f"is not compatible with {child.name}.{child_field} ({child_type})",
                    context={**context, "field_name": child_field}
                )

    # ------------------------------------------------------------------
    # Tables and relations
    # ------------------------------------------------------------------

    @property
    def tables(self) -> List[TempTable]:
        return list(self._tables.values())

    @property
    def table_names(self) -> List[str]:
        return list(self._tables)

    def table(self, name: str) -> TempTable:
        try:
            return self._tables[name]
        except KeyError:
            raise SchemaError(
                f"Dataset {self.name} has no table {name}",
                context={"dataset": self.name, "table_name": name}
            ) from None

    def __getitem__(self, name: str) -> TempTable:
        return self.table(name)

    @property
    def top_table(self) -> TempTable:
        return self.tables[0]

    def relations_from(self, parent: str) -> List[DataRelation]:
        return [r for r in self.relations if r.parent == parent]

    def relations_to(self, child: str) -> List[DataRelation]:
        return [r for r in self.relations if r.child == child]

    def children_of(self, relation: DataRelation, parent_record: BaseModel) -> List[BaseModel]:
        key = relation.parent_key(parent_record)
        return [
            record for record in self.table(relation.child)
            if relation.child_key(record) == key
        ]

    def parent_of(self, relation: DataRelation, child_record: BaseModel) -> Optional[BaseModel]:
        key = relation.child_key(child_record)
        for record in self.table(relation.parent):
            if relation.parent_key(record) == key:
                return record
        return None

    # ------------------------------------------------------------------
    # Change tracking
    # ------------------------------------------------------------------

    def track_changes(self, enabled: bool = True) -> None:
        for table in self.tables:
            table.track_changes(enabled)

    def has_changes(self) -> bool:
        return any(table.has_changes() for table in self.tables)

    def changes(self) -> List[RowChange]:
        result = []
        for table in self.tables:
            result.extend(table.changes())
        return result

    def accept_changes(self) -> None:
        for table in self.tables:
            table.accept_changes()

    def reject_changes(self) -> None:
        for table in self.tables:
            table.reject_changes()

    def empty(self) -> None:
        for table in self.tables:
            table.empty()

    def is_empty(self) -> bool:
        return all(len(table) == 0 for table in self.tables)

    # ------------------------------------------------------------------
    # Consistency
    # ------------------------------------------------------------------

    def check_relations(self) -> None:
        """
        Verify parent-child consistency before a multi-table write.

        Raises:
            RelationIntegrityError: a live child references a parent key not
                present in the parent table, a child with an unassigned key
                matches several new parents, or a deleted parent still has
                live children
        """
        violations = []
        for relation in self.relations:
            parent_table = self.table(relation.parent)
            child_table = self.table(relation.child)

            live_keys: Dict[Tuple[Any, ...], int] = {}
            for record in parent_table:
                key = relation.parent_key(record)
                live_keys[key] = live_keys.get(key, 0) + 1
            deleted_keys = {
                relation.parent_key(row.before)
                for row in parent_table.rows(RowState.DELETED)
            }

            for record in child_table:
                key = relation.child_key(record)
                count = live_keys.get(key, 0)
                if count == 0:
                    if key in deleted_keys:
                        violations.append(
                            f"{relation.child} row {child_table.schema.key_of(record)} "
                            f"belongs to deleted {relation.parent} {key}"
                        )
                    else:
                        violations.append(
                            f"{relation.child} row {child_table.schema.key_of(record)} "
                            f"has no {relation.parent} parent {key}"
                        )
                elif count > 1 and None in key:
                    violations.append(
                        f"{relation.child} row {child_table.schema.key_of(record)} "
                        f"matches {count} unsaved {relation.parent} rows"
                    )

        if violations:
            logger.warning(f"Dataset {self.name} failed relation check: {violations}")
            raise RelationIntegrityError(
                f"Dataset {self.name} has {len(violations)} relation violation(s)",
                context={"dataset": self.name, "violations": violations}
            )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {table.name: table.to_list() for table in self.tables}
