"""
In-memory temp-tables and datasets used to move records between the UI
boundary and the business entities.

Modules:
    temp_table: Typed record sets with primary index and change tracking
    dataset: Named groups of temp-tables with parent-child relations

Usage:
    from temptables import Dataset, DataRelation, TempTableSchema, RowState
"""

from temptables.temp_table import (
    FieldDef,
    RowChange,
    RowState,
    TempTable,
    TempTableSchema,
    TrackedRow,
    diff_records,
)
from temptables.dataset import DataRelation, Dataset, types_compatible

__all__ = [
    "FieldDef",
    "RowChange",
    "RowState",
    "TempTable",
    "TempTableSchema",
    "TrackedRow",
    "diff_records",
    "DataRelation",
    "Dataset",
    "types_compatible",
]
