"""
Unit tests for datasets and relation checks
"""

import pytest
from pydantic import BaseModel
from typing import Optional

from core.exceptions import RelationIntegrityError, SchemaError
from schemas.datasets import ORDER_LINES, TT_ITEM, TT_ORDER, TT_ORDER_LINE, build_order_dataset
from temptables import DataRelation, Dataset, RowState, TempTableSchema, types_compatible


class AmountRow(BaseModel):
    order_num: Optional[float] = None
    label: str = ""


TT_AMOUNT = TempTableSchema("ttAmount", AmountRow, primary_index=("label",))


def test_relation_to_unknown_table_is_rejected():
    relation = DataRelation("Bad", "ttOrder", "ttMissing", (("order_num", "order_num"),))

    with pytest.raises(SchemaError) as exc_info:
        Dataset("dsBad", [TT_ORDER], [relation])

    assert exc_info.value.context["table_name"] == "ttMissing"


def test_relation_to_unknown_field_is_rejected():
    relation = DataRelation("Bad", "ttOrder", "ttOrderLine", (("order_num", "order_id"),))

    with pytest.raises(SchemaError) as exc_info:
        Dataset("dsBad", [TT_ORDER, TT_ORDER_LINE], [relation])

    assert exc_info.value.context["field_name"] == "order_id"


def test_relation_with_incompatible_types_is_rejected():
    relation = DataRelation("Bad", "ttOrder", "ttItem", (("order_num", "item_name"),))

    with pytest.raises(SchemaError):
        Dataset("dsBad", [TT_ORDER, TT_ITEM], [relation])


def test_relation_without_pairs_is_rejected():
    with pytest.raises(SchemaError):
        Dataset("dsBad", [TT_ORDER, TT_ORDER_LINE], [DataRelation("Bad", "ttOrder", "ttOrderLine", ())])


def test_integer_and_float_fields_may_be_related():
    relation = DataRelation("Amounts", "ttOrder", "ttAmount", (("order_num", "order_num"),))
    dataset = Dataset("dsAmounts", [TT_ORDER, TT_AMOUNT], [relation])

    assert dataset.relations == [relation]
    assert types_compatible(int, float)
    assert not types_compatible(int, str)


def test_duplicate_table_is_rejected():
    with pytest.raises(SchemaError):
        Dataset("dsBad", [TT_ITEM, TT_ITEM])


def test_unknown_table_lookup_raises():
    with pytest.raises(SchemaError):
        build_order_dataset()["ttItem"]


def test_builders_return_fresh_datasets():
    first = build_order_dataset()
    first["ttOrder"].add({"order_num": 1, "cust_num": 1})

    second = build_order_dataset()
    assert second.is_empty()
    assert second.table_names == ["ttOrder", "ttOrderLine"]
    assert second.top_table.name == "ttOrder"


class TestRelationNavigation:
    def test_children_and_parent(self):
        dataset = build_order_dataset()
        order = dataset["ttOrder"].add({"order_num": 1, "cust_num": 1})
        dataset["ttOrder"].add({"order_num": 2, "cust_num": 1})
        dataset["ttOrderLine"].add({"order_num": 1, "line_num": 1, "item_num": 1})
        line = dataset["ttOrderLine"].add({"order_num": 1, "line_num": 2, "item_num": 2})
        dataset["ttOrderLine"].add({"order_num": 2, "line_num": 1, "item_num": 1})

        children = dataset.children_of(ORDER_LINES, order)
        assert [c.line_num for c in children] == [1, 2]
        assert dataset.parent_of(ORDER_LINES, line) is order
        assert dataset.relations_from("ttOrder") == [ORDER_LINES]
        assert dataset.relations_to("ttOrder") == []


class TestCheckRelations:
    """Test parent-child consistency checks"""

    def test_consistent_dataset_passes(self):
        dataset = build_order_dataset()
        dataset["ttOrder"].add({"cust_num": 1})
        dataset["ttOrderLine"].add({"line_num": 1, "item_num": 1})
        dataset["ttOrderLine"].add({"line_num": 2, "item_num": 2})

        dataset.check_relations()

    def test_orphan_child_is_reported(self):
        dataset = build_order_dataset()
        dataset["ttOrderLine"].add({"order_num": 9, "line_num": 1, "item_num": 1})

        with pytest.raises(RelationIntegrityError) as exc_info:
            dataset.check_relations()

        assert "no ttOrder parent" in exc_info.value.context["violations"][0]

    def test_child_of_deleted_parent_is_reported(self):
        dataset = build_order_dataset()
        dataset["ttOrder"].load({"order_num": 1, "cust_num": 1})
        dataset["ttOrderLine"].load({"order_num": 1, "line_num": 1, "item_num": 1})
        dataset.track_changes()

        dataset["ttOrder"].remove(1)

        with pytest.raises(RelationIntegrityError) as exc_info:
            dataset.check_relations()
        assert "deleted ttOrder" in exc_info.value.context["violations"][0]

    def test_unassigned_key_matching_several_parents_is_reported(self):
        dataset = build_order_dataset()
        dataset["ttOrder"].add({"cust_num": 1})
        dataset["ttOrder"].add({"cust_num": 2})
        dataset["ttOrderLine"].add({"line_num": 1, "item_num": 1})

        with pytest.raises(RelationIntegrityError):
            dataset.check_relations()


def test_dataset_change_tracking_spans_tables():
    dataset = build_order_dataset()
    dataset["ttOrder"].load({"order_num": 1, "cust_num": 1})
    dataset["ttOrderLine"].load({"order_num": 1, "line_num": 1, "item_num": 1, "qty": 2})
    dataset.track_changes()

    dataset["ttOrderLine"].modify(1, 1, qty=5)
    dataset["ttOrderLine"].add({"order_num": 1, "line_num": 2, "item_num": 3})

    states = sorted(change.state.value for change in dataset.changes())
    assert states == [RowState.CREATED.value, RowState.MODIFIED.value]

    dataset.reject_changes()
    assert not dataset.has_changes()
    assert dataset["ttOrderLine"].find(1, 1).qty == 2


def test_to_dict_serializes_every_table():
    dataset = build_order_dataset()
    dataset["ttOrder"].add({"order_num": 1, "cust_num": 1})

    data = dataset.to_dict()
    assert set(data) == {"ttOrder", "ttOrderLine"}
    assert data["ttOrder"][0]["order_status"] == "ordered"
    assert data["ttOrderLine"] == []
