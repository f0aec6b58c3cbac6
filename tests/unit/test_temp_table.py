"""
Unit tests for temp-tables and change tracking
"""

import pytest
from pydantic import ValidationError

from core.exceptions import DuplicateKeyError, SchemaError
from schemas.datasets import TT_CUSTOMER, TT_ITEM, TT_ORDER_LINE
from schemas.records import ItemRow
from temptables import RowState, TempTable, TempTableSchema, diff_records


class TestTempTableSchema:
    """Test schema derivation from record models"""

    def test_fields_keep_declaration_order_and_defaults(self):
        names = TT_ITEM.field_names
        assert names[:4] == ["item_num", "item_name", "description", "category"]
        assert TT_ITEM.field("price").default == 0.0
        assert TT_ITEM.field("item_num").required is True
        assert TT_ITEM.field("on_hand").required is False

    def test_optional_types_are_unwrapped(self):
        assert TT_CUSTOMER.field_type("cust_num") is int
        assert TT_CUSTOMER.field_type("city") is str

    def test_unknown_primary_index_field_is_rejected(self):
        with pytest.raises(SchemaError):
            TempTableSchema("ttBad", ItemRow, primary_index=("sku",))

    def test_empty_primary_index_is_rejected(self):
        with pytest.raises(SchemaError):
            TempTableSchema("ttBad", ItemRow, primary_index=())

    def test_unknown_field_lookup_raises(self):
        with pytest.raises(SchemaError):
            TT_ITEM.field("weight")


class TestTempTableRows:
    """Test row creation and lookup"""

    def test_added_rows_are_created(self):
        table = TempTable(TT_ITEM)
        record = table.add({"item_num": 1, "item_name": "Fins"})

        assert isinstance(record, ItemRow)
        assert table.find(1) is record
        assert [row.state for row in table.rows()] == [RowState.CREATED]

    def test_loaded_rows_are_unchanged(self):
        table = TempTable(TT_ITEM)
        table.load({"item_num": 1, "item_name": "Fins"})

        assert not table.has_changes()
        assert len(table) == 1

    def test_duplicate_primary_key_is_rejected(self):
        table = TempTable(TT_ITEM)
        table.add({"item_num": 1, "item_name": "Fins"})

        with pytest.raises(DuplicateKeyError):
            table.add({"item_num": 1, "item_name": "Snorkel"})

    def test_unassigned_keys_are_not_duplicates(self):
        table = TempTable(TT_CUSTOMER)
        table.add({"name": "First"})
        table.add({"name": "Second"})

        assert len(table) == 2

    def test_find_with_wrong_key_length_raises(self):
        table = TempTable(TT_ORDER_LINE)
        with pytest.raises(SchemaError):
            table.find(1)

    def test_assignment_is_validated(self):
        table = TempTable(TT_ITEM)
        record = table.add({"item_num": 1, "item_name": "Fins"})

        with pytest.raises(ValidationError):
            record.price = "not a price"


class TestChangeTracking:
    """Test before-images and row states"""

    def make_table(self):
        table = TempTable(TT_ITEM)
        table.load({"item_num": 1, "item_name": "Fins", "price": 47.0, "on_hand": 10})
        table.load({"item_num": 2, "item_name": "Racquet", "price": 89.5})
        return table

    def test_modification_without_tracking_is_not_a_change(self):
        table = self.make_table()
        table.modify(1, price=50.0)

        assert not table.has_changes()

    def test_modify_with_tracking_records_delta(self):
        table = self.make_table()
        table.track_changes()
        table.modify(1, price=50.0)

        changes = table.changes()
        assert len(changes) == 1
        assert changes[0].state == RowState.MODIFIED
        assert changes[0].before.price == 47.0
        assert changes[0].delta() == {"price": 50.0}

    def test_direct_assignment_is_detected(self):
        table = self.make_table()
        table.track_changes()
        table.find(2).on_hand = 5

        assert table.changes()[0].changed_fields() == ["on_hand"]

    def test_reverting_a_value_clears_the_change(self):
        table = self.make_table()
        table.track_changes()
        record = table.find(1)
        record.price = 50.0
        record.price = 47.0

        assert not table.has_changes()

    def test_before_image_has_the_live_record_type(self):
        table = self.make_table()
        table.track_changes()

        row = table.find_row(1)
        assert type(row.before) is type(row.record)
        assert row.before is not row.record

    def test_remove_with_tracking_marks_deleted(self):
        table = self.make_table()
        table.track_changes()
        table.remove(1)

        assert len(table) == 1
        assert table.find(1) is None
        deleted = table.rows(RowState.DELETED)
        assert len(deleted) == 1
        assert deleted[0].before.item_num == 1

    def test_remove_created_row_drops_it(self):
        table = self.make_table()
        table.track_changes()
        table.add({"item_num": 3, "item_name": "Ball"})
        table.remove(3)

        assert not table.has_changes()
        assert len(table) == 2

    def test_remove_without_tracking_discards(self):
        table = self.make_table()
        table.remove(1)

        assert len(table) == 1
        assert not table.has_changes()

    def test_reject_changes_restores_before_images(self):
        table = self.make_table()
        table.track_changes()
        record = table.find(1)
        record.price = 99.0
        table.remove(2)
        table.add({"item_num": 3, "item_name": "Ball"})

        table.reject_changes()

        assert record.price == 47.0
        assert table.find(2) is not None
        assert table.find(3) is None
        assert not table.has_changes()

    def test_accept_changes_makes_new_baseline(self):
        table = self.make_table()
        table.track_changes()
        table.modify(1, price=50.0)
        table.remove(2)

        table.accept_changes()

        assert not table.has_changes()
        assert len(table) == 1
        assert table.find_row(1).before.price == 50.0

    def test_modify_to_an_existing_key_is_rejected(self):
        table = self.make_table()
        table.track_changes()

        with pytest.raises(DuplicateKeyError):
            table.modify(2, item_num=1)

        assert [r.item_num for r in table] == [1, 2]
        assert not table.has_changes()

    def test_modify_to_a_free_key_is_allowed(self):
        table = self.make_table()
        table.track_changes()

        table.modify(2, item_num=5, price=90.0)

        assert table.find(5).price == 90.0
        assert table.find(2) is None

    def test_modify_unknown_field_raises(self):
        table = self.make_table()
        with pytest.raises(SchemaError):
            table.modify(1, weight=3)


def test_diff_records_respects_skip_list():
    before = ItemRow(item_num=1, item_name="Fins", price=47.0, on_hand=10)
    after = ItemRow(item_num=1, item_name="Fins II", price=47.0, on_hand=12)

    assert diff_records(before, after) == {"item_name": "Fins II", "on_hand": 12}
    assert diff_records(before, after, skip=["on_hand"]) == {"item_name": "Fins II"}
