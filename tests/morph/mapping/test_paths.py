"""
Tests for the path engine.
"""

from morph.mapping import (
    MISSING,
    FieldSegment,
    IndexSegment,
    WildcardSegment,
    remove_value,
    resolve,
    set_value,
)

F = FieldSegment
X = IndexSegment
W = WildcardSegment()


class TestResolve:
    """Tests for reading values by path."""

    def test_resolves_nested_field(self):
        assert resolve({"a": {"b": 1}}, (F("a"), F("b"))) == 1

    def test_empty_path_is_document(self):
        doc = {"a": 1}
        assert resolve(doc, ()) is doc

    def test_missing_field(self):
        assert resolve({"a": 1}, (F("b"),)) is MISSING

    def test_null_is_not_missing(self):
        assert resolve({"a": None}, (F("a"),)) is None

    def test_field_on_non_map(self):
        assert resolve([1, 2], (F("a"),)) is MISSING
        assert resolve({"a": 5}, (F("a"), F("b"))) is MISSING

    def test_index_and_negative_index(self):
        doc = [10, 20, 30]
        assert resolve(doc, (X(0),)) == 10
        assert resolve(doc, (X(-1),)) == 30

    def test_index_out_of_range(self):
        assert resolve([1], (X(1),)) is MISSING
        assert resolve([1], (X(-2),)) is MISSING

    def test_index_on_non_array(self):
        assert resolve({"0": 1}, (X(0),)) is MISSING

    def test_wildcard_collects(self):
        doc = {"items": [{"id": 1}, {"id": 2}, {"name": "x"}]}
        assert resolve(doc, (F("items"), W, F("id"))) == [1, 2]

    def test_wildcard_with_nothing_collected(self):
        assert resolve({"items": []}, (F("items"), W)) is MISSING
        assert resolve({"items": [{}]}, (F("items"), W, F("id"))) is MISSING

    def test_wildcard_on_non_array(self):
        assert resolve({"items": {"a": 1}}, (F("items"), W)) is MISSING


class TestSetValue:
    """Tests for writing values by path."""

    def test_sets_existing_field(self):
        assert set_value({"a": 1}, (F("a"),), 2) == {"a": 2}

    def test_creates_intermediate_maps(self):
        assert set_value({}, (F("a"), F("b")), 1) == {"a": {"b": 1}}

    def test_auto_creates_map_through_null(self):
        assert set_value({"a": None}, (F("a"), F("b")), 1) == {"a": {"b": 1}}

    def test_replaces_scalar_with_map(self):
        assert set_value({"a": 5}, (F("a"), F("b")), 1) == {"a": {"b": 1}}

    def test_extends_array_with_nulls(self):
        assert set_value({"a": [1]}, (F("a"), X(3)), 9) == {"a": [1, None, None, 9]}

    def test_creates_array(self):
        assert set_value({}, (F("a"), X(1)), "x") == {"a": [None, "x"]}

    def test_negative_index(self):
        assert set_value([1, 2, 3], (X(-1),), 0) == [1, 2, 0]

    def test_negative_index_before_start_is_no_op(self):
        assert set_value([1], (X(-5),), 0) == [1]

    def test_wildcard_broadcasts(self):
        doc = {"items": [{"a": 1}, {"a": 2}]}
        assert set_value(doc, (F("items"), W, F("b")), True) == {
            "items": [{"a": 1, "b": True}, {"a": 2, "b": True}]
        }

    def test_wildcard_on_non_array_is_no_op(self):
        assert set_value({"items": 5}, (F("items"), W, F("b")), 1) == {"items": 5}

    def test_input_is_not_modified(self):
        doc = {"a": {"b": [1, 2]}}
        set_value(doc, (F("a"), F("b"), X(0)), 9)
        assert doc == {"a": {"b": [1, 2]}}

    def test_written_value_is_copied(self):
        value = {"x": [1]}
        result = set_value({}, (F("a"), F("b")), value)
        result2 = set_value(result, (F("c"),), value)
        value["x"].append(2)
        assert result["a"]["b"] == {"x": [1]}
        assert result2["a"]["b"] is not result2["c"]

    def test_preserves_key_order(self):
        result = set_value({"a": 1, "b": 2, "c": 3}, (F("b"),), 0)
        assert list(result) == ["a", "b", "c"]


class TestRemoveValue:
    """Tests for deleting values by path."""

    def test_removes_field(self):
        assert remove_value({"a": 1, "b": 2}, (F("a"),)) == {"b": 2}

    def test_removes_nested_field(self):
        assert remove_value({"a": {"b": 1, "c": 2}}, (F("a"), F("b"))) == {
            "a": {"c": 2}
        }

    def test_removes_array_element_and_shifts(self):
        assert remove_value([1, 2, 3], (X(0),)) == [2, 3]
        assert remove_value([1, 2, 3], (X(-1),)) == [1, 2]

    def test_missing_path_is_no_op(self):
        doc = {"a": 1}
        assert remove_value(doc, (F("b"), F("c"))) == {"a": 1}
        assert remove_value(doc, (F("a"), F("c"))) == {"a": 1}
        assert remove_value([1], (X(4),)) == [1]

    def test_wildcard_removes_from_each_element(self):
        doc = {"items": [{"a": 1, "b": 2}, {"a": 3}]}
        assert remove_value(doc, (F("items"), W, F("a"))) == {
            "items": [{"b": 2}, {}]
        }

    def test_trailing_wildcard_is_no_op(self):
        assert remove_value({"items": [1, 2]}, (F("items"), W)) == {"items": [1, 2]}

    def test_input_is_not_modified(self):
        doc = {"a": {"b": 1}}
        remove_value(doc, (F("a"), F("b")))
        assert doc == {"a": {"b": 1}}
