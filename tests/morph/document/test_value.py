"""
Tests for the document value model.
"""

import math

import pytest

from morph.document import (
    INT_MAX,
    DocumentPathError,
    DocumentTypeError,
    format_float,
    get_path,
    get_type_name,
    is_number,
    merge,
    normalize_value,
    set_path,
    to_display,
    values_equal,
)


class TestTypeNames:
    """Tests for type inspection."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "null"),
            (True, "bool"),
            (1, "int"),
            (1.5, "float"),
            ("x", "string"),
            (b"\x00", "bytes"),
            ([], "array"),
            ({}, "map"),
        ],
    )
    def test_reports_type_name(self, value, expected):
        assert get_type_name(value) == expected

    def test_bool_is_not_a_number(self):
        assert is_number(1)
        assert is_number(1.0)
        assert not is_number(True)
        assert not is_number("1")


class TestValuesEqual:
    """Tests for strict structural equality."""

    def test_equal_scalars(self):
        assert values_equal("a", "a")
        assert values_equal(None, None)

    def test_bool_and_int_differ(self):
        assert not values_equal(True, 1)
        assert not values_equal(0, False)

    def test_int_and_float_differ(self):
        assert not values_equal(1, 1.0)

    def test_nested_containers(self):
        assert values_equal({"a": [1, {"b": None}]}, {"a": [1, {"b": None}]})
        assert not values_equal({"a": [1, 2]}, {"a": [1, 2.0]})

    def test_map_key_order_is_ignored(self):
        assert values_equal({"a": 1, "b": 2}, {"b": 2, "a": 1})

    def test_array_order_matters(self):
        assert not values_equal([1, 2], [2, 1])


class TestDisplay:
    """Tests for canonical text forms."""

    def test_whole_floats_drop_fraction(self):
        assert format_float(1.0) == "1"
        assert format_float(-3.0) == "-3"
        assert format_float(30.0) == "30"
        assert format_float(-0.0) == "-0"

    def test_floats_never_use_exponents(self):
        assert format_float(1e20) == "100000000000000000000"
        assert format_float(1e-7) == "0.0000001"
        assert format_float(0.1 + 0.2) == "0.30000000000000004"

    def test_fractional_floats(self):
        assert format_float(2.5) == "2.5"

    def test_special_floats(self):
        assert format_float(math.nan) == "NaN"
        assert format_float(math.inf) == "inf"
        assert format_float(-math.inf) == "-inf"

    def test_displays_containers(self):
        assert to_display({"a": [1, "x", None, True]}) == '{"a": [1, "x", null, true]}'

    def test_escapes_strings(self):
        assert to_display('say "hi"') == '"say \\"hi\\""'

    def test_displays_bytes(self):
        assert to_display(b"\x01\xff") == 'b"\\x01\\xff"'


class TestNormalizeValue:
    """Tests for converting Python values into documents."""

    def test_tuples_become_lists(self):
        assert normalize_value((1, (2, 3))) == [1, [2, 3]]

    def test_bytearray_becomes_bytes(self):
        assert normalize_value(bytearray(b"ab")) == b"ab"

    def test_result_does_not_share_containers(self):
        original = {"a": [1, 2]}
        normalized = normalize_value(original)
        normalized["a"].append(3)
        assert original == {"a": [1, 2]}

    def test_rejects_non_string_keys(self):
        with pytest.raises(DocumentTypeError, match="map keys must be strings"):
            normalize_value({1: "x"})

    def test_rejects_out_of_range_integers(self):
        with pytest.raises(DocumentTypeError):
            normalize_value(INT_MAX + 1)

    def test_rejects_unsupported_values(self):
        with pytest.raises(DocumentTypeError):
            normalize_value(object())


class TestMerge:
    """Tests for deep merge."""

    def test_merges_nested_maps(self):
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        other = {"a": {"y": 3, "z": 4}}
        assert merge(base, other) == {"a": {"x": 1, "y": 3, "z": 4}, "b": 1}

    def test_non_map_values_are_overwritten(self):
        assert merge({"a": [1, 2]}, {"a": [3]}) == {"a": [3]}
        assert merge({"a": {"x": 1}}, {"a": 5}) == {"a": 5}

    def test_non_map_pairing_returns_other(self):
        assert merge([1], {"a": 1}) == {"a": 1}
        assert merge({"a": 1}, None) is None

    def test_inputs_are_not_modified(self):
        base = {"a": {"x": 1}}
        merge(base, {"a": {"y": 2}})
        assert base == {"a": {"x": 1}}


class TestDottedPaths:
    """Tests for get_path and set_path."""

    def test_get_nested_field(self):
        doc = {"user": {"name": "Alice"}}
        assert get_path(doc, "user.name") == "Alice"
        assert get_path(doc, ".user.name") == "Alice"

    def test_get_array_index(self):
        doc = {"items": [{"id": 1}, {"id": 2}]}
        assert get_path(doc, "items[1].id") == 2

    def test_get_missing_returns_default(self):
        assert get_path({"a": 1}, "b") is None
        assert get_path({"a": 1}, "a.b", "fallback") == "fallback"
        assert get_path({"a": [1]}, "a[5]", 0) == 0

    def test_get_malformed_path_returns_default(self):
        assert get_path({"a": 1}, "a..b", "bad") == "bad"

    def test_get_empty_path_returns_document(self):
        doc = {"a": 1}
        assert get_path(doc, "") == doc

    def test_set_creates_intermediate_maps(self):
        assert set_path({}, "a.b.c", 1) == {"a": {"b": {"c": 1}}}

    def test_set_through_null(self):
        assert set_path({"a": None}, "a.b", 1) == {"a": {"b": 1}}

    def test_set_array_element(self):
        assert set_path({"a": [1, 2]}, "a[1]", 5) == {"a": [1, 5]}

    def test_set_does_not_modify_input(self):
        doc = {"a": {"b": 1}}
        set_path(doc, "a.b", 2)
        assert doc == {"a": {"b": 1}}

    def test_set_through_scalar_fails(self):
        with pytest.raises(DocumentPathError) as exc_info:
            set_path({"a": 5}, "a.b", 1)
        assert exc_info.value.path == "a.b"

    def test_set_past_array_end_fails(self):
        with pytest.raises(DocumentPathError, match="out of bounds"):
            set_path({"a": [1]}, "a[3]", 1)

    def test_set_malformed_path_fails(self):
        with pytest.raises(DocumentPathError, match="invalid path"):
            set_path({}, "a..b", 1)
