"""
Tests for the statement executor.
"""

import copy

import pytest

from morph.document import Document
from morph.mapping import (
    EvaluationError,
    Executor,
    Program,
    Span,
    compile_mapping,
    parse,
)


def run(source: str, document: Document) -> Document:
    """Helper to compile a mapping and apply it to a document."""
    return compile_mapping(source).apply(document)


def people(*ages):
    return [{"name": f"p{i}", "age": age} for i, age in enumerate(ages)]


class TestScenarios:
    """End-to-end mappings over small documents."""

    def test_rename_field(self):
        result = run("rename .name -> .username", {"name": "Alice", "age": 30})
        assert result == {"username": "Alice", "age": 30}

    def test_filter_array(self):
        result = run("where .age > 18", people(25, 17, 30, 15))
        assert [p["age"] for p in result] == [25, 30]

    def test_cast_string_to_int(self):
        assert run("cast .age as int", {"age": "30"}) == {"age": 30}

        with pytest.raises(EvaluationError, match='cannot cast string "abc" to int'):
            run("cast .age as int", {"age": "abc"})

    def test_nest_fields(self):
        result = run("nest .a_x, .a_y -> .a", {"a_x": 1, "a_y": 2})
        assert result == {"a": {"x": 1, "y": 2}}

    def test_division_by_zero(self):
        with pytest.raises(EvaluationError, match="division by zero"):
            run("set .x = .a / 0", {"a": 5})

    def test_multi_key_sort(self):
        records = [
            {"score": 80, "name": "Bob"},
            {"score": 90, "name": "Alice"},
            {"score": 80, "name": "Charlie"},
            {"score": 90, "name": "Diana"},
        ]
        result = run("sort .score desc, .name asc", records)
        assert [r["name"] for r in result] == ["Alice", "Diana", "Bob", "Charlie"]


class TestFieldStatements:
    """Tests for rename, select, drop, set, default and cast."""

    def test_rename_missing_source_is_no_op(self):
        assert run("rename .x -> .y", {"a": 1}) == {"a": 1}

    def test_rename_into_nested_target(self):
        assert run("rename .a -> .b.c", {"a": 1}) == {"b": {"c": 1}}

    def test_rename_moves_to_end(self):
        result = run("rename .a -> .z", {"a": 1, "b": 2})
        assert list(result) == ["b", "z"]

    def test_select_keys_by_last_field(self):
        doc = {"a": 1, "b": {"c": 2}, "d": 3}
        assert run("select .a, .b.c", doc) == {"a": 1, "c": 2}

    def test_select_skips_missing(self):
        assert run("select .a, .zz", {"a": 1}) == {"a": 1}

    def test_select_on_array_passes_through(self):
        assert run("select .a", [1, 2]) == [1, 2]

    def test_drop(self):
        assert run("drop .a, .b.c", {"a": 1, "b": {"c": 2, "d": 3}}) == {"b": {"d": 3}}

    def test_drop_missing_is_no_op(self):
        assert run("drop .x.y", {"a": 1}) == {"a": 1}

    def test_set_computed_value(self):
        result = run("set .total = .price * .qty", {"price": 2.5, "qty": 4})
        assert result["total"] == 10.0

    def test_set_creates_intermediate_maps(self):
        assert run('set .a.b.c = "x"', {}) == {"a": {"b": {"c": "x"}}}

    def test_set_with_wildcard_broadcasts(self):
        result = run("set .items[*].seen = true", {"items": [{}, {"id": 2}]})
        assert result == {"items": [{"seen": True}, {"id": 2, "seen": True}]}

    def test_default_fills_absent_and_null(self):
        assert run('default .s = "on"', {}) == {"s": "on"}
        assert run('default .s = "on"', {"s": None}) == {"s": "on"}

    def test_default_keeps_falsy_values(self):
        assert run('default .s = "on"', {"s": False}) == {"s": False}
        assert run('default .s = "on"', {"s": ""}) == {"s": ""}

    def test_cast_missing_is_no_op(self):
        assert run("cast .age as int", {}) == {}

    def test_cast_null(self):
        assert run("cast .a as string", {"a": None}) == {"a": "null"}


class TestStructuralStatements:
    """Tests for flatten and nest."""

    def test_flatten_uses_field_name(self):
        doc = {"id": 1, "address": {"city": "Oslo", "zip": "0150"}}
        assert run("flatten .address", doc) == {
            "id": 1,
            "address_city": "Oslo",
            "address_zip": "0150",
        }

    def test_flatten_with_prefix(self):
        doc = {"address": {"city": "Oslo"}}
        assert run('flatten .address -> prefix "addr"', doc) == {"addr_city": "Oslo"}

    def test_flatten_is_one_level(self):
        doc = {"a": {"b": {"c": 1}}}
        assert run("flatten .a", doc) == {"a_b": {"c": 1}}

    def test_flatten_nested_field_writes_into_parent(self):
        doc = {"user": {"n": 1, "address": {"city": "Oslo"}}}
        assert run("flatten .user.address", doc) == {
            "user": {"n": 1, "address_city": "Oslo"}
        }

    def test_flatten_non_map_is_no_op(self):
        assert run("flatten .a", {"a": [1, 2]}) == {"a": [1, 2]}
        assert run("flatten .a", {}) == {}

    def test_nest_strips_target_prefix_only(self):
        doc = {"a_x": 1, "other": 2}
        assert run("nest .a_x, .other -> .a", doc) == {"a": {"x": 1, "other": 2}}

    def test_nest_always_writes_target(self):
        assert run("nest .x, .y -> .t", {"k": 1}) == {"k": 1, "t": {}}

    def test_flatten_then_nest_restores_keys(self):
        doc = {"address": {"city": "Oslo", "zip": "0150"}}
        flattened = run("flatten .address", doc)
        restored = run("nest .address_city, .address_zip -> .address", flattened)
        assert restored == doc


class TestCollectionStatements:
    """Tests for where and sort."""

    def test_where_on_map(self):
        assert run("where .age > 18", {"age": 20}) == {"age": 20}
        assert run("where .age > 18", {"age": 10}) is None

    @pytest.mark.parametrize(
        "ages",
        [(), (1,), (19, 19, 19), (50, 3, 18, 19, 40)],
    )
    def test_where_never_grows(self, ages):
        doc = people(*ages)
        result = run("where .age > 18", doc)
        assert len(result) <= len(doc)
        assert all(p["age"] > 18 for p in result)

    def test_sort_ascending_by_default(self):
        result = run("sort .v", [{"v": 3}, {"v": 1}, {"v": 2}])
        assert [r["v"] for r in result] == [1, 2, 3]

    def test_sort_is_stable(self):
        records = [{"k": 1, "id": i} for i in range(5)] + [{"k": 0, "id": 9}]
        result = run("sort .k", records)
        assert [r["id"] for r in result] == [9, 0, 1, 2, 3, 4]

    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_sort_puts_nulls_last(self, direction):
        records = [{"v": 1}, {"v": None}, {"v": 3}, {}]
        result = run(f"sort .v {direction}", records)
        assert result[2:] == [{"v": None}, {}]

    def test_sort_descending(self):
        result = run("sort .v desc", [{"v": "a"}, {"v": "c"}, {"v": "b"}])
        assert [r["v"] for r in result] == ["c", "b", "a"]

    def test_sort_mixed_numbers(self):
        result = run("sort .v", [{"v": 2.5}, {"v": 1}, {"v": 2}])
        assert [r["v"] for r in result] == [1, 2, 2.5]

    def test_sort_incomparable_values_keep_order(self):
        records = [{"v": "b"}, {"v": 1}, {"v": "a"}]
        assert run("sort .v", records) == records

    def test_sort_on_map_passes_through(self):
        assert run("sort .v", {"v": 1}) == {"v": 1}


class TestBlockStatements:
    """Tests for each and when."""

    def test_each_applies_body_per_element(self):
        doc = {"items": [{"a": 1}, {"a": 2}]}
        result = run("each .items {\n  set .b = .a * 10\n  drop .a\n}", doc)
        assert result == {"items": [{"b": 10}, {"b": 20}]}

    def test_each_over_scalars(self):
        result = run("each .nums { where false }", {"nums": [1, 2]})
        assert result == {"nums": [None, None]}

    def test_each_missing_path_fails(self):
        with pytest.raises(EvaluationError, match="each: expected an array at .items, found nothing"):
            run("each .items { drop .a }", {})

    def test_each_non_array_fails(self):
        with pytest.raises(EvaluationError, match="got map"):
            run("each .items { drop .a }", {"items": {}})

    def test_when_applies_body_conditionally(self):
        source = 'when .kind == "x" { set .flag = true }'
        assert run(source, {"kind": "x"}) == {"kind": "x", "flag": True}
        assert run(source, {"kind": "y"}) == {"kind": "y"}

    def test_when_inside_each(self):
        source = "each .rows {\n  when .n > 1 { set .big = true }\n}"
        result = run(source, {"rows": [{"n": 1}, {"n": 2}]})
        assert result == {"rows": [{"n": 1}, {"n": 2, "big": True}]}


class TestProgramProperties:
    """Tests for properties that hold across programs."""

    @pytest.mark.parametrize(
        "document",
        [None, True, 3, 2.5, "s", b"\x01", [1, [2]], {"a": {"b": [None]}}],
    )
    def test_empty_program_is_identity(self, document):
        assert Executor().execute(Program(), document) == document

    def test_input_is_never_modified(self):
        doc = {"a": {"b": [1, 2]}, "c": "x", "items": [{"k": 2}, {"k": 1}]}
        original = copy.deepcopy(doc)
        run(
            "rename .c -> .d\nset .a.b[0] = 9\nflatten .a\n"
            "each .items { set .k = .k + 1 }",
            doc,
        )
        assert doc == original

    def test_failure_leaves_input_untouched(self):
        doc = {"a": 1}
        with pytest.raises(EvaluationError):
            run("set .b = 2\nset .c = .a / 0", doc)
        assert doc == {"a": 1}

    def test_error_is_located_at_failing_statement(self):
        with pytest.raises(EvaluationError) as exc_info:
            run("drop .x\neach .items { drop .a }", {})
        assert exc_info.value.span == Span(2, 1)

    def test_executor_runs_parsed_program(self):
        program = parse("set .n = .n + 1")
        executor = Executor()
        assert executor.execute(program, {"n": 1}) == {"n": 2}
