"""
Tests for mapping errors and nearest-match suggestions.
"""

import pytest

from morph.mapping import (
    BuiltinError,
    EvaluationError,
    LimitExceededError,
    MappingError,
    ParseError,
    Span,
    TokenizerError,
    TypeMismatchError,
)
from morph.mapping.suggestions import levenshtein, suggest


class TestRendering:
    """Tests for error messages and locations."""

    def test_render_without_location(self):
        assert MappingError("boom").render() == "boom"

    def test_render_with_location(self):
        error = ParseError("bad token", Span(3, 7))
        assert error.render() == "bad token at line 3, column 7"
        assert error.line == 3
        assert error.column == 7

    def test_format_with_context(self):
        source = "drop .a\nset .b = @"
        error = TokenizerError("unexpected character '@'", Span(2, 10), source)
        assert error.format_with_context() == (
            "unexpected character '@' at line 2, column 10\n"
            "  set .b = @\n"
            "           ^"
        )

    def test_format_with_context_falls_back(self):
        assert EvaluationError("x", Span(9, 1), "one line").format_with_context() == (
            "x at line 9, column 1"
        )
        assert EvaluationError("x").format_with_context() == "x"

    def test_with_location_keeps_existing_span(self):
        error = EvaluationError("x", Span(1, 5))
        assert error.with_location(Span(2, 1), "src") is error
        assert error.span == Span(1, 5)
        assert error.source == "src"

    def test_with_location_fills_missing_span(self):
        error = EvaluationError("x").with_location(Span(4, 2))
        assert error.span == Span(4, 2)


class TestHierarchy:
    """Tests for the error taxonomy."""

    @pytest.mark.parametrize(
        "error_type", [TokenizerError, ParseError, EvaluationError, LimitExceededError]
    )
    def test_all_errors_are_mapping_errors(self, error_type):
        assert issubclass(error_type, MappingError)

    def test_type_mismatch(self):
        error = TypeMismatchError("number", "string")
        assert isinstance(error, EvaluationError)
        assert error.message == "type mismatch: expected number, got string"

    def test_builtin_error_prefixes_function(self):
        error = BuiltinError("sum", "array elements must be numbers")
        assert isinstance(error, EvaluationError)
        assert str(error) == "sum: array elements must be numbers"

    def test_limit_exceeded(self):
        error = LimitExceededError("max_ast_depth", 64, 65)
        assert error.message == "limit exceeded: max_ast_depth (limit: 64, actual: 65)"
        assert error.limit_name == "max_ast_depth"


class TestSuggestions:
    """Tests for edit-distance suggestions."""

    def test_levenshtein(self):
        assert levenshtein("kitten", "sitting") == 3
        assert levenshtein("", "abc") == 3
        assert levenshtein("same", "same") == 0

    def test_suggest_closest(self):
        assert suggest("uper", ["lower", "upper", "trim"]) == "upper"

    def test_suggest_ties_go_to_first(self):
        assert suggest("ab", ["ac", "ad"]) == "ac"

    def test_suggest_respects_max_distance(self):
        assert suggest("abcdefgh", ["zzzzzzzz"]) is None
        assert suggest("drp", ["drop"], max_distance=0) is None

    def test_short_words_are_not_rewritten(self):
        assert suggest("x", ["y"]) is None
