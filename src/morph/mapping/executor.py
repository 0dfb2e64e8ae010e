"""
Statement executor.

Applies a Program to a document one statement at a time. Every handler
takes the current document and returns a new one; the input document is
never modified, so a failure part-way through leaves nothing half-applied
for the caller to observe.
"""

import copy
from functools import cmp_to_key
from typing import Callable, Dict, List, Optional, cast

from morph.document import Document, get_type_name, is_number

from .ast import (
    CastStatement,
    DefaultStatement,
    DropStatement,
    EachStatement,
    ExprNode,
    FlattenStatement,
    NestStatement,
    Program,
    RenameStatement,
    SelectStatement,
    SetStatement,
    SortKey,
    SortStatement,
    Statement,
    WhenStatement,
    WhereStatement,
)
from .builtins import FunctionRegistry
from .coercion import cast_value
from .errors import EvaluationError, MappingError
from .evaluator import EvaluationContext, Evaluator
from .limits import DEFAULT_MAPPING_LIMITS, MappingLimits
from .paths import MISSING, Resolved, remove_value, resolve, set_value

StatementHandler = Callable[[Statement, Document], Document]


def _compare_sort_values(a: Document, b: Document) -> int:
    """Orders number/number and string/string pairs; anything else ties."""
    if is_number(a) and is_number(b):
        return (a > b) - (a < b)  # type: ignore[operator]
    if isinstance(a, str) and isinstance(b, str):
        return (a > b) - (a < b)
    return 0


def _is_absent(value: Resolved) -> bool:
    return value is MISSING or value is None


class Executor:
    """Executes mapping statements against documents."""

    def __init__(
        self,
        limits: Optional[MappingLimits] = None,
        source: Optional[str] = None,
        functions: Optional[FunctionRegistry] = None,
    ):
        self._limits = limits or DEFAULT_MAPPING_LIMITS
        self._source = source
        self._functions = functions

        self._handlers: Dict[str, StatementHandler] = {
            "Rename": self._rename,
            "Select": self._select,
            "Drop": self._drop,
            "Set": self._set,
            "Default": self._default,
            "Cast": self._cast,
            "Flatten": self._flatten,
            "Nest": self._nest,
            "Where": self._where,
            "Sort": self._sort,
            "Each": self._each,
            "When": self._when,
        }

    def execute(self, program: Program, document: Document) -> Document:
        """Applies every statement in order and returns the final document."""
        for statement in program:
            document = self.execute_statement(statement, document)
        return document

    def execute_statement(self, statement: Statement, document: Document) -> Document:
        """
        Applies one statement.

        Errors raised without a location are attributed to the statement.
        """
        handler = self._handlers.get(statement.type)
        if handler is None:
            raise EvaluationError(
                f"unsupported statement: {statement.type}", statement.span, self._source
            )

        try:
            return handler(statement, document)
        except MappingError as error:
            raise error.with_location(statement.span, self._source)

    def _evaluator(self, document: Document) -> Evaluator:
        return Evaluator(
            EvaluationContext(
                document=document,
                limits=self._limits,
                source=self._source,
                functions=self._functions,
            )
        )

    def _evaluate(self, expression: ExprNode, document: Document) -> Document:
        return self._evaluator(document).evaluate(expression)

    def _condition(self, expression: ExprNode, document: Document) -> bool:
        return self._evaluator(document).evaluate_as_boolean(expression)

    # ============================================================
    # Field Statements
    # ============================================================

    def _rename(self, statement: Statement, document: Document) -> Document:
        s = cast(RenameStatement, statement)
        value = resolve(document, s.source.segments)
        if value is MISSING:
            return document
        document = remove_value(document, s.source.segments)
        return set_value(document, s.target.segments, value)

    def _select(self, statement: Statement, document: Document) -> Document:
        s = cast(SelectStatement, statement)
        if not isinstance(document, dict):
            return document

        selected: Dict[str, Document] = {}
        for path in s.paths:
            name = path.last_field_name()
            value = resolve(document, path.segments)
            if name is None or value is MISSING:
                continue
            selected[name] = copy.deepcopy(value)
        return selected

    def _drop(self, statement: Statement, document: Document) -> Document:
        s = cast(DropStatement, statement)
        for path in s.paths:
            document = remove_value(document, path.segments)
        return document

    def _set(self, statement: Statement, document: Document) -> Document:
        s = cast(SetStatement, statement)
        value = self._evaluate(s.value, document)
        return set_value(document, s.path.segments, value)

    def _default(self, statement: Statement, document: Document) -> Document:
        s = cast(DefaultStatement, statement)
        if not _is_absent(resolve(document, s.path.segments)):
            return document
        value = self._evaluate(s.value, document)
        return set_value(document, s.path.segments, value)

    def _cast(self, statement: Statement, document: Document) -> Document:
        s = cast(CastStatement, statement)
        current = resolve(document, s.path.segments)
        if current is MISSING:
            return document
        return set_value(document, s.path.segments, cast_value(current, s.target_type))

    # ============================================================
    # Structural Statements
    # ============================================================

    def _flatten(self, statement: Statement, document: Document) -> Document:
        """
        Lifts the entries of a nested map into its parent map.

        Only one level is flattened. The parent must itself be a map;
        otherwise the statement does nothing.
        """
        s = cast(FlattenStatement, statement)
        segments = s.path.segments
        if not segments:
            return document

        inner = resolve(document, segments)
        if not isinstance(inner, dict):
            return document

        parent_segments = segments[:-1]
        parent = resolve(document, parent_segments)
        if not isinstance(parent, dict):
            return document

        name = s.path.last_field_name() or ""
        prefix = s.prefix if s.prefix is not None else name

        flattened = {k: v for k, v in parent.items() if k != name}
        for key, value in inner.items():
            flattened[f"{prefix}_{key}"] = value
        return set_value(document, parent_segments, flattened)

    def _nest(self, statement: Statement, document: Document) -> Document:
        """
        Moves fields into a new map at the target.

        A leading `{target}_` is stripped from each moved field name. The
        target is written even when no field resolved.
        """
        s = cast(NestStatement, statement)
        target_name = s.target.last_field_name() or ""
        strip = f"{target_name}_" if target_name else ""

        nested: Dict[str, Document] = {}
        for path in s.paths:
            value = resolve(document, path.segments)
            if value is MISSING:
                continue
            name = path.last_field_name() or ""
            if strip and name.startswith(strip):
                name = name[len(strip) :]
            nested[name] = value
            document = remove_value(document, path.segments)

        return set_value(document, s.target.segments, nested)

    # ============================================================
    # Collection Statements
    # ============================================================

    def _where(self, statement: Statement, document: Document) -> Document:
        s = cast(WhereStatement, statement)
        if isinstance(document, list):
            return [item for item in document if self._condition(s.condition, item)]
        return document if self._condition(s.condition, document) else None

    def _sort(self, statement: Statement, document: Document) -> Document:
        """
        Stable multi-key sort of an array document.

        Null and missing key values sort last in both directions.
        """
        s = cast(SortStatement, statement)
        if not isinstance(document, list):
            return document

        keys = s.keys

        def key_values(item: Document) -> List[Resolved]:
            return [resolve(item, key.path.segments) for key in keys]

        def compare(a: List[Resolved], b: List[Resolved]) -> int:
            for key, value_a, value_b in zip(keys, a, b):
                result = self._compare_key(key, value_a, value_b)
                if result != 0:
                    return result
            return 0

        decorated = [(key_values(item), item) for item in document]
        decorated.sort(key=cmp_to_key(lambda x, y: compare(x[0], y[0])))
        return [item for _, item in decorated]

    @staticmethod
    def _compare_key(key: SortKey, a: Resolved, b: Resolved) -> int:
        a_absent = _is_absent(a)
        b_absent = _is_absent(b)
        if a_absent and b_absent:
            return 0
        if a_absent:
            return 1
        if b_absent:
            return -1

        result = _compare_sort_values(a, b)
        return -result if key.direction == "desc" else result

    # ============================================================
    # Block Statements
    # ============================================================

    def _each(self, statement: Statement, document: Document) -> Document:
        s = cast(EachStatement, statement)
        items = resolve(document, s.path.segments)
        if items is MISSING:
            raise EvaluationError(f"each: expected an array at {s.path}, found nothing")
        if not isinstance(items, list):
            raise EvaluationError(
                f"each: expected an array at {s.path}, got {get_type_name(items)}"
            )

        results = [self.execute(s.body, item) for item in items]
        return set_value(document, s.path.segments, results)

    def _when(self, statement: Statement, document: Document) -> Document:
        s = cast(WhenStatement, statement)
        if self._condition(s.condition, document):
            return self.execute(s.body, document)
        return document
