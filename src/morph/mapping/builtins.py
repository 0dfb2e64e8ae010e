"""
Built-in functions for the mapping language.

All built-in functions are pure and deterministic. Several names may route
to one implementation (lower, lowercase and downcase, for example).

Argument handling:
- String functions stringify their arguments: null becomes "null",
  numbers use their canonical text.
- Type functions follow the cast table in coercion.py.
- Wrong argument counts and unsupported types raise BuiltinError.
"""

import math
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from morph.document import (
    INT_MAX,
    INT_MIN,
    Document,
    get_type_name,
    is_number,
    values_equal,
)

from .ast import Span
from .coercion import (
    float_to_int,
    is_truthy,
    stringify,
    to_bool,
    to_float,
    to_int,
    to_string,
)
from .errors import BuiltinError, EvaluationError
from .limits import MappingLimits
from .suggestions import suggest


class BuiltinContext:
    """Context passed to built-in functions."""

    def __init__(
        self,
        limits: MappingLimits,
        span: Optional[Span],
        source: Optional[str],
    ):
        self.limits = limits
        self.span = span
        self.source = source


# Signature of a built-in function.
BuiltinFunction = Callable[[Sequence[Document], BuiltinContext], Document]

# Function registry for built-in and injected functions.
FunctionRegistry = Dict[str, BuiltinFunction]


def _assert_arg_count(args: Sequence[Document], expected: int, function_name: str) -> None:
    """Asserts argument count."""
    if len(args) != expected:
        raise BuiltinError(
            function_name, f"expected {expected} argument(s), got {len(args)}"
        )


def _assert_min_arg_count(
    args: Sequence[Document], minimum: int, function_name: str
) -> None:
    """Asserts a minimum argument count."""
    if len(args) < minimum:
        raise BuiltinError(
            function_name, f"expected at least {minimum} argument(s), got {len(args)}"
        )


def _assert_arg_count_range(
    args: Sequence[Document], min_count: int, max_count: int, function_name: str
) -> None:
    """Asserts argument count range."""
    if len(args) < min_count or len(args) > max_count:
        raise BuiltinError(
            function_name,
            f"expected {min_count}-{max_count} argument(s), got {len(args)}",
        )


def _assert_array(value: Document, arg_name: str, function_name: str) -> List[Document]:
    """Asserts that a value is an array."""
    if not isinstance(value, list):
        raise BuiltinError(
            function_name, f"{arg_name} must be an array, got {get_type_name(value)}"
        )
    return value


def _assert_map(value: Document, arg_name: str, function_name: str) -> Dict[str, Document]:
    """Asserts that a value is a map."""
    if not isinstance(value, dict):
        raise BuiltinError(
            function_name, f"{arg_name} must be a map, got {get_type_name(value)}"
        )
    return value


def _assert_int(value: Document, arg_name: str, function_name: str) -> int:
    """Asserts that a value is an int (not a bool)."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise BuiltinError(
            function_name, f"{arg_name} must be an integer, got {get_type_name(value)}"
        )
    return value


def _check_int_range(value: int, function_name: str) -> int:
    if value < INT_MIN or value > INT_MAX:
        raise BuiltinError(function_name, "integer overflow")
    return value


# ============================================================
# String Functions
# ============================================================


def _lower(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """lower(s) -> string - Returns the lowercase version of the string."""
    _assert_arg_count(args, 1, "lower")
    return stringify(args[0]).lower()


def _upper(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """upper(s) -> string - Returns the uppercase version of the string."""
    _assert_arg_count(args, 1, "upper")
    return stringify(args[0]).upper()


def _trim(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """trim(s) -> string - Removes leading and trailing whitespace."""
    _assert_arg_count(args, 1, "trim")
    return stringify(args[0]).strip()


def _trim_start(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """trim_start(s) -> string - Removes leading whitespace."""
    _assert_arg_count(args, 1, "trim_start")
    return stringify(args[0]).lstrip()


def _trim_end(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """trim_end(s) -> string - Removes trailing whitespace."""
    _assert_arg_count(args, 1, "trim_end")
    return stringify(args[0]).rstrip()


def _len(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """
    len(value) -> int

    UTF-8 bytes in a string, elements in an array, entries in a map, or
    bytes in a byte string. Any other value has length 0.
    """
    _assert_arg_count(args, 1, "len")
    value = args[0]
    if isinstance(value, str):
        return len(value.encode("utf-8"))
    if isinstance(value, bytes | list | dict):
        return len(value)
    return 0


def _replace(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """replace(s, from, to) -> string - Replaces every occurrence of `from`."""
    _assert_arg_count(args, 3, "replace")
    return stringify(args[0]).replace(stringify(args[1]), stringify(args[2]))


def _contains(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """
    contains(haystack, needle) -> bool

    Substring test. When the haystack is an array, tests whether any
    element equals the needle instead.
    """
    _assert_arg_count(args, 2, "contains")
    haystack, needle = args
    if isinstance(haystack, list):
        return any(values_equal(item, needle) for item in haystack)
    return stringify(needle) in stringify(haystack)


def _starts_with(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """starts_with(s, prefix) -> bool"""
    _assert_arg_count(args, 2, "starts_with")
    return stringify(args[0]).startswith(stringify(args[1]))


def _ends_with(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """ends_with(s, suffix) -> bool"""
    _assert_arg_count(args, 2, "ends_with")
    return stringify(args[0]).endswith(stringify(args[1]))


def _substr(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """
    substr(s, start[, length]) -> string

    Character-based slice. A start past the end yields "".
    """
    _assert_arg_count_range(args, 2, 3, "substr")
    text = stringify(args[0])
    start = _assert_int(args[1], "start", "substr")
    if start < 0:
        raise BuiltinError("substr", "start must not be negative")

    if len(args) == 3:
        length = _assert_int(args[2], "length", "substr")
        if length < 0:
            raise BuiltinError("substr", "length must not be negative")
        return text[start : start + length]

    return text[start:]


def _concat(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """concat(values...) -> string - Joins the text of every argument."""
    return "".join(stringify(arg) for arg in args)


def _split(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """
    split(s, separator) -> array

    An empty separator splits the string into characters.
    """
    _assert_arg_count(args, 2, "split")
    text = stringify(args[0])
    separator = stringify(args[1])
    if separator == "":
        return list(text)
    return text.split(separator)


def _join(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """join(array, separator) -> string"""
    _assert_arg_count(args, 2, "join")
    items = _assert_array(args[0], "first argument", "join")
    return stringify(args[1]).join(stringify(item) for item in items)


def _reverse(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """reverse(value) -> string | array"""
    _assert_arg_count(args, 1, "reverse")
    value = args[0]
    if isinstance(value, str | list):
        return value[::-1]
    raise BuiltinError("reverse", f"expected a string or array, got {get_type_name(value)}")


# ============================================================
# Type Functions
# ============================================================


def _converter(
    name: str, convert: Callable[[Document], Document]
) -> BuiltinFunction:
    def _convert(args: Sequence[Document], ctx: BuiltinContext) -> Document:
        _assert_arg_count(args, 1, name)
        try:
            return convert(args[0])
        except EvaluationError as error:
            raise BuiltinError(name, error.message) from error

    _convert.__doc__ = f"{name}(value) - Converts using the cast table."
    return _convert


_to_int = _converter("to_int", to_int)
_to_float = _converter("to_float", to_float)
_to_string = _converter("to_string", to_string)
_to_bool = _converter("to_bool", to_bool)


def _type_of(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """type_of(value) -> string - null, bool, int, float, string, array, map or bytes."""
    _assert_arg_count(args, 1, "type_of")
    return get_type_name(args[0])


# ============================================================
# Math Functions
# ============================================================


def _assert_number(value: Document, function_name: str) -> None:
    if not is_number(value):
        raise BuiltinError(function_name, f"expected a number, got {get_type_name(value)}")


def _abs(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """abs(n) -> number"""
    _assert_arg_count(args, 1, "abs")
    value = args[0]
    _assert_number(value, "abs")
    if isinstance(value, int):
        return _check_int_range(abs(value), "abs")
    return abs(value)


def _compare_for_extreme(a: Document, b: Document) -> int:
    """Orders number pairs; every other pairing (strings included) ties."""
    if is_number(a) and is_number(b):
        return (a > b) - (a < b)  # type: ignore[operator]
    return 0


def _min(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """min(a, b, ...) -> value - Smallest argument; the first wins ties."""
    _assert_min_arg_count(args, 2, "min")
    result = args[0]
    for arg in args[1:]:
        if _compare_for_extreme(arg, result) < 0:
            result = arg
    return result


def _max(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """max(a, b, ...) -> value - Largest argument; the first wins ties."""
    _assert_min_arg_count(args, 2, "max")
    result = args[0]
    for arg in args[1:]:
        if _compare_for_extreme(arg, result) > 0:
            result = arg
    return result


def _round_half_away(value: float) -> float:
    magnitude = abs(value)
    rounded = math.floor(magnitude)
    if magnitude - rounded >= 0.5:
        rounded += 1
    return math.copysign(rounded, value)


def _rounding(name: str, rounder: Callable[[float], float]) -> BuiltinFunction:
    def _round(args: Sequence[Document], ctx: BuiltinContext) -> Document:
        _assert_arg_count(args, 1, name)
        value = args[0]
        _assert_number(value, name)
        if isinstance(value, int):
            return value
        if not math.isfinite(value):
            return float_to_int(value)
        return float_to_int(float(rounder(value)))

    _round.__doc__ = f"{name}(n) -> int - Integers pass through; floats become ints."
    return _round


_floor = _rounding("floor", math.floor)
_ceil = _rounding("ceil", math.ceil)
_round = _rounding("round", _round_half_away)


# ============================================================
# Null and Existence Functions
# ============================================================


def _is_null(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """is_null(value) -> bool"""
    _assert_arg_count(args, 1, "is_null")
    return args[0] is None


def _coalesce(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """coalesce(values...) -> value - First non-null argument, or null."""
    _assert_min_arg_count(args, 1, "coalesce")
    for arg in args:
        if arg is not None:
            return arg
    return None


def _default(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """default(value, fallback) -> value - `fallback` when `value` is null."""
    _assert_arg_count(args, 2, "default")
    return args[1] if args[0] is None else args[0]


def _is_array(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """is_array(value) -> bool"""
    _assert_arg_count(args, 1, "is_array")
    return isinstance(args[0], list)


# ============================================================
# Collection Functions
# ============================================================


def _keys(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """keys(map) -> array - Keys in insertion order."""
    _assert_arg_count(args, 1, "keys")
    return list(_assert_map(args[0], "argument", "keys").keys())


def _values(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """values(map) -> array - Values in insertion order."""
    _assert_arg_count(args, 1, "values")
    return list(_assert_map(args[0], "argument", "values").values())


def _unique(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """unique(array) -> array - Drops repeated elements, keeping first occurrences."""
    _assert_arg_count(args, 1, "unique")
    result: List[Document] = []
    for item in _assert_array(args[0], "argument", "unique"):
        if not any(values_equal(item, seen) for seen in result):
            result.append(item)
    return result


def _first(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """first(array) -> value - First element, or null when empty."""
    _assert_arg_count(args, 1, "first")
    items = _assert_array(args[0], "argument", "first")
    return items[0] if items else None


def _last(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """last(array) -> value - Last element, or null when empty."""
    _assert_arg_count(args, 1, "last")
    items = _assert_array(args[0], "argument", "last")
    return items[-1] if items else None


def _sum(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """
    sum(array) -> number

    Int when every element is an int, float as soon as one is a float.
    An empty array sums to 0.
    """
    _assert_arg_count(args, 1, "sum")
    items = _assert_array(args[0], "argument", "sum")

    total: int | float = 0
    for item in items:
        if not is_number(item):
            raise BuiltinError(
                "sum", f"array elements must be numbers, got {get_type_name(item)}"
            )
        total += item  # type: ignore[operator]

    if isinstance(total, int):
        return _check_int_range(total, "sum")
    return total


def _group_by(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """
    group_by(array, field) -> map

    Groups elements by the text of their `field` value. Elements without
    the field (or that are not maps) land in the "null" group.
    """
    _assert_arg_count(args, 2, "group_by")
    items = _assert_array(args[0], "first argument", "group_by")
    field = stringify(args[1])

    groups: Dict[str, List[Document]] = {}
    for item in items:
        key_value = item.get(field) if isinstance(item, dict) else None
        groups.setdefault(stringify(key_value), []).append(item)
    return groups


# ============================================================
# Conditional Functions
# ============================================================


def _if(args: Sequence[Document], ctx: BuiltinContext) -> Document:
    """if(cond, then, else) -> value - Both branches are already evaluated."""
    _assert_arg_count(args, 3, "if")
    return args[1] if is_truthy(args[0]) else args[2]


# ============================================================
# Registry
# ============================================================

# Registry of all built-in functions, aliases included.
BUILTIN_FUNCTIONS: FunctionRegistry = {
    # String functions
    "lower": _lower,
    "lowercase": _lower,
    "downcase": _lower,
    "upper": _upper,
    "uppercase": _upper,
    "upcase": _upper,
    "trim": _trim,
    "trim_start": _trim_start,
    "ltrim": _trim_start,
    "trim_end": _trim_end,
    "rtrim": _trim_end,
    "len": _len,
    "length": _len,
    "size": _len,
    "replace": _replace,
    "contains": _contains,
    "starts_with": _starts_with,
    "ends_with": _ends_with,
    "substr": _substr,
    "substring": _substr,
    "concat": _concat,
    "split": _split,
    "join": _join,
    "reverse": _reverse,
    # Type functions
    "to_int": _to_int,
    "int": _to_int,
    "to_float": _to_float,
    "float": _to_float,
    "to_string": _to_string,
    "string": _to_string,
    "str": _to_string,
    "to_bool": _to_bool,
    "bool": _to_bool,
    "type_of": _type_of,
    "typeof": _type_of,
    # Math functions
    "abs": _abs,
    "min": _min,
    "max": _max,
    "floor": _floor,
    "ceil": _ceil,
    "round": _round,
    # Null and existence functions
    "is_null": _is_null,
    "coalesce": _coalesce,
    "default": _default,
    "is_array": _is_array,
    # Collection functions
    "keys": _keys,
    "values": _values,
    "unique": _unique,
    "first": _first,
    "last": _last,
    "sum": _sum,
    "group_by": _group_by,
    # Conditional functions
    "if": _if,
}


def create_function_registry(
    extra: Optional[Mapping[str, BuiltinFunction]] = None,
) -> FunctionRegistry:
    """
    Creates a function registry with the built-ins plus injected helpers.

    Injected helpers take precedence over built-ins of the same name.
    """
    registry = dict(BUILTIN_FUNCTIONS)
    if extra:
        registry.update(extra)
    return registry


def call_builtin(
    name: str,
    args: Sequence[Document],
    context: BuiltinContext,
    functions: Optional[FunctionRegistry] = None,
) -> Document:
    """
    Calls a built-in function by name.

    Args:
        name: The function name
        args: The evaluated function arguments
        context: The call context
        functions: Optional function registry (defaults to BUILTIN_FUNCTIONS)

    Returns:
        The function result

    Raises:
        EvaluationError: If the function doesn't exist
        BuiltinError: If the function rejects its arguments
    """
    functions = functions or BUILTIN_FUNCTIONS
    fn = functions.get(name)
    if fn is None:
        message = f"unknown function: {name}"
        suggestion = suggest(name, functions)
        if suggestion is not None:
            message += f" (did you mean '{suggestion}'?)"
        raise EvaluationError(message, context.span, context.source)

    try:
        return fn(args, context)
    except EvaluationError as error:
        raise error.with_location(context.span, context.source)


def is_builtin_function(name: str, functions: Optional[FunctionRegistry] = None) -> bool:
    """Checks if a name is a built-in function."""
    functions = functions or BUILTIN_FUNCTIONS
    return name in functions
