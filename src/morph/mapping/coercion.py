"""
Value coercions shared by the cast statement, the type functions, and
the expression evaluator.

Cast table:

    source  | int              | float        | string      | bool
    --------+------------------+--------------+-------------+----------------
    null    | 0                | 0.0          | "null"      | false
    bool    | 1 / 0            | 1.0 / 0.0    | "true"/...  | itself
    int     | itself           | widened      | digits      | nonzero
    float   | truncated        | itself       | canonical   | nonzero
    string  | parsed or error  | parsed/error | itself      | true/1/yes,
            |                  |              |             | false/0/no/""
    other   | error            | error        | error       | error
"""

import math
import re
from typing import Callable, Dict

from morph.document import (
    INT_MAX,
    INT_MIN,
    Document,
    format_float,
    get_type_name,
    to_display,
)

from .ast import CastType
from .errors import EvaluationError

_INTEGER_TEXT = re.compile(r"[+-]?[0-9]+")

_TRUE_WORDS = ("true", "1", "yes")
_FALSE_WORDS = ("false", "0", "no", "")


def is_truthy(value: Document) -> bool:
    """
    Boolean interpretation of a value.

    null is false, a bool is itself, numbers are true when nonzero, and
    strings, arrays, maps and bytes are true when nonempty.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str | bytes | list | dict):
        return len(value) > 0
    return True


def stringify(value: Document) -> str:
    """Text used when a value is concatenated or passed to a string function."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    return to_display(value)


def float_to_int(value: float) -> int:
    """Truncates toward zero, saturating at the 64-bit range (NaN is 0)."""
    if math.isnan(value):
        return 0
    if value >= INT_MAX:
        return INT_MAX
    if value <= INT_MIN:
        return INT_MIN
    return int(value)


def _cannot_cast(value: Document, target: str) -> EvaluationError:
    if isinstance(value, str):
        return EvaluationError(f'cannot cast string "{value}" to {target}')
    return EvaluationError(f"cannot cast {get_type_name(value)} to {target}")


def to_int(value: Document) -> int:
    """Casts a value to int."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return float_to_int(value)
    if isinstance(value, str):
        if _INTEGER_TEXT.fullmatch(value):
            number = int(value)
            if INT_MIN <= number <= INT_MAX:
                return number
        raise _cannot_cast(value, "int")
    raise _cannot_cast(value, "int")


def to_float(value: Document) -> float:
    """Casts a value to float."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        # float() also accepts surrounding whitespace and digit separators
        if value != value.strip() or "_" in value:
            raise _cannot_cast(value, "float")
        try:
            return float(value)
        except ValueError:
            raise _cannot_cast(value, "float") from None
    raise _cannot_cast(value, "float")


def to_string(value: Document) -> str:
    """Casts a value to string."""
    if isinstance(value, bytes | list | dict):
        raise _cannot_cast(value, "string")
    return stringify(value)


def to_bool(value: Document) -> bool:
    """Casts a value to bool."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
        raise _cannot_cast(value, "bool")
    raise _cannot_cast(value, "bool")


CASTS: Dict[CastType, Callable[[Document], Document]] = {
    "int": to_int,
    "float": to_float,
    "string": to_string,
    "bool": to_bool,
}


def cast_value(value: Document, target: CastType) -> Document:
    """
    Converts a value to the target type.

    Raises:
        EvaluationError: If the value cannot be converted
    """
    return CASTS[target](value)
