"""
Document value model.

A document is a recursive tree of plain Python values:

- None is null.
- bool, int (64-bit signed range), float, str and bytes are scalars.
- list is an ordered array.
- dict is an ordered map with string keys; insertion order is significant.

bool is a subclass of int in Python, so every numeric check in this package
must rule out bool first. Use is_number() rather than isinstance(x, int).
"""

import copy
import math
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

# Runtime value type for documents.
Document = Union[
    None,
    bool,
    int,
    float,
    str,
    bytes,
    List["Document"],
    Dict[str, "Document"],
]

INT_MIN = -(2**63)
INT_MAX = 2**63 - 1


class DocumentTypeError(TypeError):
    """Raised when a Python value cannot be represented as a document."""

    pass


class DocumentPathError(ValueError):
    """Raised when a dotted path cannot be written."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


# ============================================================
# Inspection
# ============================================================


def is_number(value: Any) -> bool:
    """Checks for an int or float that is not a bool."""
    return isinstance(value, int | float) and not isinstance(value, bool)


def get_type_name(value: Document) -> str:
    """Gets the type name of a value, as reported by type_of() and errors."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bytes):
        return "bytes"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


def values_equal(a: Document, b: Document) -> bool:
    """
    Strict structural equality.

    Unlike ==, a bool never equals an int and an int never equals a float,
    at any depth. Map comparison ignores key order.
    """
    if type(a) is not type(b):
        return False

    if isinstance(a, list):
        if len(a) != len(b):  # type: ignore[arg-type]
            return False
        return all(values_equal(x, y) for x, y in zip(a, b))  # type: ignore[arg-type]

    if isinstance(a, dict):
        if a.keys() != b.keys():  # type: ignore[union-attr]
            return False
        return all(values_equal(a[key], b[key]) for key in a)  # type: ignore[index]

    return a == b


def format_float(value: float) -> str:
    """
    Canonical text for a float.

    Uses the shortest digits that round-trip, written out in positional
    notation: whole values have no fractional part (30.0 is "30") and
    there is never an exponent (1e20 is "100000000000000000000").
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return format(Decimal(repr(value)).normalize(), "f")


def to_display(value: Document) -> str:
    """
    Returns the canonical textual form of a document.

    Strings are quoted, bytes render as b"\\x..", and containers render
    in a compact JSON-like form.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, bytes):
        return 'b"' + "".join(f"\\x{byte:02x}" for byte in value) + '"'
    if isinstance(value, list):
        return "[" + ", ".join(to_display(item) for item in value) + "]"
    if isinstance(value, dict):
        entries = ", ".join(
            f"{to_display(key)}: {to_display(item)}" for key, item in value.items()
        )
        return "{" + entries + "}"
    raise DocumentTypeError(f"unsupported document value: {type(value).__name__}")


# ============================================================
# Construction
# ============================================================


def normalize_value(value: Any) -> Document:
    """
    Converts a Python value into a fresh document tree.

    Rules:
    - None/bool/int/float/str/bytes are kept (ints must fit in 64 bits)
    - bytearray/memoryview -> bytes
    - list/tuple -> list, elements normalized recursively
    - dict -> dict, keys must be strings

    The result never shares containers with the input.

    Raises:
        DocumentTypeError: For values with no document representation
    """
    if value is None or isinstance(value, bool | float | str | bytes):
        return value

    if isinstance(value, int):
        if value < INT_MIN or value > INT_MAX:
            raise DocumentTypeError(f"integer {value} is outside the 64-bit range")
        return value

    if isinstance(value, bytearray | memoryview):
        return bytes(value)

    if isinstance(value, list | tuple):
        return [normalize_value(item) for item in value]

    if isinstance(value, dict):
        result: Dict[str, Document] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise DocumentTypeError(
                    f"map keys must be strings, got {type(key).__name__}"
                )
            result[key] = normalize_value(item)
        return result

    raise DocumentTypeError(f"unsupported document value: {type(value).__name__}")


def merge(base: Document, other: Document) -> Document:
    """
    Deep-merges two documents and returns a new one.

    When both sides are maps, keys from `other` are merged into `base`;
    nested map pairs merge recursively and everything else is overwritten.
    Any other pairing returns a copy of `other`.
    """
    if not (isinstance(base, dict) and isinstance(other, dict)):
        return copy.deepcopy(other)

    result = copy.deepcopy(base)
    for key, value in other.items():
        existing = result.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            result[key] = merge(existing, value)
        else:
            result[key] = copy.deepcopy(value)
    return result


# ============================================================
# Dotted Paths
# ============================================================

_DOTTED_SEGMENT = re.compile(r"([A-Za-z_][A-Za-z0-9_\-]*)|\[(\d+)\]")


def _parse_dotted_path(path: str) -> List[Union[str, int]]:
    """
    Parses a dotted path such as ".items[0].name" into segments.

    A leading dot is optional and an empty path (or ".") has no segments.
    """
    text = path[1:] if path.startswith(".") else path
    segments: List[Union[str, int]] = []
    position = 0

    while position < len(text):
        if text[position] == "." and segments:
            position += 1
            if position >= len(text) or text[position] == "[":
                raise DocumentPathError(f"invalid path: {path}", path)
        match = _DOTTED_SEGMENT.match(text, position)
        if match is None:
            raise DocumentPathError(f"invalid path: {path}", path)
        field, index = match.groups()
        segments.append(field if field is not None else int(index))
        position = match.end()

    return segments


def get_path(document: Document, path: str, default: Document = None) -> Document:
    """
    Reads a value by dotted path.

    Returns `default` when any step is missing, walks through a value of
    the wrong kind, or when the path is malformed.
    """
    try:
        segments = _parse_dotted_path(path)
    except DocumentPathError:
        return default

    current = document
    for segment in segments:
        if isinstance(segment, str):
            if not isinstance(current, dict) or segment not in current:
                return default
            current = current[segment]
        else:
            if not isinstance(current, list) or segment >= len(current):
                return default
            current = current[segment]
    return current


def set_path(document: Document, path: str, value: Document) -> Document:
    """
    Writes a value by dotted path and returns the new document.

    Intermediate maps are created when the walk passes through null or a
    missing key. The input document is left untouched.

    Raises:
        DocumentPathError: If the path is malformed, walks through a value
            that is not a container, or indexes past the end of an array
    """
    segments = _parse_dotted_path(path)
    if not segments:
        return copy.deepcopy(value)

    root = copy.deepcopy(document)
    if root is None:
        root = {}

    current = root
    for position, segment in enumerate(segments):
        last = position == len(segments) - 1

        if isinstance(segment, str):
            if not isinstance(current, dict):
                raise DocumentPathError(
                    f"cannot set field '{segment}' on {get_type_name(current)}", path
                )
            if last:
                current[segment] = copy.deepcopy(value)
                break
            if current.get(segment) is None:
                current[segment] = {}
            current = current[segment]
        else:
            if not isinstance(current, list):
                raise DocumentPathError(
                    f"cannot index {get_type_name(current)} with [{segment}]", path
                )
            if segment >= len(current):
                raise DocumentPathError(
                    f"index {segment} out of bounds for array of length {len(current)}",
                    path,
                )
            if last:
                current[segment] = copy.deepcopy(value)
                break
            if current[segment] is None:
                current[segment] = {}
            current = current[segment]

    return root
