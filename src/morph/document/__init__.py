"""
Universal document model.

Documents are plain Python values: None, bool, int, float, str, bytes,
list and dict (string keys, insertion order preserved).
"""

from .value import (
    INT_MAX,
    INT_MIN,
    Document,
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

__all__ = [
    # Types
    "Document",
    "INT_MAX",
    "INT_MIN",
    # Errors
    "DocumentPathError",
    "DocumentTypeError",
    # Inspection
    "get_type_name",
    "is_number",
    "values_equal",
    "format_float",
    "to_display",
    # Construction
    "normalize_value",
    "merge",
    # Dotted paths
    "get_path",
    "set_path",
]
