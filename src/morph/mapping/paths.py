"""
Path engine: resolve, set and remove values by AST path.

All three operations are total. A path that does not resolve is never an
error: resolve() reports MISSING, set() auto-vivifies, and remove() leaves
the document as it was.

Documents are treated as immutable. set() and remove() copy only the
containers along the path and share every other subtree with the input,
so callers must never mutate a container they did not create.
"""

import copy
from typing import Optional, Sequence, Union

from morph.document import Document

from .ast import FieldSegment, IndexSegment, PathSegment


class _Missing:
    """Marker for a path that does not resolve (distinct from null)."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

Resolved = Union[Document, _Missing]


def _wrap_index(index: int, length: int) -> Optional[int]:
    """Maps a possibly negative index onto [0, length), or None."""
    if index < 0:
        index += length
    if 0 <= index < length:
        return index
    return None


def resolve(document: Document, segments: Sequence[PathSegment]) -> Resolved:
    """
    Reads the value at a path.

    Returns:
        The value, or MISSING when a field is absent, an index is out of
        range, a segment meets a value of the wrong kind, or a wildcard
        collects nothing.
    """
    current: Document = document

    for position, segment in enumerate(segments):
        if isinstance(segment, FieldSegment):
            if not isinstance(current, dict) or segment.name not in current:
                return MISSING
            current = current[segment.name]

        elif isinstance(segment, IndexSegment):
            if not isinstance(current, list):
                return MISSING
            index = _wrap_index(segment.index, len(current))
            if index is None:
                return MISSING
            current = current[index]

        else:
            if not isinstance(current, list):
                return MISSING
            rest = segments[position + 1 :]
            collected = []
            for item in current:
                value = resolve(item, rest)
                if value is not MISSING:
                    collected.append(value)
            return collected if collected else MISSING

    return current


def set_value(
    document: Document, segments: Sequence[PathSegment], value: Document
) -> Document:
    """
    Writes a value at a path and returns the new document.

    - A field segment on anything but a map starts a new map.
    - An index segment pads an array with nulls up to the index, starting a
      new array when the current value is not one. A negative index that
      still falls before the start after wrap-around leaves the document
      unchanged.
    - A wildcard writes into every element of an array; on anything else
      it leaves the document unchanged.

    The written value is deep-copied, so it never aliases its source.
    """
    if not segments:
        return copy.deepcopy(value)

    segment, rest = segments[0], segments[1:]

    if isinstance(segment, FieldSegment):
        node = dict(document) if isinstance(document, dict) else {}
        node[segment.name] = set_value(node.get(segment.name), rest, value)
        return node

    if isinstance(segment, IndexSegment):
        items = list(document) if isinstance(document, list) else []
        index = segment.index
        if index < 0:
            index += len(items)
            if index < 0:
                return document
        while len(items) <= index:
            items.append(None)
        items[index] = set_value(items[index], rest, value)
        return items

    if not isinstance(document, list):
        return document
    return [set_value(item, rest, value) for item in document]


def remove_value(document: Document, segments: Sequence[PathSegment]) -> Document:
    """
    Deletes the value at a path and returns the new document.

    Later array elements shift down and map keys keep their order. A path
    that does not resolve, or one ending in a wildcard, changes nothing.
    """
    if not segments:
        return document

    segment, rest = segments[0], segments[1:]

    if isinstance(segment, FieldSegment):
        if not isinstance(document, dict) or segment.name not in document:
            return document
        node = dict(document)
        if rest:
            node[segment.name] = remove_value(node[segment.name], rest)
        else:
            del node[segment.name]
        return node

    if isinstance(segment, IndexSegment):
        if not isinstance(document, list):
            return document
        index = _wrap_index(segment.index, len(document))
        if index is None:
            return document
        items = list(document)
        if rest:
            items[index] = remove_value(items[index], rest)
        else:
            del items[index]
        return items

    if not isinstance(document, list) or not rest:
        return document
    return [remove_value(item, rest) for item in document]
