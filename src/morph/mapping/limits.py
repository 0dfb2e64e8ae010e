"""
Resource limits for mapping compilation.

These limits protect against resource exhaustion from oversized or
deeply nested mapping sources.
"""

from dataclasses import dataclass
from typing import Optional

from .ast import Span
from .errors import LimitExceededError


@dataclass(frozen=True)
class MappingLimits:
    """Mapping limits configuration."""

    # Maximum mapping source length in characters
    max_source_length: int = 65536

    # Maximum expression depth (nesting level)
    max_ast_depth: int = 64

    # Maximum number of nodes in a single expression
    max_ast_nodes: int = 1024

    # Maximum function call arguments
    max_function_args: int = 64

    # Maximum each/when block nesting
    max_block_depth: int = 32

    # Maximum number of statements, counting block bodies
    max_statements: int = 4096


# Default mapping limits.
#
# These values allow any hand-written mapping while keeping the
# recursive-descent parser well inside the interpreter's stack.
DEFAULT_MAPPING_LIMITS = MappingLimits()


def check_source_length(source: str, limits: Optional[MappingLimits] = None) -> None:
    """Validates that the mapping source length is within limits."""
    limits = limits or DEFAULT_MAPPING_LIMITS
    if len(source) > limits.max_source_length:
        raise LimitExceededError(
            "max_source_length", limits.max_source_length, len(source)
        )


def check_ast_depth(
    depth: int, limits: Optional[MappingLimits] = None, span: Optional[Span] = None
) -> None:
    """Validates expression depth during parsing."""
    limits = limits or DEFAULT_MAPPING_LIMITS
    if depth > limits.max_ast_depth:
        raise LimitExceededError("max_ast_depth", limits.max_ast_depth, depth, span)


def check_ast_node_count(
    count: int, limits: Optional[MappingLimits] = None, span: Optional[Span] = None
) -> None:
    """Validates expression node count during parsing."""
    limits = limits or DEFAULT_MAPPING_LIMITS
    if count > limits.max_ast_nodes:
        raise LimitExceededError("max_ast_nodes", limits.max_ast_nodes, count, span)


def check_function_arg_count(
    count: int, limits: Optional[MappingLimits] = None, span: Optional[Span] = None
) -> None:
    """Validates function argument count."""
    limits = limits or DEFAULT_MAPPING_LIMITS
    if count > limits.max_function_args:
        raise LimitExceededError(
            "max_function_args", limits.max_function_args, count, span
        )


def check_block_depth(
    depth: int, limits: Optional[MappingLimits] = None, span: Optional[Span] = None
) -> None:
    """Validates each/when nesting depth."""
    limits = limits or DEFAULT_MAPPING_LIMITS
    if depth > limits.max_block_depth:
        raise LimitExceededError("max_block_depth", limits.max_block_depth, depth, span)


def check_statement_count(count: int, limits: Optional[MappingLimits] = None) -> None:
    """Validates the total statement count of a program."""
    limits = limits or DEFAULT_MAPPING_LIMITS
    if count > limits.max_statements:
        raise LimitExceededError("max_statements", limits.max_statements, count)
