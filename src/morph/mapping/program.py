"""
Compiled mappings.

A mapping is tokenized and parsed once into an immutable Program and can
then be applied to any number of documents. A CompiledMapping holds no
mutable state, so a single instance may be applied from several threads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from morph.document import Document, normalize_value

from .ast import Program, count_statements
from .builtins import BuiltinFunction, FunctionRegistry, create_function_registry
from .errors import MappingError
from .executor import Executor
from .limits import DEFAULT_MAPPING_LIMITS, MappingLimits
from .parser import parse_tokens
from .tokenizer import tokenize

logger = logging.getLogger("morph.mapping.program")


@dataclass(frozen=True)
class ProgramResult:
    """Result of applying a program to a document."""

    value: Document
    """The transformed document, or None on failure."""

    success: bool
    """Whether every statement applied."""

    error: Optional[str] = None
    """Rendered error message if the program failed."""


@dataclass(frozen=True)
class CompiledMapping:
    """A parsed mapping ready to be applied to documents."""

    source: str
    program: Program
    limits: MappingLimits = DEFAULT_MAPPING_LIMITS
    functions: Optional[FunctionRegistry] = None

    def apply(self, document: Document) -> Document:
        """
        Applies the mapping to a document and returns the new document.

        The input is never modified.

        Raises:
            EvaluationError: If a statement fails
        """
        executor = Executor(self.limits, self.source, self.functions)
        current = normalize_value(document)

        for index, statement in enumerate(self.program):
            try:
                current = executor.execute_statement(statement, current)
            except MappingError as error:
                logger.debug(
                    "mapping_apply_failed",
                    extra={
                        "statement_index": index,
                        "statement": statement.type,
                        "error": error.render(),
                    },
                )
                raise

        return current


def compile_mapping(
    source: str,
    limits: Optional[MappingLimits] = None,
    functions: Optional[Mapping[str, BuiltinFunction]] = None,
) -> CompiledMapping:
    """
    Compiles mapping source into a reusable CompiledMapping.

    Args:
        source: The mapping source
        limits: Optional mapping limits
        functions: Optional extra functions, added to the built-ins

    Returns:
        The compiled mapping

    Raises:
        TokenizerError: If tokenization fails
        ParseError: If parsing fails
        LimitExceededError: If the mapping exceeds the limits
    """
    limits = limits or DEFAULT_MAPPING_LIMITS

    tokens = tokenize(source, limits)
    program = parse_tokens(tokens, source, limits)
    registry = create_function_registry(functions) if functions else None

    logger.debug(
        "mapping_compiled",
        extra={
            "statement_count": count_statements(program),
            "token_count": len(tokens),
            "custom_functions": sorted(functions) if functions else [],
        },
    )

    return CompiledMapping(
        source=source,
        program=program,
        limits=limits,
        functions=registry,
    )


def evaluate_program(
    program: Program,
    document: Document,
    limits: Optional[MappingLimits] = None,
    source: Optional[str] = None,
    functions: Optional[FunctionRegistry] = None,
) -> ProgramResult:
    """
    Applies a program to a document without raising.

    Args:
        program: The parsed program
        document: The input document
        limits: Optional mapping limits
        source: Optional mapping source for error context
        functions: Optional function registry

    Returns:
        The program result with value and success status
    """
    try:
        executor = Executor(limits, source, functions)
        value = executor.execute(program, normalize_value(document))
        return ProgramResult(value=value, success=True)
    except MappingError as error:
        return ProgramResult(value=None, success=False, error=error.render())
