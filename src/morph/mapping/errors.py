"""
Error types for the mapping language.

All mapping errors extend MappingError for consistent handling. Each
error may carry a 1-based source span and the mapping source text so
callers can render the offending line.
"""

from typing import Optional

from .ast import Span


class MappingError(Exception):
    """
    Base error class for all mapping-related errors.
    """

    def __init__(
        self,
        message: str,
        span: Optional[Span] = None,
        source: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.span = span
        self.source = source

    @property
    def line(self) -> Optional[int]:
        return self.span.line if self.span is not None else None

    @property
    def column(self) -> Optional[int]:
        return self.span.column if self.span is not None else None

    def with_location(
        self, span: Optional[Span], source: Optional[str] = None
    ) -> "MappingError":
        """Fills in the span and source when they are not already known."""
        if self.span is None:
            self.span = span
        if self.source is None:
            self.source = source
        return self

    def render(self) -> str:
        """
        Returns the message plus its location, when known.
        """
        if self.span is None:
            return self.message
        return f"{self.message} at {self.span}"

    def format_with_context(self) -> str:
        """
        Returns a formatted error message with the source line and a caret.
        """
        if self.source is None or self.span is None:
            return self.render()

        lines = self.source.split("\n")
        if not 1 <= self.span.line <= len(lines):
            return self.render()

        source_line = lines[self.span.line - 1]
        pointer = " " * (self.span.column - 1) + "^"
        return f"{self.render()}\n  {source_line}\n  {pointer}"


class TokenizerError(MappingError):
    """
    Error thrown during tokenization (lexical analysis).
    """

    pass


class ParseError(MappingError):
    """
    Error thrown during parsing (syntax analysis).
    """

    pass


class EvaluationError(MappingError):
    """
    Error thrown while applying a program to a document.
    """

    pass


class TypeMismatchError(EvaluationError):
    """
    Error thrown for type mismatches during evaluation.
    """

    def __init__(
        self,
        expected: str,
        actual: str,
        span: Optional[Span] = None,
        source: Optional[str] = None,
    ):
        message = f"type mismatch: expected {expected}, got {actual}"
        super().__init__(message, span, source)
        self.expected = expected
        self.actual = actual


class LimitExceededError(MappingError):
    """
    Error thrown when mapping limits are exceeded.
    """

    def __init__(
        self,
        limit_name: str,
        limit: int,
        actual: int,
        span: Optional[Span] = None,
        source: Optional[str] = None,
    ):
        message = f"limit exceeded: {limit_name} (limit: {limit}, actual: {actual})"
        super().__init__(message, span, source)
        self.limit_name = limit_name
        self.limit = limit
        self.actual = actual


class BuiltinError(EvaluationError):
    """
    Error thrown when a built-in function encounters an error.
    """

    def __init__(
        self,
        function_name: str,
        message: str,
        span: Optional[Span] = None,
        source: Optional[str] = None,
    ):
        full_message = f"{function_name}: {message}"
        super().__init__(full_message, span, source)
        self.function_name = function_name
