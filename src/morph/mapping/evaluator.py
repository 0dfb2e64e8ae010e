"""
Expression evaluator.

Evaluates an expression AST against a document and returns a value.

Null handling semantics:
- None is the canonical null value throughout evaluation.
- A path that does not resolve evaluates to None.
- Arithmetic on None is an error; comparisons involving None are false
  except for equality.

Logical operators evaluate both operands before combining them by
truthiness, so `a and f(b)` still calls f when a is false.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple, cast

from morph.document import (
    INT_MAX,
    INT_MIN,
    Document,
    get_type_name,
    is_number,
    values_equal,
)

from .ast import (
    BinaryOperator,
    BinaryOpNode,
    ExprNode,
    FunctionCallNode,
    LiteralNode,
    PathNode,
    Span,
    UnaryOperator,
    UnaryOpNode,
)
from .builtins import (
    BUILTIN_FUNCTIONS,
    BuiltinContext,
    FunctionRegistry,
    call_builtin,
)
from .coercion import is_truthy, stringify
from .errors import EvaluationError, MappingError, TypeMismatchError
from .limits import DEFAULT_MAPPING_LIMITS, MappingLimits
from .paths import MISSING, resolve

_ARITHMETIC_VERBS = {
    "+": "add",
    "-": "subtract",
    "*": "multiply",
    "/": "divide",
    "%": "compute modulo of",
}


@dataclass
class EvaluationContext:
    """Evaluation context: the document expressions are evaluated against."""

    document: Document
    """The document that path references resolve against."""

    limits: Optional[MappingLimits] = None
    """Mapping limits."""

    source: Optional[str] = None
    """Mapping source for error reporting."""

    functions: Optional[FunctionRegistry] = None
    """Function registry for built-ins and injected helpers."""


@dataclass
class EvaluationResult:
    """Result of expression evaluation."""

    value: Document
    """The evaluated value."""

    success: bool
    """Whether evaluation succeeded."""

    error: Optional[str] = None
    """Error message if evaluation failed."""


class Evaluator:
    """Evaluates an expression node and returns the result."""

    def __init__(self, context: EvaluationContext):
        self._context = context
        self._limits = context.limits or DEFAULT_MAPPING_LIMITS
        self._source = context.source
        self._functions = context.functions or BUILTIN_FUNCTIONS

    def evaluate(self, node: ExprNode) -> Document:
        """Evaluates an expression node and returns the value."""
        node_type = node.type

        if node_type == "Literal":
            return cast(LiteralNode, node).value

        if node_type == "Path":
            value = resolve(self._context.document, cast(PathNode, node).path.segments)
            return None if value is MISSING else value

        if node_type == "FunctionCall":
            return self._evaluate_function_call(cast(FunctionCallNode, node))

        if node_type == "UnaryOp":
            n = cast(UnaryOpNode, node)
            return self._evaluate_unary_op(n.operator, n.operand, n.span)

        if node_type == "BinaryOp":
            n = cast(BinaryOpNode, node)
            return self._evaluate_binary_op(n.operator, n.left, n.right, n.span)

        raise EvaluationError(f"unsupported expression: {node_type}", node.span, self._source)

    def evaluate_as_boolean(self, node: ExprNode) -> bool:
        """Evaluates an expression and interprets the result by truthiness."""
        return is_truthy(self.evaluate(node))

    def _evaluate_function_call(self, node: FunctionCallNode) -> Document:
        """Evaluates a function call; arguments are evaluated left to right."""
        args = [self.evaluate(arg) for arg in node.args]

        builtin_context = BuiltinContext(
            limits=self._limits,
            span=node.span,
            source=self._source,
        )

        return call_builtin(node.name, args, builtin_context, self._functions)

    def _evaluate_unary_op(
        self, operator: UnaryOperator, operand: ExprNode, span: Span
    ) -> Document:
        """Evaluates a unary operation."""
        value = self.evaluate(operand)

        if operator == "not":
            return not is_truthy(value)

        if not is_number(value):
            raise TypeMismatchError("number", get_type_name(value), span, self._source)
        if isinstance(value, int):
            return self._check_int(-value, span)
        return -value

    def _evaluate_binary_op(
        self,
        operator: BinaryOperator,
        left: ExprNode,
        right: ExprNode,
        span: Span,
    ) -> Document:
        """Evaluates a binary operation."""
        left_value = self.evaluate(left)
        right_value = self.evaluate(right)

        if operator == "and":
            return is_truthy(left_value) and is_truthy(right_value)

        if operator == "or":
            return is_truthy(left_value) or is_truthy(right_value)

        if operator == "==":
            return self._values_equal(left_value, right_value)

        if operator == "!=":
            return not self._values_equal(left_value, right_value)

        if operator in ("<", "<=", ">", ">="):
            return self._evaluate_comparison(operator, left_value, right_value)

        if operator == "+" and (isinstance(left_value, str) or isinstance(right_value, str)):
            return stringify(left_value) + stringify(right_value)

        return self._evaluate_arithmetic(operator, left_value, right_value, span)

    def _evaluate_arithmetic(
        self,
        operator: BinaryOperator,
        left: Document,
        right: Document,
        span: Span,
    ) -> Document:
        """Evaluates + - * / % on numbers."""
        if not is_number(left) or not is_number(right):
            raise EvaluationError(
                f"cannot {_ARITHMETIC_VERBS[operator]} {get_type_name(left)} and "
                f"{get_type_name(right)}",
                span,
                self._source,
            )

        if operator in ("/", "%") and right == 0:
            word = "division" if operator == "/" else "modulo"
            raise EvaluationError(f"{word} by zero", span, self._source)

        if isinstance(left, int) and isinstance(right, int):
            return self._check_int(self._int_arithmetic(operator, left, right), span)

        a = float(left)  # type: ignore[arg-type]
        b = float(right)  # type: ignore[arg-type]
        if operator == "+":
            return a + b
        if operator == "-":
            return a - b
        if operator == "*":
            return a * b
        if operator == "/":
            return a / b
        # fmod raises on an infinite dividend; the remainder is NaN
        if not math.isfinite(a):
            return math.nan
        return math.fmod(a, b)

    @staticmethod
    def _int_arithmetic(operator: BinaryOperator, a: int, b: int) -> int:
        if operator == "+":
            return a + b
        if operator == "-":
            return a - b
        if operator == "*":
            return a * b

        # Truncating division; the remainder takes the sign of the dividend
        quotient = abs(a) // abs(b)
        if (a < 0) != (b < 0):
            quotient = -quotient
        if operator == "/":
            return quotient
        return a - b * quotient

    def _check_int(self, value: int, span: Span) -> int:
        if value < INT_MIN or value > INT_MAX:
            raise EvaluationError("integer overflow", span, self._source)
        return value

    @staticmethod
    def _evaluate_comparison(operator: str, left: Document, right: Document) -> bool:
        """
        Evaluates an ordering comparison.

        Only number/number and string/string pairs are ordered; every
        other pairing compares false.
        """
        if is_number(left) and is_number(right):
            pass
        elif isinstance(left, str) and isinstance(right, str):
            pass
        else:
            return False

        if operator == "<":
            return left < right  # type: ignore[operator]
        if operator == "<=":
            return left <= right  # type: ignore[operator]
        if operator == ">":
            return left > right  # type: ignore[operator]
        return left >= right  # type: ignore[operator]

    @staticmethod
    def _values_equal(a: Document, b: Document) -> bool:
        """Structural equality; an int and a float compare numerically."""
        if is_number(a) and is_number(b):
            return a == b
        return values_equal(a, b)


def evaluate(ast: ExprNode, context: EvaluationContext) -> EvaluationResult:
    """
    Evaluates an expression against a context and returns the result.

    Args:
        ast: The expression to evaluate
        context: The evaluation context with the document

    Returns:
        The evaluation result with value and success status
    """
    try:
        evaluator = Evaluator(context)
        value = evaluator.evaluate(ast)
        return EvaluationResult(value=value, success=True)
    except MappingError as error:
        return EvaluationResult(value=None, success=False, error=error.render())


def evaluate_as_boolean(
    ast: ExprNode, context: EvaluationContext
) -> Tuple[bool, Optional[str]]:
    """
    Evaluates an expression as a condition.

    Args:
        ast: The expression to evaluate
        context: The evaluation context with the document

    Returns:
        Tuple of (value, error_message). Value is False if evaluation fails.
    """
    try:
        evaluator = Evaluator(context)
        value = evaluator.evaluate_as_boolean(ast)
        return (value, None)
    except MappingError as error:
        return (False, error.render())
