"""
Abstract Syntax Tree (AST) node types for the mapping language.

The AST is produced by the parser and consumed by the expression
evaluator and the statement executor. All nodes are immutable, so a
parsed Program can be shared and applied many times.
"""

import re
from abc import ABC
from dataclasses import dataclass
from typing import Iterator, Literal, Optional, Tuple, Union

from morph.document import Document, to_display


@dataclass(frozen=True)
class Span:
    """1-based source location."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}"


# ============================================================
# Operator Types
# ============================================================

UnaryOperator = Literal["not", "-"]

BinaryOperator = Literal[
    "*",
    "/",
    "%",
    "+",
    "-",
    "<",
    "<=",
    ">",
    ">=",
    "==",
    "!=",
    "and",
    "or",
]

CastType = Literal["int", "float", "string", "bool"]

SortDirection = Literal["asc", "desc"]

_BARE_FIELD = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


# ============================================================
# Paths
# ============================================================


@dataclass(frozen=True)
class FieldSegment:
    """Map key lookup (.name or .["quoted key"])."""

    name: str

    def __str__(self) -> str:
        if _BARE_FIELD.fullmatch(self.name):
            return f".{self.name}"
        return f".[{to_display(self.name)}]"


@dataclass(frozen=True)
class IndexSegment:
    """Array index lookup; negative values count from the end."""

    index: int

    def __str__(self) -> str:
        return f".[{self.index}]"


@dataclass(frozen=True)
class WildcardSegment:
    """Broadcast over every array element."""

    def __str__(self) -> str:
        return ".[*]"


PathSegment = Union[FieldSegment, IndexSegment, WildcardSegment]


@dataclass(frozen=True)
class Path:
    """An ordered list of segments addressing a location in a document."""

    segments: Tuple[PathSegment, ...]
    span: Span

    def last_field_name(self) -> Optional[str]:
        """Name of the last field segment, if the path has one."""
        for segment in reversed(self.segments):
            if isinstance(segment, FieldSegment):
                return segment.name
        return None

    def __str__(self) -> str:
        if not self.segments:
            return "."
        return "".join(str(segment) for segment in self.segments)


# ============================================================
# Expression Nodes
# ============================================================


@dataclass(frozen=True)
class AstNodeBase(ABC):
    """Base class for all AST nodes."""

    span: Span
    """Location in the mapping source (for error reporting)."""


@dataclass(frozen=True)
class LiteralNode(AstNodeBase):
    """Literal value: null, bool, int, float or string."""

    value: Document

    @property
    def type(self) -> Literal["Literal"]:
        return "Literal"


@dataclass(frozen=True)
class PathNode(AstNodeBase):
    """Path reference; evaluates to the value at the path or null."""

    path: Path

    @property
    def type(self) -> Literal["Path"]:
        return "Path"


@dataclass(frozen=True)
class FunctionCallNode(AstNodeBase):
    """Function call node."""

    name: str
    args: Tuple["ExprNode", ...]

    @property
    def type(self) -> Literal["FunctionCall"]:
        return "FunctionCall"


@dataclass(frozen=True)
class UnaryOpNode(AstNodeBase):
    """Unary operator node."""

    operator: UnaryOperator
    operand: "ExprNode"

    @property
    def type(self) -> Literal["UnaryOp"]:
        return "UnaryOp"


@dataclass(frozen=True)
class BinaryOpNode(AstNodeBase):
    """Binary operator node. The span points at the operator."""

    operator: BinaryOperator
    left: "ExprNode"
    right: "ExprNode"

    @property
    def type(self) -> Literal["BinaryOp"]:
        return "BinaryOp"


# Union type for all expression nodes
ExprNode = Union[
    LiteralNode,
    PathNode,
    FunctionCallNode,
    UnaryOpNode,
    BinaryOpNode,
]


# ============================================================
# Statement Nodes
# ============================================================


@dataclass(frozen=True)
class RenameStatement(AstNodeBase):
    """rename .from -> .to"""

    source: Path
    target: Path

    @property
    def type(self) -> Literal["Rename"]:
        return "Rename"


@dataclass(frozen=True)
class SelectStatement(AstNodeBase):
    """select .a, .b"""

    paths: Tuple[Path, ...]

    @property
    def type(self) -> Literal["Select"]:
        return "Select"


@dataclass(frozen=True)
class DropStatement(AstNodeBase):
    """drop .a, .b"""

    paths: Tuple[Path, ...]

    @property
    def type(self) -> Literal["Drop"]:
        return "Drop"


@dataclass(frozen=True)
class SetStatement(AstNodeBase):
    """set .path = expr"""

    path: Path
    value: ExprNode

    @property
    def type(self) -> Literal["Set"]:
        return "Set"


@dataclass(frozen=True)
class DefaultStatement(AstNodeBase):
    """default .path = expr"""

    path: Path
    value: ExprNode

    @property
    def type(self) -> Literal["Default"]:
        return "Default"


@dataclass(frozen=True)
class CastStatement(AstNodeBase):
    """cast .path as type"""

    path: Path
    target_type: CastType

    @property
    def type(self) -> Literal["Cast"]:
        return "Cast"


@dataclass(frozen=True)
class FlattenStatement(AstNodeBase):
    """flatten .path [-> prefix "p"]"""

    path: Path
    prefix: Optional[str] = None

    @property
    def type(self) -> Literal["Flatten"]:
        return "Flatten"


@dataclass(frozen=True)
class NestStatement(AstNodeBase):
    """nest .a, .b -> .target"""

    paths: Tuple[Path, ...]
    target: Path

    @property
    def type(self) -> Literal["Nest"]:
        return "Nest"


@dataclass(frozen=True)
class WhereStatement(AstNodeBase):
    """where expr"""

    condition: ExprNode

    @property
    def type(self) -> Literal["Where"]:
        return "Where"


@dataclass(frozen=True)
class SortKey:
    """One key of a sort statement."""

    path: Path
    direction: SortDirection = "asc"


@dataclass(frozen=True)
class SortStatement(AstNodeBase):
    """sort .k1 [asc|desc], .k2 [asc|desc]"""

    keys: Tuple[SortKey, ...]

    @property
    def type(self) -> Literal["Sort"]:
        return "Sort"


@dataclass(frozen=True)
class EachStatement(AstNodeBase):
    """each .path { statements }"""

    path: Path
    body: "Program"

    @property
    def type(self) -> Literal["Each"]:
        return "Each"


@dataclass(frozen=True)
class WhenStatement(AstNodeBase):
    """when expr { statements }"""

    condition: ExprNode
    body: "Program"

    @property
    def type(self) -> Literal["When"]:
        return "When"


# Union type for all statements
Statement = Union[
    RenameStatement,
    SelectStatement,
    DropStatement,
    SetStatement,
    DefaultStatement,
    CastStatement,
    FlattenStatement,
    NestStatement,
    WhereStatement,
    SortStatement,
    EachStatement,
    WhenStatement,
]


@dataclass(frozen=True)
class Program:
    """An ordered list of statements, applied left to right."""

    statements: Tuple[Statement, ...] = ()

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self) -> Iterator[Statement]:
        return iter(self.statements)


# ============================================================
# AST Utilities
# ============================================================


def count_ast_nodes(node: ExprNode) -> int:
    """Counts the total number of nodes in an expression."""
    count = 1

    if node.type in ("Literal", "Path"):
        return count

    if isinstance(node, FunctionCallNode):
        for arg in node.args:
            count += count_ast_nodes(arg)
        return count

    if isinstance(node, UnaryOpNode):
        return count + count_ast_nodes(node.operand)

    if isinstance(node, BinaryOpNode):
        return count + count_ast_nodes(node.left) + count_ast_nodes(node.right)

    return count


def calculate_ast_depth(node: ExprNode) -> int:
    """Calculates the maximum depth of an expression."""
    if isinstance(node, FunctionCallNode):
        max_arg_depth = 0
        for arg in node.args:
            max_arg_depth = max(max_arg_depth, calculate_ast_depth(arg))
        return 1 + max_arg_depth

    if isinstance(node, UnaryOpNode):
        return 1 + calculate_ast_depth(node.operand)

    if isinstance(node, BinaryOpNode):
        return 1 + max(calculate_ast_depth(node.left), calculate_ast_depth(node.right))

    return 1


def count_statements(program: Program) -> int:
    """Counts statements, including those inside each/when blocks."""
    count = 0
    for statement in program:
        count += 1
        if isinstance(statement, EachStatement | WhenStatement):
            count += count_statements(statement.body)
    return count


def _paths_to_string(paths: Tuple[Path, ...]) -> str:
    return ", ".join(str(path) for path in paths)


def ast_to_string(node: Union[ExprNode, Statement, Program], indent: int = 0) -> str:
    """Returns a human-readable representation of an AST node for debugging."""
    prefix = "  " * indent

    if isinstance(node, Program):
        return "\n".join(ast_to_string(s, indent) for s in node.statements)

    if isinstance(node, LiteralNode):
        return f"{prefix}Literal: {to_display(node.value)}"

    if isinstance(node, PathNode):
        return f"{prefix}Path: {node.path}"

    if isinstance(node, FunctionCallNode):
        args_str = "".join("\n" + ast_to_string(a, indent + 1) for a in node.args)
        return f"{prefix}FunctionCall: {node.name}{args_str}"

    if isinstance(node, UnaryOpNode):
        return f"{prefix}UnaryOp: {node.operator}\n{ast_to_string(node.operand, indent + 1)}"

    if isinstance(node, BinaryOpNode):
        return (
            f"{prefix}BinaryOp: {node.operator}\n"
            f"{ast_to_string(node.left, indent + 1)}\n"
            f"{ast_to_string(node.right, indent + 1)}"
        )

    if isinstance(node, RenameStatement):
        return f"{prefix}Rename: {node.source} -> {node.target}"

    if isinstance(node, SelectStatement | DropStatement):
        return f"{prefix}{node.type}: {_paths_to_string(node.paths)}"

    if isinstance(node, SetStatement | DefaultStatement):
        return f"{prefix}{node.type}: {node.path}\n{ast_to_string(node.value, indent + 1)}"

    if isinstance(node, CastStatement):
        return f"{prefix}Cast: {node.path} as {node.target_type}"

    if isinstance(node, FlattenStatement):
        suffix = f" -> prefix {to_display(node.prefix)}" if node.prefix is not None else ""
        return f"{prefix}Flatten: {node.path}{suffix}"

    if isinstance(node, NestStatement):
        return f"{prefix}Nest: {_paths_to_string(node.paths)} -> {node.target}"

    if isinstance(node, WhereStatement):
        return f"{prefix}Where:\n{ast_to_string(node.condition, indent + 1)}"

    if isinstance(node, SortStatement):
        keys = ", ".join(f"{key.path} {key.direction}" for key in node.keys)
        return f"{prefix}Sort: {keys}"

    if isinstance(node, EachStatement):
        return f"{prefix}Each: {node.path}\n{ast_to_string(node.body, indent + 1)}"

    if isinstance(node, WhenStatement):
        return (
            f"{prefix}When:\n"
            f"{prefix}  condition:\n{ast_to_string(node.condition, indent + 2)}\n"
            f"{prefix}  body:\n{ast_to_string(node.body, indent + 2)}"
        )

    return f"{prefix}Unknown: {node}"
