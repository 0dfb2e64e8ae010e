"""
Mapping language.

A small, deterministic language for reshaping documents: rename, select,
drop, set, cast, flatten, nest, filter, sort, and scoped sub-programs.
Mappings are compiled once and applied to any number of documents.
"""

# Core types and utilities
from .ast import (
    AstNodeBase,
    BinaryOperator,
    BinaryOpNode,
    CastStatement,
    CastType,
    DefaultStatement,
    DropStatement,
    EachStatement,
    ExprNode,
    FieldSegment,
    FlattenStatement,
    FunctionCallNode,
    IndexSegment,
    LiteralNode,
    NestStatement,
    Path,
    PathNode,
    PathSegment,
    Program,
    RenameStatement,
    SelectStatement,
    SetStatement,
    SortDirection,
    SortKey,
    SortStatement,
    Span,
    Statement,
    UnaryOperator,
    UnaryOpNode,
    WhenStatement,
    WhereStatement,
    WildcardSegment,
    ast_to_string,
    calculate_ast_depth,
    count_ast_nodes,
    count_statements,
)

# Builtins
from .builtins import (
    BUILTIN_FUNCTIONS,
    BuiltinContext,
    BuiltinFunction,
    FunctionRegistry,
    call_builtin,
    create_function_registry,
    is_builtin_function,
)
from .coercion import cast_value, is_truthy, stringify

# Configuration
from .config import MappingConfig, create_mapping, load_mapping_config
from .errors import (
    BuiltinError,
    EvaluationError,
    LimitExceededError,
    MappingError,
    ParseError,
    TokenizerError,
    TypeMismatchError,
)

# Evaluator
from .evaluator import (
    EvaluationContext,
    EvaluationResult,
    Evaluator,
    evaluate,
    evaluate_as_boolean,
)
from .executor import Executor
from .limits import (
    DEFAULT_MAPPING_LIMITS,
    MappingLimits,
    check_ast_depth,
    check_ast_node_count,
    check_block_depth,
    check_function_arg_count,
    check_source_length,
    check_statement_count,
)

# Parser
from .parser import (
    Parser,
    parse,
    parse_expression,
    parse_tokens,
)

# Path engine
from .paths import MISSING, remove_value, resolve, set_value

# Programs
from .program import (
    CompiledMapping,
    ProgramResult,
    compile_mapping,
    evaluate_program,
)

# Tokenizer
from .tokenizer import (
    ExpressionPart,
    LiteralPart,
    Token,
    Tokenizer,
    TokenType,
    tokenize,
)

__all__ = [
    # AST
    "AstNodeBase",
    "BinaryOperator",
    "BinaryOpNode",
    "CastStatement",
    "CastType",
    "DefaultStatement",
    "DropStatement",
    "EachStatement",
    "ExprNode",
    "FieldSegment",
    "FlattenStatement",
    "FunctionCallNode",
    "IndexSegment",
    "LiteralNode",
    "NestStatement",
    "Path",
    "PathNode",
    "PathSegment",
    "Program",
    "RenameStatement",
    "SelectStatement",
    "SetStatement",
    "SortDirection",
    "SortKey",
    "SortStatement",
    "Span",
    "Statement",
    "UnaryOperator",
    "UnaryOpNode",
    "WhenStatement",
    "WhereStatement",
    "WildcardSegment",
    "ast_to_string",
    "calculate_ast_depth",
    "count_ast_nodes",
    "count_statements",
    # Builtins
    "BUILTIN_FUNCTIONS",
    "BuiltinContext",
    "BuiltinFunction",
    "FunctionRegistry",
    "call_builtin",
    "create_function_registry",
    "is_builtin_function",
    # Coercion
    "cast_value",
    "is_truthy",
    "stringify",
    # Configuration
    "MappingConfig",
    "create_mapping",
    "load_mapping_config",
    # Errors
    "BuiltinError",
    "EvaluationError",
    "LimitExceededError",
    "MappingError",
    "ParseError",
    "TokenizerError",
    "TypeMismatchError",
    # Evaluator
    "EvaluationContext",
    "EvaluationResult",
    "Evaluator",
    "evaluate",
    "evaluate_as_boolean",
    # Executor
    "Executor",
    # Limits
    "DEFAULT_MAPPING_LIMITS",
    "MappingLimits",
    "check_ast_depth",
    "check_ast_node_count",
    "check_block_depth",
    "check_function_arg_count",
    "check_source_length",
    "check_statement_count",
    # Parser
    "Parser",
    "parse",
    "parse_expression",
    "parse_tokens",
    # Path engine
    "MISSING",
    "remove_value",
    "resolve",
    "set_value",
    # Programs
    "CompiledMapping",
    "ProgramResult",
    "compile_mapping",
    "evaluate_program",
    # Tokenizer
    "ExpressionPart",
    "LiteralPart",
    "Token",
    "Tokenizer",
    "TokenType",
    "tokenize",
]
