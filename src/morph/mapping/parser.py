"""
Parser for the mapping language.

Parses a stream of tokens into a Program (an ordered list of statements).
Uses recursive descent for statements and operator precedence for
expressions.

Precedence (lowest to highest):
1. Logical OR: or
2. Logical AND: and
3. Comparison: ==, !=, <, <=, >, >= (single level, non-chaining)
4. Additive: +, -
5. Multiplicative: *, /, %
6. Unary: not, -
7. Primary: literals, paths, function calls, parentheses

A bare identifier that is not followed by '(' is a one-segment path, so
`name` and `.name` read the same field.
"""

from dataclasses import replace
from typing import Callable, Dict, List, Optional, Tuple

from .ast import (
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
    SortKey,
    SortStatement,
    Span,
    Statement,
    UnaryOpNode,
    WhenStatement,
    WhereStatement,
    WildcardSegment,
    calculate_ast_depth,
    count_ast_nodes,
    count_statements,
)
from .errors import ParseError, TokenizerError
from .limits import (
    DEFAULT_MAPPING_LIMITS,
    MappingLimits,
    check_ast_depth,
    check_ast_node_count,
    check_block_depth,
    check_function_arg_count,
    check_statement_count,
)
from .suggestions import suggest
from .tokenizer import KEYWORD_TYPES, LiteralPart, Token, TokenType, tokenize

STATEMENT_KEYWORDS: Tuple[str, ...] = (
    "rename",
    "select",
    "drop",
    "set",
    "default",
    "cast",
    "flatten",
    "nest",
    "where",
    "sort",
    "each",
    "when",
)

# Common misspellings and words borrowed from other tools
KEYWORD_ALIASES: Dict[str, str] = {
    "ren": "rename",
    "rname": "rename",
    "sel": "select",
    "slect": "select",
    "drp": "drop",
    "delet": "drop",
    "delete": "drop",
    "remove": "drop",
    "st": "set",
    "def": "default",
    "cst": "cast",
    "convert": "cast",
    "filter": "where",
    "order": "sort",
    "foreach": "each",
    "if": "when",
}

CAST_TYPE_NAMES: Dict[str, CastType] = {
    "int": "int",
    "integer": "int",
    "float": "float",
    "number": "float",
    "string": "string",
    "str": "string",
    "bool": "bool",
    "boolean": "bool",
}

_COMPARISON_OPERATORS: Dict[TokenType, BinaryOperator] = {
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.GT: ">",
    TokenType.GE: ">=",
    TokenType.LT: "<",
    TokenType.LE: "<=",
}

_LITERAL_TOKENS = (
    TokenType.INTEGER,
    TokenType.FLOAT,
    TokenType.STRING,
)


def describe_token(token: Token) -> str:
    """Short description of a token for error messages."""
    if token.type == TokenType.EOF:
        return "end of input"
    if token.type == TokenType.NEWLINE:
        return "end of line"
    if token.type == TokenType.IDENTIFIER:
        return f"identifier '{token.value}'"
    if token.type in (TokenType.STRING, TokenType.INTERPOLATED_STRING):
        return "string literal"
    if token.type in (TokenType.INTEGER, TokenType.FLOAT):
        return f"number {token.value}"
    if token.type in KEYWORD_TYPES:
        return f"keyword '{token.value}'"
    return f"'{token.value}'"


class Parser:
    """Parser for mapping programs."""

    def __init__(
        self,
        tokens: List[Token],
        source: str = "",
        limits: MappingLimits = DEFAULT_MAPPING_LIMITS,
    ):
        self._tokens = tokens
        self._source = source
        self._limits = limits
        self._current = 0
        self._block_depth = 0
        self._nesting = 0
        self._statement_parsers: Dict[TokenType, Callable[[], Statement]] = {
            TokenType.RENAME: self._parse_rename,
            TokenType.SELECT: self._parse_select,
            TokenType.DROP: self._parse_drop,
            TokenType.SET: self._parse_set,
            TokenType.DEFAULT: self._parse_default,
            TokenType.CAST: self._parse_cast,
            TokenType.FLATTEN: self._parse_flatten,
            TokenType.NEST: self._parse_nest,
            TokenType.WHERE: self._parse_where,
            TokenType.SORT: self._parse_sort,
            TokenType.EACH: self._parse_each,
            TokenType.WHEN: self._parse_when,
        }

    def parse(self) -> Program:
        """Parses the token stream into a Program."""
        program = self._parse_statements(in_block=False)
        check_statement_count(count_statements(program), self._limits)
        return program

    def parse_expression(self) -> ExprNode:
        """Parses the token stream as a single expression."""
        expr = self._parse_expression()

        if not self._is_at_end():
            token = self._peek()
            raise self._error(f"unexpected {describe_token(token)} after expression", token)

        return expr

    # ============================================================
    # Token Helpers
    # ============================================================

    def _is_at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self) -> Token:
        return self._tokens[self._current]

    def _peek_next(self) -> Token:
        index = min(self._current + 1, len(self._tokens) - 1)
        return self._tokens[index]

    def _previous(self) -> Token:
        return self._tokens[self._current - 1]

    def _advance(self) -> Token:
        if not self._is_at_end():
            self._current += 1
        return self._previous()

    def _check(self, token_type: TokenType) -> bool:
        if self._is_at_end():
            return False
        return self._peek().type == token_type

    def _match(self, *types: TokenType) -> bool:
        for token_type in types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._check(token_type):
            return self._advance()
        token = self._peek()
        raise self._error(f"{message}, found {describe_token(token)}", token)

    def _error(self, message: str, token: Token) -> ParseError:
        return ParseError(message, token.span, self._source)

    def _skip_newlines(self) -> None:
        while self._match(TokenType.NEWLINE):
            pass

    # ============================================================
    # Statements
    # ============================================================

    def _parse_statements(self, in_block: bool) -> Program:
        statements: List[Statement] = []
        self._skip_newlines()

        while not self._is_at_end() and not (in_block and self._check(TokenType.RBRACE)):
            statements.append(self._parse_statement())

            if self._match(TokenType.NEWLINE):
                self._skip_newlines()
                continue

            if self._is_at_end() or (in_block and self._check(TokenType.RBRACE)):
                break

            token = self._peek()
            raise self._error(
                f"expected end of statement, found {describe_token(token)}", token
            )

        return Program(tuple(statements))

    def _parse_statement(self) -> Statement:
        token = self._peek()
        statement_parser = self._statement_parsers.get(token.type)
        if statement_parser is not None:
            return statement_parser()

        if token.type == TokenType.IDENTIFIER:
            suggestion = KEYWORD_ALIASES.get(token.value) or suggest(
                token.value, STATEMENT_KEYWORDS
            )
            if suggestion is not None:
                raise self._error(
                    f"unknown statement '{token.value}', did you mean '{suggestion}'?",
                    token,
                )

        raise self._error(
            f"unexpected {describe_token(token)} at start of statement; "
            f"expected one of: {', '.join(STATEMENT_KEYWORDS)}",
            token,
        )

    def _parse_rename(self) -> Statement:
        start = self._advance()
        source = self._parse_path()
        self._consume(TokenType.ARROW, "expected '->' after rename source")
        target = self._parse_path()
        return RenameStatement(span=start.span, source=source, target=target)

    def _parse_select(self) -> Statement:
        start = self._advance()
        return SelectStatement(span=start.span, paths=self._parse_path_list())

    def _parse_drop(self) -> Statement:
        start = self._advance()
        return DropStatement(span=start.span, paths=self._parse_path_list())

    def _parse_set(self) -> Statement:
        start = self._advance()
        path = self._parse_path()
        self._consume(TokenType.ASSIGN, "expected '=' after path in set")
        value = self._parse_checked_expression()
        return SetStatement(span=start.span, path=path, value=value)

    def _parse_default(self) -> Statement:
        start = self._advance()
        path = self._parse_path()
        self._consume(TokenType.ASSIGN, "expected '=' after path in default")
        value = self._parse_checked_expression()
        return DefaultStatement(span=start.span, path=path, value=value)

    def _parse_cast(self) -> Statement:
        start = self._advance()
        path = self._parse_path()
        self._consume(TokenType.AS, "expected 'as' after path in cast")
        target_type = self._parse_cast_type()
        return CastStatement(span=start.span, path=path, target_type=target_type)

    def _parse_cast_type(self) -> CastType:
        token = self._peek()
        if token.type not in (TokenType.IDENTIFIER, TokenType.STRING):
            raise self._error(
                f"expected type name (int, float, string, bool), found {describe_token(token)}",
                token,
            )
        self._advance()

        target_type = CAST_TYPE_NAMES.get(token.value)
        if target_type is not None:
            return target_type

        message = f"unknown type '{token.value}'; expected int, float, string, or bool"
        suggestion = suggest(token.value, CAST_TYPE_NAMES)
        if suggestion is not None:
            message += f" (did you mean '{suggestion}'?)"
        raise self._error(message, token)

    def _parse_flatten(self) -> Statement:
        start = self._advance()
        path = self._parse_path()
        prefix: Optional[str] = None

        if self._match(TokenType.ARROW):
            token = self._peek()
            if token.type != TokenType.IDENTIFIER or token.value != "prefix":
                raise self._error("expected 'prefix' after '->' in flatten", token)
            self._advance()
            prefix = self._consume(
                TokenType.STRING, "expected string literal for prefix value in flatten"
            ).value

        return FlattenStatement(span=start.span, path=path, prefix=prefix)

    def _parse_nest(self) -> Statement:
        start = self._advance()
        paths = self._parse_path_list()
        self._consume(TokenType.ARROW, "expected '->' before nest target")
        target = self._parse_path()
        return NestStatement(span=start.span, paths=paths, target=target)

    def _parse_where(self) -> Statement:
        start = self._advance()
        condition = self._parse_checked_expression()
        return WhereStatement(span=start.span, condition=condition)

    def _parse_sort(self) -> Statement:
        start = self._advance()
        keys = [self._parse_sort_key()]
        while self._match(TokenType.COMMA):
            keys.append(self._parse_sort_key())
        return SortStatement(span=start.span, keys=tuple(keys))

    def _parse_sort_key(self) -> SortKey:
        path = self._parse_path()
        if self._match(TokenType.DESC):
            return SortKey(path=path, direction="desc")
        self._match(TokenType.ASC)
        return SortKey(path=path, direction="asc")

    def _parse_each(self) -> Statement:
        start = self._advance()
        path = self._parse_path()
        body = self._parse_block()
        return EachStatement(span=start.span, path=path, body=body)

    def _parse_when(self) -> Statement:
        start = self._advance()
        condition = self._parse_checked_expression()
        body = self._parse_block()
        return WhenStatement(span=start.span, condition=condition, body=body)

    def _parse_block(self) -> Program:
        open_brace = self._consume(TokenType.LBRACE, "expected '{' to open block")
        self._block_depth += 1
        check_block_depth(self._block_depth, self._limits, open_brace.span)

        body = self._parse_statements(in_block=True)

        self._consume(TokenType.RBRACE, "expected '}' to close block")
        self._block_depth -= 1
        return body

    # ============================================================
    # Paths
    # ============================================================

    def _parse_path_list(self) -> Tuple[Path, ...]:
        paths = [self._parse_path()]
        while self._match(TokenType.COMMA):
            paths.append(self._parse_path())
        return tuple(paths)

    def _parse_path(self) -> Path:
        start = self._consume(TokenType.DOT, "expected path starting with '.'")
        segments = [self._parse_path_segment()]

        while True:
            if self._match(TokenType.DOT):
                segments.append(self._parse_path_segment())
            elif self._check(TokenType.LBRACKET):
                segments.append(self._parse_path_segment())
            else:
                break

        return Path(segments=tuple(segments), span=start.span)

    def _parse_path_segment(self) -> PathSegment:
        token = self._peek()

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            return FieldSegment(token.value)

        # Keywords double as field names (.sort, .default, ...)
        if token.type in KEYWORD_TYPES:
            self._advance()
            return FieldSegment(token.value)

        if self._match(TokenType.LBRACKET):
            inner = self._peek()
            segment: PathSegment
            if inner.type == TokenType.INTEGER:
                segment = IndexSegment(inner.value)
            elif inner.type == TokenType.STAR:
                segment = WildcardSegment()
            elif inner.type == TokenType.STRING:
                segment = FieldSegment(inner.value)
            else:
                raise self._error(
                    f"expected index, '*', or string key in brackets, "
                    f"found {describe_token(inner)}",
                    inner,
                )
            self._advance()
            self._consume(TokenType.RBRACKET, "expected ']' after path segment")
            return segment

        raise self._error(
            f"expected field name or '[' in path, found {describe_token(token)}", token
        )

    # ============================================================
    # Expression Parsing (by precedence, lowest to highest)
    # ============================================================

    def _parse_checked_expression(self) -> ExprNode:
        """Parses an expression and validates its size against the limits."""
        span = self._peek().span
        expr = self._parse_expression()
        check_ast_node_count(count_ast_nodes(expr), self._limits, span)
        check_ast_depth(calculate_ast_depth(expr), self._limits, span)
        return expr

    def _enter(self, token: Token) -> None:
        self._nesting += 1
        check_ast_depth(self._nesting, self._limits, token.span)

    def _exit(self) -> None:
        self._nesting -= 1

    def _parse_expression(self) -> ExprNode:
        self._enter(self._peek())
        try:
            return self._parse_or()
        finally:
            self._exit()

    def _parse_or(self) -> ExprNode:
        """Parses logical OR: or"""
        node = self._parse_and()

        while self._match(TokenType.OR):
            span = self._previous().span
            right = self._parse_and()
            node = BinaryOpNode(span=span, operator="or", left=node, right=right)

        return node

    def _parse_and(self) -> ExprNode:
        """Parses logical AND: and"""
        node = self._parse_comparison()

        while self._match(TokenType.AND):
            span = self._previous().span
            right = self._parse_comparison()
            node = BinaryOpNode(span=span, operator="and", left=node, right=right)

        return node

    def _parse_comparison(self) -> ExprNode:
        """Parses a single comparison: ==, !=, <, <=, >, >="""
        node = self._parse_additive()

        operator = _COMPARISON_OPERATORS.get(self._peek().type)
        if operator is not None:
            span = self._advance().span
            right = self._parse_additive()
            node = BinaryOpNode(span=span, operator=operator, left=node, right=right)

        return node

    def _parse_additive(self) -> ExprNode:
        """Parses additive: +, -"""
        node = self._parse_multiplicative()

        while self._match(TokenType.PLUS, TokenType.MINUS):
            token = self._previous()
            operator: BinaryOperator = "+" if token.type == TokenType.PLUS else "-"
            right = self._parse_multiplicative()
            node = BinaryOpNode(span=token.span, operator=operator, left=node, right=right)

        return node

    def _parse_multiplicative(self) -> ExprNode:
        """Parses multiplicative: *, /, %"""
        node = self._parse_unary()

        while self._match(TokenType.STAR, TokenType.SLASH, TokenType.PERCENT):
            token = self._previous()
            operator_map: Dict[TokenType, BinaryOperator] = {
                TokenType.STAR: "*",
                TokenType.SLASH: "/",
                TokenType.PERCENT: "%",
            }
            right = self._parse_unary()
            node = BinaryOpNode(
                span=token.span,
                operator=operator_map[token.type],
                left=node,
                right=right,
            )

        return node

    def _parse_unary(self) -> ExprNode:
        """Parses unary: not, -"""
        if self._match(TokenType.NOT, TokenType.MINUS):
            token = self._previous()
            self._enter(token)
            try:
                operand = self._parse_unary()
            finally:
                self._exit()
            return UnaryOpNode(
                span=token.span,
                operator="not" if token.type == TokenType.NOT else "-",
                operand=operand,
            )

        return self._parse_primary()

    def _parse_primary(self) -> ExprNode:
        """Parses primary expressions: literals, paths, calls, parentheses."""
        token = self._peek()

        if self._match(*_LITERAL_TOKENS):
            return LiteralNode(span=token.span, value=token.value)
        if self._match(TokenType.TRUE):
            return LiteralNode(span=token.span, value=True)
        if self._match(TokenType.FALSE):
            return LiteralNode(span=token.span, value=False)
        if self._match(TokenType.NULL):
            return LiteralNode(span=token.span, value=None)

        if self._match(TokenType.INTERPOLATED_STRING):
            return self._parse_interpolated_string(token)

        if self._check(TokenType.DOT):
            path = self._parse_path()
            return PathNode(span=path.span, path=path)

        if token.type == TokenType.IDENTIFIER or (
            token.type == TokenType.DEFAULT and self._peek_next().type == TokenType.LPAREN
        ):
            self._advance()
            if self._match(TokenType.LPAREN):
                return self._parse_call(token)
            path = Path(segments=(FieldSegment(token.value),), span=token.span)
            return PathNode(span=token.span, path=path)

        if self._match(TokenType.LPAREN):
            expr = self._parse_expression()
            self._consume(TokenType.RPAREN, "expected ')' after expression")
            return expr

        raise self._error(f"unexpected {describe_token(token)} in expression", token)

    def _parse_call(self, name_token: Token) -> ExprNode:
        """Parses function call arguments (already consumed opening paren)."""
        args: List[ExprNode] = []

        if not self._check(TokenType.RPAREN):
            args.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                args.append(self._parse_expression())

        self._consume(TokenType.RPAREN, "expected ')' after function arguments")
        check_function_arg_count(len(args), self._limits, name_token.span)
        return FunctionCallNode(span=name_token.span, name=name_token.value, args=tuple(args))

    def _parse_interpolated_string(self, token: Token) -> ExprNode:
        """Lowers "a {expr} b" into concat("a ", expr, " b")."""
        args: List[ExprNode] = []

        for part in token.value:
            if isinstance(part, LiteralPart):
                args.append(LiteralNode(span=token.span, value=part.text))
            else:
                args.append(self._parse_embedded_expression(part.source, token.span))

        check_function_arg_count(len(args), self._limits, token.span)
        return FunctionCallNode(span=token.span, name="concat", args=tuple(args))

    def _parse_embedded_expression(self, source: str, span: Span) -> ExprNode:
        try:
            parser = Parser(tokenize(source, self._limits), source, self._limits)
            parser._nesting = self._nesting
            expression = parser.parse_expression()
        except (TokenizerError, ParseError) as error:
            raise ParseError(
                f"invalid interpolation '{{{source}}}': {error.message}",
                span,
                self._source,
            ) from error

        return _relocate(expression, span)


def _relocate(node: ExprNode, span: Span) -> ExprNode:
    """Moves every node of an interpolated expression onto the string's span."""
    if isinstance(node, PathNode):
        return replace(node, span=span, path=replace(node.path, span=span))

    if isinstance(node, FunctionCallNode):
        args = tuple(_relocate(arg, span) for arg in node.args)
        return replace(node, span=span, args=args)

    if isinstance(node, UnaryOpNode):
        return replace(node, span=span, operand=_relocate(node.operand, span))

    if isinstance(node, BinaryOpNode):
        return replace(
            node,
            span=span,
            left=_relocate(node.left, span),
            right=_relocate(node.right, span),
        )

    return replace(node, span=span)


def parse_tokens(
    tokens: List[Token],
    source: str = "",
    limits: MappingLimits = DEFAULT_MAPPING_LIMITS,
) -> Program:
    """
    Parses an already tokenized mapping into a Program.

    Args:
        tokens: Tokens produced by tokenize(), ending with EOF
        source: The mapping source, used for error context
        limits: Optional mapping limits

    Returns:
        The parsed Program

    Raises:
        ParseError: If parsing fails
        LimitExceededError: If the program exceeds the limits
    """
    parser = Parser(tokens, source, limits)
    return parser.parse()


def parse(source: str, limits: MappingLimits = DEFAULT_MAPPING_LIMITS) -> Program:
    """
    Parses mapping source into a Program.

    Args:
        source: The mapping source to parse
        limits: Optional mapping limits

    Returns:
        The parsed Program

    Raises:
        TokenizerError: If tokenization fails
        ParseError: If parsing fails
        LimitExceededError: If the program exceeds the limits
    """
    tokens = tokenize(source, limits)
    return parse_tokens(tokens, source, limits)


def parse_expression(
    source: str, limits: MappingLimits = DEFAULT_MAPPING_LIMITS
) -> ExprNode:
    """Parses a standalone expression such as `.age > 18`."""
    parser = Parser(tokenize(source, limits), source, limits)
    return parser.parse_expression()
