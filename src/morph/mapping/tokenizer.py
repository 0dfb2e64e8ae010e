"""
Tokenizer (lexer) for the mapping language.

Converts mapping source text into a stream of tokens for the parser.
Every token carries a 1-based line/column span.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from morph.document import INT_MAX, INT_MIN

from .ast import Span
from .errors import TokenizerError
from .limits import MappingLimits, check_source_length


class TokenType(Enum):
    """Token types produced by the tokenizer."""

    # Statement keywords
    RENAME = "RENAME"
    SELECT = "SELECT"
    DROP = "DROP"
    SET = "SET"
    DEFAULT = "DEFAULT"
    CAST = "CAST"
    AS = "AS"
    WHERE = "WHERE"
    SORT = "SORT"
    EACH = "EACH"
    WHEN = "WHEN"
    FLATTEN = "FLATTEN"
    NEST = "NEST"
    ASC = "ASC"
    DESC = "DESC"

    # Operator keywords
    NOT = "NOT"
    AND = "AND"
    OR = "OR"

    # Literals
    TRUE = "TRUE"
    FALSE = "FALSE"
    NULL = "NULL"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    STRING = "STRING"
    INTERPOLATED_STRING = "INTERPOLATED_STRING"

    # Identifiers
    IDENTIFIER = "IDENTIFIER"

    # Operators
    ARROW = "ARROW"
    ASSIGN = "ASSIGN"
    EQ = "EQ"
    NE = "NE"
    GT = "GT"
    GE = "GE"
    LT = "LT"
    LE = "LE"
    PLUS = "PLUS"
    MINUS = "MINUS"
    STAR = "STAR"
    SLASH = "SLASH"
    PERCENT = "PERCENT"

    # Delimiters
    DOT = "DOT"
    COMMA = "COMMA"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    LBRACE = "LBRACE"
    RBRACE = "RBRACE"

    # Special
    NEWLINE = "NEWLINE"
    EOF = "EOF"


@dataclass(frozen=True)
class LiteralPart:
    """Literal text inside an interpolated string."""

    text: str


@dataclass(frozen=True)
class ExpressionPart:
    """Raw expression source captured between braces in a string."""

    source: str


InterpolationPart = Union[LiteralPart, ExpressionPart]


@dataclass
class Token:
    """A token produced by the tokenizer."""

    type: TokenType
    value: Any
    """Lexeme, parsed literal value, or a tuple of interpolation parts."""
    span: Span


# Keywords recognized by the tokenizer (case-sensitive)
KEYWORDS: Dict[str, TokenType] = {
    "rename": TokenType.RENAME,
    "select": TokenType.SELECT,
    "drop": TokenType.DROP,
    "set": TokenType.SET,
    "default": TokenType.DEFAULT,
    "cast": TokenType.CAST,
    "as": TokenType.AS,
    "where": TokenType.WHERE,
    "sort": TokenType.SORT,
    "each": TokenType.EACH,
    "when": TokenType.WHEN,
    "not": TokenType.NOT,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "flatten": TokenType.FLATTEN,
    "nest": TokenType.NEST,
    "asc": TokenType.ASC,
    "desc": TokenType.DESC,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "null": TokenType.NULL,
}

KEYWORD_TYPES: FrozenSet[TokenType] = frozenset(KEYWORDS.values())

# A '-' directly before a digit starts a negative number only after one of
# these tokens (or at the start of input); otherwise it is a minus operator.
_NEGATIVE_NUMBER_PREDECESSORS: FrozenSet[TokenType] = frozenset(
    {
        TokenType.NEWLINE,
        TokenType.LPAREN,
        TokenType.LBRACKET,
        TokenType.COMMA,
        TokenType.ASSIGN,
        TokenType.EQ,
        TokenType.NE,
        TokenType.GT,
        TokenType.GE,
        TokenType.LT,
        TokenType.LE,
        TokenType.ARROW,
        TokenType.PLUS,
        TokenType.MINUS,
        TokenType.STAR,
        TokenType.SLASH,
        TokenType.PERCENT,
    }
)

_SINGLE_CHAR_TOKENS: Dict[str, TokenType] = {
    ".": TokenType.DOT,
    ",": TokenType.COMMA,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "+": TokenType.PLUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
}

_ESCAPES: Dict[str, str] = {
    '"': '"',
    "\\": "\\",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "{": "{",
}


def _is_digit(ch: str) -> bool:
    """Checks if a character is an ASCII digit."""
    return "0" <= ch <= "9"


def _is_hex_digit(ch: str) -> bool:
    return _is_digit(ch) or ("a" <= ch <= "f") or ("A" <= ch <= "F")


def _is_identifier_start(ch: str) -> bool:
    """Checks if a character can start an identifier."""
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"


def _is_identifier_part(ch: str) -> bool:
    """Checks if a character can continue an identifier."""
    return _is_identifier_start(ch) or _is_digit(ch)


class Tokenizer:
    """Tokenizer for mapping source text."""

    def __init__(self, source: str, limits: Optional[MappingLimits] = None):
        self._source = source
        self._limits = limits
        self._position = 0
        self._line = 1
        self._column = 1
        self._tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Tokenizes the source and returns all tokens, ending with EOF."""
        check_source_length(self._source, self._limits)

        while not self._is_at_end():
            self._scan_token()

        self._tokens.append(Token(TokenType.EOF, "", self._span()))
        return self._tokens

    # ============================================================
    # Character Helpers
    # ============================================================

    def _is_at_end(self) -> bool:
        return self._position >= len(self._source)

    def _peek(self) -> str:
        if self._is_at_end():
            return "\0"
        return self._source[self._position]

    def _peek_next(self) -> str:
        if self._position + 1 >= len(self._source):
            return "\0"
        return self._source[self._position + 1]

    def _advance(self) -> str:
        ch = self._source[self._position]
        self._position += 1
        if ch == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return ch

    def _span(self) -> Span:
        return Span(self._line, self._column)

    def _add_token(self, token_type: TokenType, value: Any, span: Span) -> None:
        self._tokens.append(Token(token_type, value, span))

    def _error(self, message: str, span: Span) -> TokenizerError:
        return TokenizerError(message, span, self._source)

    # ============================================================
    # Scanning
    # ============================================================

    def _scan_token(self) -> None:
        span = self._span()
        ch = self._peek()

        if ch in (" ", "\t", "\r"):
            self._advance()
            return

        if ch == "\n":
            self._advance()
            # Runs of newlines collapse; none at the start of input
            if self._tokens and self._tokens[-1].type != TokenType.NEWLINE:
                self._add_token(TokenType.NEWLINE, "\n", span)
            return

        if ch == "#":
            while not self._is_at_end() and self._peek() != "\n":
                self._advance()
            return

        if ch in _SINGLE_CHAR_TOKENS:
            self._advance()
            self._add_token(_SINGLE_CHAR_TOKENS[ch], ch, span)
            return

        if ch == "-":
            self._scan_minus(span)
            return

        if ch == "=":
            self._advance()
            if self._peek() == "=":
                self._advance()
                self._add_token(TokenType.EQ, "==", span)
            else:
                self._add_token(TokenType.ASSIGN, "=", span)
            return

        if ch == "!":
            self._advance()
            if self._peek() == "=":
                self._advance()
                self._add_token(TokenType.NE, "!=", span)
                return
            raise self._error("unexpected character '!'", span)

        if ch == ">":
            self._advance()
            if self._peek() == "=":
                self._advance()
                self._add_token(TokenType.GE, ">=", span)
            else:
                self._add_token(TokenType.GT, ">", span)
            return

        if ch == "<":
            self._advance()
            if self._peek() == "=":
                self._advance()
                self._add_token(TokenType.LE, "<=", span)
            else:
                self._add_token(TokenType.LT, "<", span)
            return

        if ch == '"':
            self._scan_string(span)
            return

        if _is_digit(ch):
            self._scan_number(span, negative=False)
            return

        if _is_identifier_start(ch):
            self._scan_identifier(span)
            return

        raise self._error(f"unexpected character '{ch}'", span)

    def _scan_minus(self, span: Span) -> None:
        self._advance()

        if self._peek() == ">":
            self._advance()
            self._add_token(TokenType.ARROW, "->", span)
            return

        if _is_digit(self._peek()):
            previous = self._tokens[-1].type if self._tokens else None
            if previous is None or previous in _NEGATIVE_NUMBER_PREDECESSORS:
                self._scan_number(span, negative=True)
                return

        self._add_token(TokenType.MINUS, "-", span)

    def _scan_string(self, span: Span) -> None:
        self._advance()  # opening quote

        parts: List[InterpolationPart] = []
        literal = ""
        interpolated = False

        while True:
            if self._is_at_end():
                raise self._error("unterminated string literal", span)

            ch = self._advance()

            if ch == '"':
                break

            if ch == "{":
                interpolated = True
                if literal:
                    parts.append(LiteralPart(literal))
                    literal = ""
                parts.append(ExpressionPart(self._scan_interpolation(span)))
                continue

            if ch == "\\":
                literal += self._scan_escape(span)
                continue

            literal += ch

        if not interpolated:
            self._add_token(TokenType.STRING, literal, span)
            return

        if literal:
            parts.append(LiteralPart(literal))
        self._add_token(TokenType.INTERPOLATED_STRING, tuple(parts), span)

    def _scan_interpolation(self, span: Span) -> str:
        """Captures brace-balanced expression source after an opening '{'."""
        source = ""
        depth = 1

        while True:
            if self._is_at_end():
                raise self._error("unterminated interpolation in string", span)
            ch = self._advance()
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return source
            source += ch

    def _scan_escape(self, span: Span) -> str:
        if self._is_at_end():
            raise self._error("unterminated string literal", span)

        escaped = self._advance()
        if escaped in _ESCAPES:
            return _ESCAPES[escaped]

        if escaped == "u":
            digits = ""
            for _ in range(4):
                if self._is_at_end() or not _is_hex_digit(self._peek()):
                    raise self._error("invalid unicode escape sequence", span)
                digits += self._advance()
            code_point = int(digits, 16)
            # Lone surrogates are not valid characters
            if 0xD800 <= code_point <= 0xDFFF:
                raise self._error(f"invalid unicode code point: \\u{digits}", span)
            return chr(code_point)

        raise self._error(f"invalid escape sequence: \\{escaped}", span)

    def _scan_number(self, span: Span, negative: bool) -> None:
        text = "-" if negative else ""
        is_float = False
        has_exponent = False

        while not self._is_at_end():
            ch = self._peek()

            if _is_digit(ch):
                text += self._advance()
            elif ch == ".":
                if is_float:
                    raise self._error(f"invalid number: {text}.", span)
                # A dot not followed by a digit is a path separator
                if not _is_digit(self._peek_next()):
                    break
                is_float = True
                text += self._advance()
            elif ch in ("e", "E"):
                if has_exponent:
                    break
                has_exponent = True
                is_float = True
                text += self._advance()
                if self._peek() in ("+", "-"):
                    text += self._advance()
            elif ch == "_":
                self._advance()
            else:
                break

        if is_float:
            try:
                value = float(text)
            except ValueError:
                raise self._error(f"invalid float literal: {text}", span) from None
            self._add_token(TokenType.FLOAT, value, span)
            return

        number = int(text)
        if number < INT_MIN or number > INT_MAX:
            raise self._error(f"invalid integer literal: {text}", span)
        self._add_token(TokenType.INTEGER, number, span)

    def _scan_identifier(self, span: Span) -> None:
        value = ""

        while _is_identifier_part(self._peek()):
            value += self._advance()

        keyword_type = KEYWORDS.get(value)
        if keyword_type:
            self._add_token(keyword_type, value, span)
        else:
            self._add_token(TokenType.IDENTIFIER, value, span)


def tokenize(source: str, limits: Optional[MappingLimits] = None) -> List[Token]:
    """
    Tokenizes mapping source text into tokens.

    Args:
        source: The mapping source to tokenize
        limits: Optional mapping limits

    Returns:
        List of tokens, ending with an EOF token

    Raises:
        TokenizerError: If the source contains invalid tokens
        LimitExceededError: If the source is longer than allowed
    """
    tokenizer = Tokenizer(source, limits)
    return tokenizer.tokenize()

