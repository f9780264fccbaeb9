"""Token types, the token record, and the keyword table."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    # Literals (true/false are keywords below)
    STRING = auto()
    NUMBER = auto()
    IDENTIFIER = auto()

    # Keywords
    LET = auto()
    IF = auto()
    ELSE = auto()
    FOR = auto()
    WHILE = auto()
    FN = auto()
    RETURN = auto()
    TRUE = auto()
    FALSE = auto()

    # Operators
    PLUS = auto()  # +
    MINUS = auto()  # -
    STAR = auto()  # *
    SLASH = auto()  # /
    PERCENT = auto()  # %
    EQ = auto()  # ==
    NEQ = auto()  # !=
    LT = auto()  # <
    GT = auto()  # >
    LTE = auto()  # <=
    GTE = auto()  # >=
    AND = auto()  # and
    OR = auto()  # or
    NOT = auto()  # not, !
    ASSIGN = auto()  # =

    # Delimiters
    LPAREN = auto()
    RPAREN = auto()
    LBRACE = auto()
    RBRACE = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    SEMICOLON = auto()
    ARROW = auto()  # ->

    # Template markers
    TEMPLATE_START = auto()  # {{
    TEMPLATE_END = auto()  # }}

    NEWLINE = auto()
    EOF = auto()
    ERROR = auto()


@dataclass(frozen=True, slots=True)
class Token:
    """A single scanner token. Line and column are 1-based; column is the start."""

    type: TokenType
    value: str
    line: int
    column: int


KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "while": TokenType.WHILE,
    "fn": TokenType.FN,
    "return": TokenType.RETURN,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "and": TokenType.AND,
    "or": TokenType.OR,
    "not": TokenType.NOT,
}

# Single-character tokens that have no two-character form.
SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    "+": TokenType.PLUS,
    "*": TokenType.STAR,
    "%": TokenType.PERCENT,
}

# First char -> (second char, two-char type, fallback one-char type)
TWO_CHAR_TOKENS: dict[str, tuple[str, TokenType, TokenType]] = {
    "-": (">", TokenType.ARROW, TokenType.MINUS),
    "=": ("=", TokenType.EQ, TokenType.ASSIGN),
    "!": ("=", TokenType.NEQ, TokenType.NOT),
    "<": ("=", TokenType.LTE, TokenType.LT),
    ">": ("=", TokenType.GTE, TokenType.GT),
}

QUOTES = frozenset("\"'")


def is_ident_start(ch: str) -> bool:
    """Return True if ch may begin an identifier ([A-Za-z_])."""
    return ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ch == "_"


def is_digit(ch: str) -> bool:
    """Return True if ch is an ASCII digit."""
    return "0" <= ch <= "9"


def is_ident_char(ch: str) -> bool:
    """Return True if ch may continue an identifier ([A-Za-z0-9_])."""
    return is_ident_start(ch) or is_digit(ch)


def describe_error_token(token: Token) -> str:
    """Human-readable message for an ERROR token."""
    if token.value[:1] in QUOTES:
        return "Unterminated string"
    return f"Unexpected character: {token.value}"
