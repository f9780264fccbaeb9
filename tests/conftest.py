"""Shared test fixtures and helpers."""

from __future__ import annotations

import io

import pytest

from noteg.ast import Let, Program
from noteg.eval import Interpreter
from noteg.lexer import tokenize
from noteg.parser import parse
from noteg.tokens import Token, TokenType
from noteg.values import Value


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns tokens (excluding EOF)."""

    def _lex(source: str) -> list[Token]:
        tokens = tokenize(source)
        # Strip trailing EOF for convenience
        return [t for t in tokens if t.type != TokenType.EOF]

    return _lex


@pytest.fixture
def parse_source():
    """Return a helper that parses source and returns a Program."""

    def _parse(source: str) -> Program:
        return parse(source)

    return _parse


@pytest.fixture
def run_source():
    """Return a helper that evaluates source and returns (value, printed output)."""

    def _run(source: str, **kwargs) -> tuple[Value, str]:
        out = io.StringIO()
        value = Interpreter(output=out, **kwargs).interpret(parse(source))
        return value, out.getvalue()

    return _run


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def let_value(program: Program, index: int = 0):
    """Return the value expression of the index-th top-level let."""
    node = program.body[index]
    assert isinstance(node, Let), f"Expected Let, got {type(node).__name__}"
    return node.value
