"""Structured dumps of tokens and ASTs: JSON-ready dicts and --debug tree output."""

from __future__ import annotations

import dataclasses
import sys
from typing import Any, TextIO

from noteg.ast import (
    Array,
    BinaryExpr,
    Block,
    Call,
    For,
    Function,
    Identifier,
    If,
    Let,
    Literal,
    Node,
    Object,
    Program,
    Return,
    Template,
    UnaryExpr,
    While,
)
from noteg.tokens import Token


def token_to_dict(token: Token) -> dict[str, Any]:
    return {
        "type": token.type.name,
        "value": token.value,
        "line": token.line,
        "column": token.column,
    }


def node_to_dict(node: Node) -> dict[str, Any]:
    """Convert a node to nested plain data, tagged with its variant name."""
    result: dict[str, Any] = {"type": type(node).__name__}
    for f in dataclasses.fields(node):
        result[f.name] = _field_to_data(getattr(node, f.name))
    return result


def _field_to_data(value: Any) -> Any:
    if dataclasses.is_dataclass(value):
        return node_to_dict(value)
    if isinstance(value, tuple):
        return [_field_to_data(v) for v in value]
    return value


def dump_ast(program: Program, *, file: TextIO | None = None) -> None:
    """Print a human-readable AST tree to *file* (stderr by default)."""
    if file is None:
        file = sys.stderr
    file.write("Program\n")
    for stmt in program.body:
        _dump(stmt, 1, file)


def _indent(depth: int) -> str:
    return "  " * depth


def _dump(node: Node, depth: int, f: TextIO) -> None:
    pad = _indent(depth)
    if isinstance(node, Let):
        f.write(f"{pad}Let {node.name}\n")
        _dump(node.value, depth + 1, f)
    elif isinstance(node, Function):
        f.write(f"{pad}Function {node.name}({', '.join(node.params)})\n")
        _dump(node.body, depth + 1, f)
    elif isinstance(node, If):
        f.write(f"{pad}If\n")
        _dump(node.condition, depth + 1, f)
        _dump(node.then_branch, depth + 1, f)
        if node.else_branch is not None:
            f.write(f"{pad}Else\n")
            _dump(node.else_branch, depth + 1, f)
    elif isinstance(node, For):
        f.write(f"{pad}For {node.variable}\n")
        _dump(node.iterable, depth + 1, f)
        _dump(node.body, depth + 1, f)
    elif isinstance(node, While):
        f.write(f"{pad}While\n")
        _dump(node.condition, depth + 1, f)
        _dump(node.body, depth + 1, f)
    elif isinstance(node, Return):
        f.write(f"{pad}Return\n")
        if node.value is not None:
            _dump(node.value, depth + 1, f)
    elif isinstance(node, Block):
        f.write(f"{pad}Block\n")
        for stmt in node.statements:
            _dump(stmt, depth + 1, f)
    elif isinstance(node, BinaryExpr):
        f.write(f"{pad}BinaryExpr {node.operator}\n")
        _dump(node.left, depth + 1, f)
        _dump(node.right, depth + 1, f)
    elif isinstance(node, UnaryExpr):
        f.write(f"{pad}UnaryExpr {node.operator}\n")
        _dump(node.operand, depth + 1, f)
    elif isinstance(node, Call):
        f.write(f"{pad}Call\n")
        _dump(node.callee, depth + 1, f)
        for arg in node.args:
            _dump(arg, depth + 1, f)
    elif isinstance(node, Identifier):
        f.write(f"{pad}Identifier {node.name}\n")
    elif isinstance(node, Literal):
        f.write(f"{pad}Literal {node.value!r}\n")
    elif isinstance(node, Array):
        f.write(f"{pad}Array\n")
        for el in node.elements:
            _dump(el, depth + 1, f)
    elif isinstance(node, Object):
        f.write(f"{pad}Object\n")
        for key, value in node.properties:
            f.write(f"{_indent(depth + 1)}{key}:\n")
            _dump(value, depth + 2, f)
    elif isinstance(node, Template):
        f.write(f"{pad}Template {node.variable}\n")
