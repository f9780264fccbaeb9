"""AST node types for parsed NoteG programs.

Every node records the 1-based source line of its first token.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Program:
    """Root node: top-level statements in source order."""

    body: tuple[Node, ...]
    line: int = 1


@dataclass(frozen=True, slots=True)
class Let:
    """`let name = value`."""

    name: str
    value: Node
    line: int = 0


@dataclass(frozen=True, slots=True)
class Function:
    """`fn name(params) { body }`."""

    name: str
    params: tuple[str, ...]
    body: Block
    line: int = 0


@dataclass(frozen=True, slots=True)
class If:
    """Conditional; else_branch is a Block, a nested If, or None."""

    condition: Node
    then_branch: Block
    else_branch: Block | If | None
    line: int = 0


@dataclass(frozen=True, slots=True)
class For:
    """`for variable in iterable { body }`."""

    variable: str
    iterable: Node
    body: Block
    line: int = 0


@dataclass(frozen=True, slots=True)
class While:
    condition: Node
    body: Block
    line: int = 0


@dataclass(frozen=True, slots=True)
class Return:
    value: Node | None
    line: int = 0


@dataclass(frozen=True, slots=True)
class Block:
    """Brace-delimited statement sequence; opens a child scope."""

    statements: tuple[Node, ...]
    line: int = 0


@dataclass(frozen=True, slots=True)
class BinaryExpr:
    operator: str
    left: Node
    right: Node
    line: int = 0


@dataclass(frozen=True, slots=True)
class UnaryExpr:
    operator: str
    operand: Node
    line: int = 0


@dataclass(frozen=True, slots=True)
class Call:
    callee: Node
    args: tuple[Node, ...]
    line: int = 0


@dataclass(frozen=True, slots=True)
class Identifier:
    name: str
    line: int = 0


@dataclass(frozen=True, slots=True)
class Literal:
    """String, number, boolean, or null constant."""

    value: str | int | float | bool | None
    line: int = 0


@dataclass(frozen=True, slots=True)
class Array:
    elements: tuple[Node, ...]
    line: int = 0


@dataclass(frozen=True, slots=True)
class Object:
    """Object literal; keys keep source order."""

    properties: tuple[tuple[str, Node], ...]
    line: int = 0


@dataclass(frozen=True, slots=True)
class Template:
    """Single-variable substitution point `{{ name }}`."""

    variable: str
    line: int = 0


Node = (
    Program
    | Let
    | Function
    | If
    | For
    | While
    | Return
    | Block
    | BinaryExpr
    | UnaryExpr
    | Call
    | Identifier
    | Literal
    | Array
    | Object
    | Template
)
