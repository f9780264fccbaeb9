"""Runtime values, the scope chain, and value helpers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from noteg.ast import Block
from noteg.errors import EvalError


@dataclass(eq=False, slots=True)
class FunctionValue:
    """User-defined function: params, borrowed body node, captured scope."""

    name: str
    params: tuple[str, ...]
    body: Block
    closure: Environment


@dataclass(frozen=True, slots=True)
class Builtin:
    """Host-implemented function registered under a reserved name."""

    name: str
    signature: str
    detail: str
    fn: Callable[..., Value] = field(repr=False, compare=False)


Value = Union[str, int, float, bool, None, list, dict, FunctionValue, Builtin]


class Environment:
    """One scope in the chain. Closures and nested scopes share references."""

    __slots__ = ("_values", "parent")

    def __init__(self, parent: Environment | None = None) -> None:
        self._values: dict[str, Value] = {}
        self.parent = parent

    def define(self, name: str, value: Value) -> None:
        """Bind name in this scope, shadowing any outer binding."""
        self._values[name] = value

    def lookup(self, name: str, line: int = 0) -> Value:
        """Resolve name outward through the chain; a miss is fatal."""
        env: Environment | None = self
        while env is not None:
            if name in env._values:
                return env._values[name]
            env = env.parent
        raise EvalError(f"Undefined variable: {name}", line)

    def __contains__(self, name: str) -> bool:
        env: Environment | None = self
        while env is not None:
            if name in env._values:
                return True
            env = env.parent
        return False


def is_number(value: Value) -> bool:
    """True for int/float; booleans are not numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def type_name(value: Value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (FunctionValue, Builtin)):
        return "function"
    raise TypeError(f"not a NoteG value: {value!r}")


def is_truthy(value: Value) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0
    if isinstance(value, (str, list)):
        return len(value) > 0
    return True


def values_equal(left: Value, right: Value) -> bool:
    """Strict equality: no coercion between kinds."""
    kind = type_name(left)
    if kind != type_name(right):
        return False
    if kind == "function":
        return left is right
    if kind == "array":
        return len(left) == len(right) and all(
            values_equal(a, b) for a, b in zip(left, right)
        )
    if kind == "object":
        return left.keys() == right.keys() and all(
            values_equal(left[k], right[k]) for k in left
        )
    return left == right


def format_number(value: int | float, line: int = 0) -> str:
    if isinstance(value, float):
        if value.is_integer():
            value = int(value)
        else:
            return repr(value)
    try:
        return str(value)
    except ValueError:
        # Beyond the interpreter's int-to-string digit limit
        raise EvalError("Number too large to display", line) from None


def to_display(value: Value, line: int = 0) -> str:
    """Stringify a value the way `+` concatenation and print show it.

    *line* is reported if a number is too large to render.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value, line)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "[" + ", ".join(_nested_display(v, line) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {_nested_display(v, line)}" for k, v in value.items()) + "}"
    if isinstance(value, (FunctionValue, Builtin)):
        return f"<fn {value.name}>"
    raise TypeError(f"not a NoteG value: {value!r}")


def _nested_display(value: Value, line: int) -> str:
    # Strings inside containers keep their quotes
    if isinstance(value, str):
        return f'"{value}"'
    return to_display(value, line)
