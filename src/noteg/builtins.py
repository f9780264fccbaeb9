"""Builtin function registry: reserved names mapped to host operations."""

from __future__ import annotations

from typing import TextIO

from noteg.errors import EvalError
from noteg.values import Builtin, Value, to_display, type_name


def _print(args: list[Value], output: TextIO, line: int) -> Value:
    output.write(" ".join(to_display(a, line) for a in args) + "\n")
    return None


def _len(args: list[Value], output: TextIO, line: int) -> Value:
    value = args[0] if args else None
    if isinstance(value, (str, list)):
        return len(value)
    raise EvalError(f"len() requires an array or string, got {type_name(value)}", line)


def _str(args: list[Value], output: TextIO, line: int) -> Value:
    return to_display(args[0] if args else None, line)


def _type(args: list[Value], output: TextIO, line: int) -> Value:
    return type_name(args[0] if args else None)


def _make_builtins() -> dict[str, Builtin]:
    defs: dict[str, Builtin] = {}

    def d(name: str, signature: str, detail: str, fn) -> None:
        defs[name] = Builtin(name, signature, detail, fn)

    d("print", "print(value, ...)", "Outputs values to the console", _print)
    d("len", "len(array|string)", "Returns the length", _len)
    d("str", "str(value)", "Converts a value to its display string", _str)
    d("type", "type(value)", "Returns the kind of a value as a string", _type)

    return defs


BUILTINS: dict[str, Builtin] = _make_builtins()
