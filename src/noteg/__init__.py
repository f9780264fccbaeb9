"""NoteG scripting/templating language: scanner, parser, evaluator, language server."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from noteg.values import Value

__version__ = "0.2.0"


def run(source: str, **kwargs: Any) -> Value:
    """Parse and evaluate NoteG source, returning the final statement's value."""
    from noteg.eval import Interpreter
    from noteg.parser import parse

    return Interpreter(**kwargs).interpret(parse(source))
