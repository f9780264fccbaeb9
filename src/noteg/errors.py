"""Error types with formatted source context."""

from __future__ import annotations


class NotegError(Exception):
    """Base class for parse and runtime failures.

    ``str(error)`` is the one-line form ``<message> at line <N>``; use
    :meth:`format` for a caret diagram of the offending source line.
    """

    def __init__(self, message: str, line: int, column: int = 0, source: str = "") -> None:
        self.message = message
        self.line = line
        self.column = column
        self.source = source
        super().__init__(f"{message} at line {line}")

    def format(self, filename: str = "input.ng") -> str:
        lines = self.source.splitlines()
        line_idx = self.line - 1

        if 0 <= line_idx < len(lines):
            source_line = lines[line_idx]
        else:
            source_line = ""

        line_num = str(self.line)
        gutter_width = len(line_num) + 1
        blank_gutter = " " * gutter_width + "|"
        line_gutter = f"{line_num:>{gutter_width - 1}} |"

        location = f"{filename}:{self.line}"
        if self.column:
            location += f":{self.column}"

        result = f"error: {self.message}\n{' ' * gutter_width}--> {location}\n"
        if not source_line:
            return result.rstrip("\n")

        # Point at the column when known, otherwise underline the whole line
        if self.column:
            marker = " " * (self.column - 1) + "^"
        else:
            stripped = source_line.lstrip()
            marker = " " * (len(source_line) - len(stripped)) + "^" * max(1, len(stripped))

        return (
            f"{result}"
            f"{blank_gutter}\n"
            f"{line_gutter} {source_line}\n"
            f"{blank_gutter} {marker}"
        )


class ParseError(NotegError):
    """Raised on the first malformed construct; there is no recovery."""


class EvalError(NotegError):
    """Raised on runtime failures: lookups, calls, operand types, loops."""
