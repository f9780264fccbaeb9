"""Command-line entry points: one per pipeline stage (lex, parse, run)."""

from __future__ import annotations

import argparse
import json
import sys
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from noteg.errors import EvalError, ParseError
from noteg.values import Value

DEFAULT_MAX_CALL_DEPTH = 64


@dataclass(frozen=True, slots=True)
class RunOptions:
    """Resolved options for noteg-run."""

    input_file: Path
    env: dict[str, Value]
    max_call_depth: int
    debug: bool


def _base_parser(prog: str, description: str) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog=prog, description=description)
    p.add_argument("input", help="Input .ng file")
    return p


def build_parser() -> argparse.ArgumentParser:
    """Build the noteg-run argument parser (separate function for testability)."""
    p = _base_parser("noteg-run", "Run a NoteG program and print its result")
    p.add_argument(
        "-e",
        "--env",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Predefine a string variable (repeatable)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: auto-discover noteg.toml)",
    )
    p.add_argument(
        "--max-call-depth",
        type=int,
        default=None,
        metavar="N",
        help=f"Maximum nested function calls (default: {DEFAULT_MAX_CALL_DEPTH})",
    )
    p.add_argument("--debug", action="store_true", help="Dump AST to stderr")
    return p


def parse_env_arg(s: str) -> tuple[str, str]:
    """Parse a NAME=VALUE string into (name, value)."""
    if "=" not in s:
        raise argparse.ArgumentTypeError(f"invalid env format (expected NAME=VALUE): {s}")
    name, _, value = s.partition("=")
    return name, value


def load_config(config_path: Path | None, input_dir: Path) -> dict[str, Any]:
    """Load a TOML config file, returning an empty dict on missing/absent file."""
    path = config_path if config_path is not None else input_dir / "noteg.toml"

    if not path.is_file():
        return {}

    with open(path, "rb") as f:
        return tomllib.load(f)


def _toml_to_value(value: Any) -> Value:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, list):
        return [_toml_to_value(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _toml_to_value(v) for k, v in value.items()}
    # Dates and times have no NoteG counterpart
    return str(value)


def resolve_options(args: argparse.Namespace) -> RunOptions:
    """Merge config file and CLI args into RunOptions.

    Precedence: config file < CLI flags.
    """
    input_file = Path(args.input)
    input_dir = input_file.parent
    if not input_dir.parts:
        input_dir = Path(".")

    config_path = Path(args.config) if args.config else None
    config = load_config(config_path, input_dir)

    # Predefined variables: config < CLI
    env: dict[str, Value] = {}
    cfg_env = config.get("env")
    if isinstance(cfg_env, dict):
        for k, v in cfg_env.items():
            env[str(k)] = _toml_to_value(v)
    for raw in args.env:
        name, value = parse_env_arg(raw)
        env[name] = value

    # Call depth: config < CLI
    max_call_depth = DEFAULT_MAX_CALL_DEPTH
    cfg_run = config.get("run")
    if isinstance(cfg_run, dict):
        cfg_depth = cfg_run.get("max_call_depth")
        if isinstance(cfg_depth, int) and not isinstance(cfg_depth, bool):
            max_call_depth = cfg_depth
    if args.max_call_depth is not None:
        max_call_depth = args.max_call_depth

    return RunOptions(
        input_file=input_file,
        env=env,
        max_call_depth=max_call_depth,
        debug=args.debug,
    )


def _read_error(path: Path, exc: OSError | UnicodeDecodeError) -> str:
    if isinstance(exc, UnicodeDecodeError):
        return f"error: cannot read {path}: not valid UTF-8 (byte {exc.start})"
    return f"error: cannot read {path}: {exc.strerror or exc}"


def _read_source(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(_read_error(path, exc), file=sys.stderr)
        return None


def run_file(options: RunOptions) -> Value:
    """Read, parse, and evaluate a NoteG file; return the final value."""
    from noteg.debug import dump_ast
    from noteg.eval import Interpreter
    from noteg.parser import parse

    source = options.input_file.read_text(encoding="utf-8")
    program = parse(source)

    if options.debug:
        dump_ast(program)

    interpreter = Interpreter(env=options.env, max_call_depth=options.max_call_depth)
    try:
        return interpreter.interpret(program)
    except EvalError as exc:
        # Attach the source so format() can show the offending line
        exc.source = source
        raise


def lex_main(argv: list[str] | None = None) -> int:
    """noteg-lex: print the token sequence as JSON."""
    from noteg.debug import token_to_dict
    from noteg.lexer import tokenize

    args = _base_parser("noteg-lex", "Tokenize a NoteG file").parse_args(argv)
    source = _read_source(Path(args.input))
    if source is None:
        return 2

    tokens = tokenize(source)
    print(json.dumps([token_to_dict(t) for t in tokens], indent=2))
    return 0


def parse_main(argv: list[str] | None = None) -> int:
    """noteg-parse: print the syntax tree as JSON."""
    from noteg.debug import node_to_dict
    from noteg.parser import parse

    args = _base_parser("noteg-parse", "Parse a NoteG file").parse_args(argv)
    source = _read_source(Path(args.input))
    if source is None:
        return 2

    try:
        program = parse(source)
    except ParseError as exc:
        print(exc.format(args.input), file=sys.stderr)
        return 1

    print(json.dumps(node_to_dict(program), indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """noteg-run entry point. Returns exit code (0/1/2). Does not call sys.exit()."""
    from noteg.values import to_display

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        options = resolve_options(args)
    except argparse.ArgumentTypeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except tomllib.TOMLDecodeError as exc:
        print(f"error: invalid config file: {exc}", file=sys.stderr)
        return 2

    if not options.input_file.is_file():
        print(f"error: cannot read {options.input_file}: no such file", file=sys.stderr)
        return 2

    try:
        result = run_file(options)
        text = to_display(result) if result is not None else None
    except (OSError, UnicodeDecodeError) as exc:
        print(_read_error(options.input_file, exc), file=sys.stderr)
        return 2
    except ParseError as exc:
        print(exc.format(str(options.input_file)), file=sys.stderr)
        return 1
    except EvalError as exc:
        print(exc.format(str(options.input_file)), file=sys.stderr)
        return 2

    if text is not None:
        print(text)
    return 0
