"""NoteG language server: diagnostics, completion and hover over stdio."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from collections.abc import Callable
from typing import Any

from lsprotocol.converters import get_converter
from lsprotocol.types import (
    CompletionItem,
    CompletionItemKind,
    CompletionOptions,
    CompletionParams,
    Diagnostic,
    DiagnosticOptions,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DocumentDiagnosticParams,
    Hover,
    HoverParams,
    MarkupContent,
    MarkupKind,
    Position,
    Range,
    RelatedFullDocumentDiagnosticReport,
    ServerCapabilities,
    TextDocumentSyncKind,
)
from pygls.workspace import TextDocument

from noteg import __version__
from noteg.builtins import BUILTINS
from noteg.lexer import tokenize
from noteg.parser import Parser
from noteg.tokens import Token, TokenType, describe_error_token
from noteg.transport import serve

logger = logging.getLogger(__name__)

SERVER_NAME = "NoteG Language Server"
DIAGNOSTIC_SOURCE = "noteg"
# Parse failures carry only a line, so the diagnostic spans a fixed width
PARSE_ERROR_WIDTH = 100

KEYWORD_DETAILS: tuple[tuple[str, str], ...] = (
    ("let", "Variable declaration"),
    ("fn", "Function definition"),
    ("if", "Conditional statement"),
    ("else", "Else branch"),
    ("for", "For loop"),
    ("while", "While loop"),
    ("return", "Return statement"),
    ("true", "Boolean true"),
    ("false", "Boolean false"),
    ("and", "Logical AND"),
    ("or", "Logical OR"),
    ("not", "Logical NOT"),
)

HOVER_DOCS: dict[str, str] = {
    "let": "Variable declaration: `let name = value`",
    "fn": "Function definition: `fn name(params) { body }`",
    "if": "Conditional: `if condition { then } else { else }`",
    "for": "For loop: `for item in array { body }`",
    "while": "While loop: `while condition { body }`",
    "return": "Return from function: `return value`",
}
HOVER_DOCS.update(
    {name: f"Built-in function: `{b.signature}` - {b.detail}" for name, b in BUILTINS.items()}
)

_LINE_IN_MESSAGE = re.compile(r"at line (\d+)")

_converter = get_converter()


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------


class DocumentStore:
    """Open documents by URI; every update replaces the document wholesale."""

    def __init__(self) -> None:
        self._documents: dict[str, TextDocument] = {}

    def open(self, uri: str, text: str, version: int | None = None, language_id: str = "noteg") -> None:
        self._documents[uri] = TextDocument(
            uri, source=text, version=version, language_id=language_id
        )

    def update(self, uri: str, text: str, version: int | None) -> None:
        doc = self._documents.get(uri)
        if doc is None:
            return
        self._documents[uri] = TextDocument(
            uri, source=text, version=version, language_id=doc.language_id
        )

    def close(self, uri: str) -> None:
        self._documents.pop(uri, None)

    def get(self, uri: str) -> TextDocument | None:
        return self._documents.get(uri)

    def __contains__(self, uri: str) -> bool:
        return uri in self._documents

    def __len__(self) -> int:
        return len(self._documents)


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


def _token_diagnostic(tok: Token) -> Diagnostic:
    start_line = tok.line - 1
    start_col = tok.column - 1
    newlines = tok.value.count("\n")
    if newlines:
        end = Position(
            line=start_line + newlines,
            character=len(tok.value) - tok.value.rfind("\n") - 1,
        )
    else:
        end = Position(line=start_line, character=start_col + len(tok.value))
    return Diagnostic(
        range=Range(start=Position(line=start_line, character=start_col), end=end),
        message=describe_error_token(tok),
        severity=DiagnosticSeverity.Error,
        source=DIAGNOSTIC_SOURCE,
    )


def _failure_diagnostic(exc: Exception) -> Diagnostic:
    message = str(exc)
    match = _LINE_IN_MESSAGE.search(message)
    line = int(match.group(1)) - 1 if match else 0
    return Diagnostic(
        range=Range(
            start=Position(line=line, character=0),
            end=Position(line=line, character=PARSE_ERROR_WIDTH),
        ),
        message=message,
        severity=DiagnosticSeverity.Error,
        source=DIAGNOSTIC_SOURCE,
    )


class LanguageService:
    """Per-request analysis over the document store. Nothing is cached."""

    def __init__(self) -> None:
        self.documents = DocumentStore()

    def analyze(self, uri: str) -> list[Diagnostic]:
        """Re-scan and re-parse the document's full text."""
        doc = self.documents.get(uri)
        if doc is None:
            return []

        source = doc.source
        diagnostics: list[Diagnostic] = []
        try:
            tokens = tokenize(source)
            diagnostics.extend(_token_diagnostic(t) for t in tokens if t.type == TokenType.ERROR)
            # Lexical errors already explain the failure the parser would hit
            if not diagnostics:
                Parser(tokens, source).parse()
        except Exception as exc:  # any analysis failure becomes one diagnostic
            logger.debug("Analysis of %s failed: %s", uri, exc)
            diagnostics.append(_failure_diagnostic(exc))
        return diagnostics

    def get_completions(self, uri: str, position: Position) -> list[CompletionItem]:
        """Every keyword and builtin, regardless of cursor context."""
        items = [
            CompletionItem(label=label, kind=CompletionItemKind.Keyword, detail=detail)
            for label, detail in KEYWORD_DETAILS
        ]
        items.extend(
            CompletionItem(
                label=name,
                kind=CompletionItemKind.Function,
                detail=b.detail,
                documentation=f"{b.signature} - {b.detail}",
            )
            for name, b in BUILTINS.items()
        )
        return items

    def get_hover(self, uri: str, position: Position) -> Hover | None:
        """Documentation for the keyword or builtin under the cursor."""
        doc = self.documents.get(uri)
        if doc is None:
            return None
        text = HOVER_DOCS.get(doc.word_at_position(position))
        if text is None:
            return None
        return Hover(contents=MarkupContent(kind=MarkupKind.Markdown, value=text))


# ---------------------------------------------------------------------------
# Request dispatch
# ---------------------------------------------------------------------------


class NotegLanguageServer:
    """JSON-RPC dispatcher over a LanguageService, one message at a time."""

    def __init__(self, service: LanguageService | None = None) -> None:
        self.service = service if service is not None else LanguageService()
        self.initialized = False
        self.shutdown_requested = False
        self._handlers: dict[str, Callable[[dict[str, Any]], Any]] = {
            "initialize": self._initialize,
            "initialized": self._initialized,
            "shutdown": self._shutdown,
            "exit": self._exit,
            "textDocument/didOpen": self._did_open,
            "textDocument/didChange": self._did_change,
            "textDocument/didClose": self._did_close,
            "textDocument/completion": self._completion,
            "textDocument/hover": self._hover,
            "textDocument/diagnostic": self._diagnostic,
        }

    def handle(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Dispatch one envelope; return the response for requests, else None."""
        method = message.get("method")
        if method is None:
            # Responses from the client are not expected
            return None

        msg_id = message.get("id")
        handler = self._handlers.get(method)
        if handler is None:
            logger.warning("Unknown method: %s", method)
            return None

        try:
            result = handler(message.get("params") or {})
        except Exception as exc:
            logger.exception("Error handling %s", method)
            if msg_id is None:
                return None
            return {
                "jsonrpc": "2.0",
                "id": msg_id,
                "error": {"code": -32603, "message": f"{method} failed: {exc}"},
            }

        if msg_id is None:
            return None
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    # -- lifecycle -------------------------------------------------------

    def _initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        self.initialized = True
        capabilities = ServerCapabilities(
            text_document_sync=TextDocumentSyncKind.Full,
            completion_provider=CompletionOptions(trigger_characters=["."]),
            hover_provider=True,
            diagnostic_provider=DiagnosticOptions(
                inter_file_dependencies=False, workspace_diagnostics=False
            ),
        )
        return {
            "capabilities": _converter.unstructure(capabilities),
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    def _initialized(self, params: dict[str, Any]) -> None:
        logger.info("%s initialized", SERVER_NAME)

    def _shutdown(self, params: dict[str, Any]) -> None:
        self.shutdown_requested = True

    def _exit(self, params: dict[str, Any]) -> None:
        raise SystemExit(0 if self.shutdown_requested else 1)

    # -- document sync ---------------------------------------------------

    def _did_open(self, params: dict[str, Any]) -> None:
        p = _converter.structure(params, DidOpenTextDocumentParams)
        item = p.text_document
        self.service.documents.open(item.uri, item.text, item.version, item.language_id)

    def _did_change(self, params: dict[str, Any]) -> None:
        p = _converter.structure(params, DidChangeTextDocumentParams)
        if p.content_changes:
            # Full sync: the change carries the whole text
            self.service.documents.update(
                p.text_document.uri, p.content_changes[0].text, p.text_document.version
            )

    def _did_close(self, params: dict[str, Any]) -> None:
        p = _converter.structure(params, DidCloseTextDocumentParams)
        self.service.documents.close(p.text_document.uri)

    # -- language features -----------------------------------------------

    def _completion(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        p = _converter.structure(params, CompletionParams)
        items = self.service.get_completions(p.text_document.uri, p.position)
        return _converter.unstructure(items)

    def _hover(self, params: dict[str, Any]) -> dict[str, Any] | None:
        p = _converter.structure(params, HoverParams)
        hover = self.service.get_hover(p.text_document.uri, p.position)
        return _converter.unstructure(hover) if hover is not None else None

    def _diagnostic(self, params: dict[str, Any]) -> dict[str, Any]:
        p = _converter.structure(params, DocumentDiagnosticParams)
        report = RelatedFullDocumentDiagnosticReport(
            items=self.service.analyze(p.text_document.uri)
        )
        return _converter.unstructure(report)


def main(argv: list[str] | None = None) -> int:
    """noteg-lsp entry point: serve LSP over stdio until the client exits."""
    p = argparse.ArgumentParser(prog="noteg-lsp", description=SERVER_NAME)
    p.add_argument("--stdio", action="store_true", help="Use stdio transport (default)")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr output (default: WARNING)",
    )
    args = p.parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    logger.info("%s %s starting", SERVER_NAME, __version__)
    serve(NotegLanguageServer(), sys.stdin.buffer, sys.stdout.buffer)
    return 0
