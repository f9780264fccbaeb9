"""Tests for the LSP server: analysis, completion, hover and dispatch."""

from __future__ import annotations

import pytest
from lsprotocol.types import (
    CompletionItemKind,
    DiagnosticSeverity,
    MarkupKind,
    Position,
)

from noteg.lsp import (
    DIAGNOSTIC_SOURCE,
    KEYWORD_DETAILS,
    SERVER_NAME,
    DocumentStore,
    LanguageService,
    NotegLanguageServer,
)

URI = "file:///test.ng"


@pytest.fixture
def service():
    """A LanguageService plus a helper that opens a document in it."""
    svc = LanguageService()

    def put(source: str, uri: str = URI) -> None:
        svc.documents.open(uri, source, 0)

    return svc, put


@pytest.fixture
def server():
    return NotegLanguageServer()


def request(method: str, params: dict | None = None, msg_id: int = 1) -> dict:
    message = {"jsonrpc": "2.0", "id": msg_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def notification(method: str, params: dict | None = None) -> dict:
    message = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        message["params"] = params
    return message


def did_open(text: str, uri: str = URI) -> dict:
    return notification(
        "textDocument/didOpen",
        {"textDocument": {"uri": uri, "languageId": "noteg", "version": 1, "text": text}},
    )


# ---------------------------------------------------------------------------
# Document store
# ---------------------------------------------------------------------------


class TestDocumentStore:
    def test_open_and_get(self) -> None:
        store = DocumentStore()
        store.open(URI, "let x = 1", 3)
        doc = store.get(URI)
        assert doc is not None
        assert doc.source == "let x = 1"
        assert doc.version == 3
        assert URI in store
        assert len(store) == 1

    def test_update_replaces_text(self) -> None:
        store = DocumentStore()
        store.open(URI, "old", 1)
        store.update(URI, "new", 2)
        assert store.get(URI).source == "new"
        assert store.get(URI).version == 2

    def test_update_unknown_uri_is_ignored(self) -> None:
        store = DocumentStore()
        store.update(URI, "text", 1)
        assert URI not in store

    def test_close(self) -> None:
        store = DocumentStore()
        store.open(URI, "x", 1)
        store.close(URI)
        store.close(URI)
        assert store.get(URI) is None
        assert len(store) == 0


# ---------------------------------------------------------------------------
# Lexical errors
# ---------------------------------------------------------------------------


class TestLexDiagnostics:
    def test_unterminated_string(self, service) -> None:
        svc, put = service
        put('let s = "abc')
        diags = svc.analyze(URI)

        assert len(diags) == 1
        d = diags[0]
        assert d.severity == DiagnosticSeverity.Error
        assert d.message == "Unterminated string"
        assert d.source == DIAGNOSTIC_SOURCE
        # Opening quote is at column 9 (1-based) -> character 8 (0-based)
        assert d.range.start == Position(line=0, character=8)
        assert d.range.end == Position(line=0, character=12)

    def test_unterminated_string_spanning_lines(self, service) -> None:
        svc, put = service
        put("let s = 'ab\ncd")
        diags = svc.analyze(URI)
        assert len(diags) == 1
        assert diags[0].range.start == Position(line=0, character=8)
        assert diags[0].range.end == Position(line=1, character=2)

    def test_unexpected_character(self, service) -> None:
        svc, put = service
        put("let x = 1\nlet y = #")
        diags = svc.analyze(URI)
        assert len(diags) == 1
        d = diags[0]
        assert d.message == "Unexpected character: #"
        assert d.range.start == Position(line=1, character=8)
        assert d.range.end == Position(line=1, character=9)

    def test_every_error_token_reported(self, service) -> None:
        svc, put = service
        put("@ $")
        assert [d.message for d in svc.analyze(URI)] == [
            "Unexpected character: @",
            "Unexpected character: $",
        ]


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------


class TestParseDiagnostics:
    def test_parse_error_line(self, service) -> None:
        svc, put = service
        put("let a = 1\nlet = 2")
        diags = svc.analyze(URI)

        assert len(diags) == 1
        d = diags[0]
        assert d.severity == DiagnosticSeverity.Error
        assert d.message == "Expected variable name at line 2"
        assert d.range.start == Position(line=1, character=0)
        assert d.range.end == Position(line=1, character=100)

    def test_unclosed_block(self, service) -> None:
        svc, put = service
        put("fn f() {\n  return 1\n")
        diags = svc.analyze(URI)
        assert len(diags) == 1
        assert "Expected '}'" in diags[0].message


# ---------------------------------------------------------------------------
# Clean documents
# ---------------------------------------------------------------------------


class TestCleanDocuments:
    def test_valid_program(self, service) -> None:
        svc, put = service
        put("fn add(a, b) { return a + b }\nprint(add(1, 2))")
        assert svc.analyze(URI) == []

    def test_runtime_errors_not_reported(self, service) -> None:
        svc, put = service
        put("let x = undefined_name + 1\n1 / 0")
        assert svc.analyze(URI) == []

    def test_unknown_uri(self, service) -> None:
        svc, _ = service
        assert svc.analyze("file:///missing.ng") == []

    def test_fix_clears_diagnostics(self, service) -> None:
        svc, put = service
        put('let s = "abc')
        assert len(svc.analyze(URI)) == 1
        svc.documents.update(URI, 'let s = "abc"', 1)
        assert svc.analyze(URI) == []


# ---------------------------------------------------------------------------
# Completion and hover
# ---------------------------------------------------------------------------


class TestCompletion:
    def test_keywords_then_builtins(self, service) -> None:
        svc, put = service
        put("")
        items = svc.get_completions(URI, Position(line=0, character=0))
        labels = [i.label for i in items]
        assert labels == [k for k, _ in KEYWORD_DETAILS] + ["print", "len", "str", "type"]

    def test_kinds(self, service) -> None:
        svc, _ = service
        items = {i.label: i for i in svc.get_completions(URI, Position(line=0, character=0))}
        assert items["let"].kind == CompletionItemKind.Keyword
        assert items["let"].detail == "Variable declaration"
        assert items["print"].kind == CompletionItemKind.Function
        assert items["print"].detail == "Outputs values to the console"
        assert items["len"].documentation == "len(array|string) - Returns the length"


class TestHover:
    def test_keyword(self, service) -> None:
        svc, put = service
        put("let x = 1")
        hover = svc.get_hover(URI, Position(line=0, character=1))
        assert hover is not None
        assert hover.contents.kind == MarkupKind.Markdown
        assert hover.contents.value == "Variable declaration: `let name = value`"

    def test_builtin(self, service) -> None:
        svc, put = service
        put("let n = len(items)")
        hover = svc.get_hover(URI, Position(line=0, character=9))
        assert hover.contents.value == (
            "Built-in function: `len(array|string)` - Returns the length"
        )

    def test_user_identifier_has_no_hover(self, service) -> None:
        svc, put = service
        put("let total = 1")
        assert svc.get_hover(URI, Position(line=0, character=6)) is None

    def test_unknown_uri(self, service) -> None:
        svc, _ = service
        assert svc.get_hover("file:///nope.ng", Position(line=0, character=0)) is None


# ---------------------------------------------------------------------------
# JSON-RPC dispatch
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_initialize(self, server) -> None:
        response = server.handle(request("initialize", {"capabilities": {}}))
        assert response["id"] == 1
        result = response["result"]
        caps = result["capabilities"]
        assert caps["textDocumentSync"] == 1
        assert caps["hoverProvider"] is True
        assert caps["completionProvider"]["triggerCharacters"] == ["."]
        assert caps["diagnosticProvider"]["interFileDependencies"] is False
        assert caps["diagnosticProvider"]["workspaceDiagnostics"] is False
        assert result["serverInfo"]["name"] == SERVER_NAME
        assert server.initialized

    def test_initialized_notification(self, server) -> None:
        assert server.handle(notification("initialized", {})) is None

    def test_shutdown_then_exit(self, server) -> None:
        response = server.handle(request("shutdown", msg_id=7))
        assert response == {"jsonrpc": "2.0", "id": 7, "result": None}
        with pytest.raises(SystemExit) as info:
            server.handle(notification("exit"))
        assert info.value.code == 0

    def test_exit_without_shutdown(self, server) -> None:
        with pytest.raises(SystemExit) as info:
            server.handle(notification("exit"))
        assert info.value.code == 1

    def test_unknown_method(self, server) -> None:
        assert server.handle(request("workspace/symbol", {"query": ""})) is None
        assert server.handle(notification("$/cancelRequest", {"id": 1})) is None

    def test_client_response_ignored(self, server) -> None:
        assert server.handle({"jsonrpc": "2.0", "id": 3, "result": None}) is None

    def test_handler_failure_becomes_error_response(self, server) -> None:
        response = server.handle(request("textDocument/hover", {}, msg_id=9))
        assert response["id"] == 9
        assert response["error"]["code"] == -32603
        assert "textDocument/hover" in response["error"]["message"]


class TestDocumentSync:
    def test_did_open_stores_document(self, server) -> None:
        assert server.handle(did_open("let x = 1")) is None
        assert server.service.documents.get(URI).source == "let x = 1"

    def test_did_change_replaces_text(self, server) -> None:
        server.handle(did_open("let x = 1"))
        server.handle(
            notification(
                "textDocument/didChange",
                {
                    "textDocument": {"uri": URI, "version": 2},
                    "contentChanges": [{"text": "let y = 2"}],
                },
            )
        )
        doc = server.service.documents.get(URI)
        assert doc.source == "let y = 2"
        assert doc.version == 2

    def test_did_close_forgets_document(self, server) -> None:
        server.handle(did_open("let x = 1"))
        server.handle(notification("textDocument/didClose", {"textDocument": {"uri": URI}}))
        assert URI not in server.service.documents


class TestLanguageFeatures:
    def test_completion(self, server) -> None:
        server.handle(did_open(""))
        response = server.handle(
            request(
                "textDocument/completion",
                {"textDocument": {"uri": URI}, "position": {"line": 0, "character": 0}},
            )
        )
        items = response["result"]
        assert items[0]["label"] == "let"
        assert items[0]["kind"] == CompletionItemKind.Keyword.value
        assert {"print", "len", "str", "type"} <= {i["label"] for i in items}

    def test_hover(self, server) -> None:
        server.handle(did_open("print(1)"))
        response = server.handle(
            request(
                "textDocument/hover",
                {"textDocument": {"uri": URI}, "position": {"line": 0, "character": 2}},
            )
        )
        contents = response["result"]["contents"]
        assert contents["kind"] == "markdown"
        assert contents["value"].startswith("Built-in function: `print(value, ...)`")

    def test_hover_nothing(self, server) -> None:
        server.handle(did_open("let abc = 1"))
        response = server.handle(
            request(
                "textDocument/hover",
                {"textDocument": {"uri": URI}, "position": {"line": 0, "character": 5}},
            )
        )
        assert response["result"] is None

    def test_diagnostic_report(self, server) -> None:
        server.handle(did_open('let s = "abc'))
        response = server.handle(
            request("textDocument/diagnostic", {"textDocument": {"uri": URI}})
        )
        report = response["result"]
        assert report["kind"] == "full"
        assert len(report["items"]) == 1
        item = report["items"][0]
        assert item["message"] == "Unterminated string"
        assert item["severity"] == DiagnosticSeverity.Error.value
        assert item["source"] == "noteg"
        assert item["range"]["start"] == {"line": 0, "character": 8}

    def test_diagnostic_report_clean(self, server) -> None:
        server.handle(did_open("let s = 'abc'"))
        response = server.handle(
            request("textDocument/diagnostic", {"textDocument": {"uri": URI}})
        )
        assert response["result"]["items"] == []


class TestLimitDiagnostics:
    def test_deep_nesting_is_one_diagnostic(self, service) -> None:
        svc, put = service
        put("let x = " + "(" * 3000 + "1" + ")" * 3000)
        diags = svc.analyze(URI)
        assert len(diags) == 1
        assert diags[0].message == "Nesting too deep to parse at line 1"
        assert diags[0].range.start == Position(line=0, character=0)
